"""
source.py — Migration files on disk

Reads a directory of versioned SQL scripts named the way golang-migrate
names them, so the same directory works with either tool:

    000001_create_users.up.sql
    000001_create_users.down.sql

Business Rules:
- File name grammar: <version>_<identifier>.<up|down>.<ext>
- Files that don't match the grammar are ignored (README, .gitkeep, ...)
- A missing directory is an empty source, not an error
- A version may have just an up or just a down script; the missing one is
  an "empty" migration that only moves the recorded version
- Two scripts for the same version and direction are a hard error

Called by: migrations/migrator.py, migrations/create.py
Depends on: errors.py
"""

import re
from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field
from pathlib import Path

from ..errors import DuplicateMigrationError, MigrationNotFoundError

FILENAME_RE = re.compile(r"^([0-9]+)_(.*)\.(down|up)\.(.*)$")

UP = "up"
DOWN = "down"


@dataclass(frozen=True)
class MigrationFile:
    version: int
    identifier: str
    direction: str
    path: Path

    @property
    def name(self) -> str:
        return self.path.name


def parse_filename(name: str) -> tuple[int, str, str, str] | None:
    """000001_init.up.sql → (1, "init", "up", "sql"); None when it doesn't match."""
    m = FILENAME_RE.match(name)
    if not m:
        return None
    return int(m.group(1)), m.group(2), m.group(3), m.group(4)


@dataclass
class MigrationSource:
    """Ordered index of the migration scripts in one directory."""

    path: Path
    _files: dict[tuple[int, str], MigrationFile] = field(default_factory=dict, repr=False)
    _versions: list[int] = field(default_factory=list, repr=False)

    @classmethod
    def open(cls, path: str | Path) -> "MigrationSource":
        source = cls(Path(path))
        source.scan()
        return source

    def scan(self) -> None:
        self._files.clear()
        if self.path.is_dir():
            for entry in sorted(self.path.iterdir()):
                if not entry.is_file():
                    continue
                parsed = parse_filename(entry.name)
                if parsed is None:
                    continue
                version, identifier, direction, _ext = parsed
                key = (version, direction)
                if key in self._files:
                    raise DuplicateMigrationError(
                        version, f"{self._files[key].name} and {entry.name}"
                    )
                self._files[key] = MigrationFile(version, identifier, direction, entry)
        self._versions = sorted({v for v, _ in self._files})

    # ── Navigation ───────────────────────────────────────────────────

    @property
    def versions(self) -> list[int]:
        return list(self._versions)

    def __len__(self) -> int:
        return len(self._versions)

    def has(self, version: int) -> bool:
        return (version, UP) in self._files or (version, DOWN) in self._files

    def first(self) -> int | None:
        return self._versions[0] if self._versions else None

    def last(self) -> int | None:
        return self._versions[-1] if self._versions else None

    def prev(self, version: int) -> int | None:
        """Version before ``version``; None when ``version`` is the first."""
        self._require(version)
        i = bisect_left(self._versions, version)
        return self._versions[i - 1] if i > 0 else None

    def next(self, version: int) -> int | None:
        """Version after ``version``; None when ``version`` is the last."""
        self._require(version)
        i = bisect_right(self._versions, version)
        return self._versions[i] if i < len(self._versions) else None

    # ── Reading ──────────────────────────────────────────────────────

    def get(self, version: int, direction: str) -> MigrationFile | None:
        return self._files.get((version, direction))

    def identifier(self, version: int) -> str:
        f = self.get(version, UP) or self.get(version, DOWN)
        return f.identifier if f else ""

    def read(self, version: int, direction: str) -> str | None:
        """Script body, or None when this version has no script in that direction."""
        self._require(version)
        f = self.get(version, direction)
        if f is None:
            return None
        return f.path.read_text(encoding="utf-8")

    def read_up(self, version: int) -> str | None:
        return self.read(version, UP)

    def read_down(self, version: int) -> str | None:
        return self.read(version, DOWN)

    def _require(self, version: int) -> None:
        if not self.has(version):
            raise MigrationNotFoundError(version)
