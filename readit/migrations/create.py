"""Create a new pair of empty up/down migration scripts."""

import logging
from datetime import datetime, timezone, tzinfo
from pathlib import Path

from ..errors import ConfigurationError, DuplicateMigrationError, MigrateError
from .source import parse_filename

log = logging.getLogger(__name__)

DEFAULT_TIME_FORMAT = "%Y%m%d%H%M%S"


def next_seq_version(directory: Path, ext: str, digits: int) -> str:
    """Highest version among ``*<ext>`` files plus one, zero-padded to ``digits``."""
    if digits <= 0:
        raise ConfigurationError("seq digits must be positive")
    highest = 0
    if directory.is_dir():
        for entry in directory.glob(f"*{ext}"):
            parsed = parse_filename(entry.name)
            if parsed is None:
                raise MigrateError(f"malformed migration filename: {entry.name}")
            highest = max(highest, parsed[0])
    version = f"{highest + 1:0{digits}d}"
    if len(version) > digits:
        raise MigrateError(
            f"next sequence number {version} too long. At most {digits} digits are allowed"
        )
    return version


def time_version(now: datetime, fmt: str) -> str:
    if fmt == "unix":
        return str(int(now.timestamp()))
    if fmt == "unixNano":
        # float seconds lose the low nanosecond digits
        return str(int(now.timestamp()) * 1_000_000_000 + now.microsecond * 1000)
    return now.strftime(fmt)


def create_migration(
    name: str,
    directory: str | Path,
    ext: str = "sql",
    seq: bool = True,
    seq_digits: int = 6,
    fmt: str = DEFAULT_TIME_FORMAT,
    tz: tzinfo = timezone.utc,
    now: datetime | None = None,
) -> list[Path]:
    """Write ``<version>_<name>.up<ext>`` and ``.down<ext>``; return both paths.

    Sequential numbering is the default because that's what the project's
    db/migrations/new target has always used (``-seq``).
    """
    if not name:
        raise ConfigurationError("please specify a migration name")
    if seq and fmt != DEFAULT_TIME_FORMAT:
        raise ConfigurationError("the seq and format options are mutually exclusive")

    directory = Path(directory)
    ext = "." + ext.lstrip(".")

    if seq:
        version = next_seq_version(directory, ext, seq_digits)
    else:
        version = time_version(now or datetime.now(tz), fmt)

    if directory.is_dir() and any(directory.glob(f"{version}_*{ext}")):
        raise DuplicateMigrationError(version)

    directory.mkdir(parents=True, exist_ok=True)
    created = []
    for direction in ("up", "down"):
        path = directory / f"{version}_{name}.{direction}{ext}"
        try:
            with path.open("x", encoding="utf-8"):
                pass
        except FileExistsError:
            raise MigrateError(f"migration file already exists: {path}") from None
        log.info("Created %s", path)
        created.append(path)
    return created
