"""
migrator.py — Apply, revert and pin schema migrations

Plans a list of steps from the current recorded version against the
scripts in a MigrationSource, then runs them one at a time, keeping the
version table honest after every step.

Business Rules:
- Every command except force/version refuses to run on a dirty database
- One step = set(target, dirty) → run script → set(target, clean)
- Up target is the script's own version; down target is the previous
  version, or nil (-1) when reverting the first migration
- A failing script leaves the database dirty at the target version; the
  operator fixes the schema by hand and calls force
- Blank scripts (freshly created files) only move the version
- steps(n) applies what is available and then reports how many were short

Called by: cli.py (db/migrations/*), tests
Depends on: migrations/source.py, migrations/version_store.py, errors.py
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy.engine import Engine

from ..config import Settings, get_settings
from ..errors import (
    ConfigurationError,
    DirtyError,
    InvalidVersionError,
    MigrationFailedError,
    MigrationNotFoundError,
    NilVersionError,
    NoChangeError,
    ShortLimitError,
)
from .source import DOWN, UP, MigrationSource
from .version_store import NIL_VERSION, VersionStore

log = logging.getLogger(__name__)


def _check_limit(limit: int) -> None:
    if limit < 0:
        raise ConfigurationError(f"limit must be a non-negative number, got {limit}")


@dataclass(frozen=True)
class Migration:
    version: int
    target_version: int
    identifier: str
    direction: str
    body: str | None

    def __str__(self) -> str:
        return f"{self.version}/{self.direction[0]} {self.identifier}"


class Migrator:
    def __init__(self, source: MigrationSource, store: VersionStore) -> None:
        self.source = source
        self.store = store

    @classmethod
    def from_settings(cls, settings: Settings | None = None, engine: Engine | None = None) -> "Migrator":
        settings = settings or get_settings()
        if engine is None:
            from ..database import get_engine

            engine = get_engine()
        return cls(
            MigrationSource.open(settings.migrations_path),
            VersionStore(engine, settings.migrations_table),
        )

    # ── Commands ─────────────────────────────────────────────────────

    def version(self) -> tuple[int, bool]:
        """Recorded (version, dirty). Raises NilVersionError when nothing is applied."""
        self.store.ensure_table()
        version, dirty = self.store.get()
        if version == NIL_VERSION and not dirty:
            raise NilVersionError()
        return version, dirty

    def up(self, limit: int | None = None) -> list[Migration]:
        if limit is not None:
            _check_limit(limit)
            return self.steps(limit)
        with self._session() as current:
            plan, _ = self._plan_up(current, None)
            return self._run(plan)

    def down(self, limit: int | None = None) -> list[Migration]:
        if limit is not None:
            _check_limit(limit)
            return self.steps(-limit)
        with self._session() as current:
            plan, _ = self._plan_down(current, None)
            return self._run(plan)

    def steps(self, n: int) -> list[Migration]:
        if n == 0:
            raise NoChangeError()
        with self._session() as current:
            if n > 0:
                plan, short = self._plan_up(current, n)
            else:
                plan, short = self._plan_down(current, -n)
            applied = self._run(plan)
        if short:
            raise ShortLimitError(short)
        return applied

    def goto(self, version: int) -> list[Migration]:
        with self._session() as current:
            plan = self._plan_goto(current, version)
            return self._run(plan)

    def force(self, version: int) -> None:
        """Record ``version`` as clean without running anything."""
        if version < NIL_VERSION:
            raise InvalidVersionError(version)
        with self.store.locked():
            self.store.ensure_table()
            self.store.set(version, False)
        log.info("Forced version %s", version)

    # ── Planning ─────────────────────────────────────────────────────

    @contextmanager
    def _session(self):
        """Lock, make sure the version table exists, yield the clean current version."""
        with self.store.locked():
            self.store.ensure_table()
            version, dirty = self.store.get()
            if dirty:
                raise DirtyError(version)
            yield version

    def _require_current(self, version: int) -> None:
        if version != NIL_VERSION and not self.source.has(version):
            raise MigrationNotFoundError(version)

    def _up_step(self, version: int) -> Migration:
        return Migration(
            version=version,
            target_version=version,
            identifier=self.source.identifier(version),
            direction=UP,
            body=self.source.read_up(version),
        )

    def _down_step(self, version: int) -> Migration:
        prev = self.source.prev(version)
        return Migration(
            version=version,
            target_version=NIL_VERSION if prev is None else prev,
            identifier=self.source.identifier(version),
            direction=DOWN,
            body=self.source.read_down(version),
        )

    def _plan_up(self, current: int, limit: int | None) -> tuple[list[Migration], int]:
        self._require_current(current)
        plan: list[Migration] = []
        cursor = current
        while limit is None or len(plan) < limit:
            nxt = self.source.first() if cursor == NIL_VERSION else self.source.next(cursor)
            if nxt is None:
                break
            plan.append(self._up_step(nxt))
            cursor = nxt
        if not plan:
            raise NoChangeError()
        return plan, (limit - len(plan)) if limit else 0

    def _plan_down(self, current: int, limit: int | None) -> tuple[list[Migration], int]:
        if current == NIL_VERSION:
            raise NoChangeError()
        self._require_current(current)
        plan: list[Migration] = []
        cursor = current
        while cursor != NIL_VERSION and (limit is None or len(plan) < limit):
            step = self._down_step(cursor)
            plan.append(step)
            cursor = step.target_version
        return plan, (limit - len(plan)) if limit else 0

    def _plan_goto(self, current: int, target: int) -> list[Migration]:
        if not self.source.has(target):
            raise MigrationNotFoundError(target)
        if current == target:
            raise NoChangeError()
        self._require_current(current)

        plan: list[Migration] = []
        cursor = current
        if current == NIL_VERSION or current < target:
            while cursor != target:
                cursor = self.source.first() if cursor == NIL_VERSION else self.source.next(cursor)
                plan.append(self._up_step(cursor))
        else:
            while cursor != target:
                step = self._down_step(cursor)
                plan.append(step)
                cursor = step.target_version
        return plan

    # ── Execution ────────────────────────────────────────────────────

    def _run(self, plan: list[Migration]) -> list[Migration]:
        applied = []
        for migration in plan:
            self._apply(migration)
            applied.append(migration)
        return applied

    def _apply(self, migration: Migration) -> None:
        start = time.monotonic()
        if migration.body and migration.body.strip():
            self.store.set(migration.target_version, True)
            try:
                self._execute(migration.body)
            except Exception as e:
                log.error("Migration %s failed: %s", migration, e)
                raise MigrationFailedError(migration.version, migration.identifier, e) from e
        self.store.set(migration.target_version, False)
        log.info("%s (%.1fms)", migration, (time.monotonic() - start) * 1000)

    def _execute(self, body: str) -> None:
        engine = self.store.engine
        if engine.dialect.name == "sqlite":
            with engine.connect() as conn:
                # pysqlite refuses multi-statement strings outside executescript
                conn.connection.driver_connection.executescript(body)
            return

        # Sent as one simple query: literal % stays literal, and statements like
        # CREATE INDEX CONCURRENTLY aren't trapped in an explicit transaction
        with engine.connect().execution_options(isolation_level="AUTOCOMMIT", no_parameters=True) as conn:
            conn.exec_driver_sql(body)
