"""
version_store.py — Schema version bookkeeping

Keeps the single-row ``schema_migrations`` table golang-migrate uses, so a
database migrated by either tool reports the same version.

Business Rules:
- At most one row: (version bigint primary key, dirty boolean)
- No row means nil version (-1, clean)
- Writes replace the row inside one transaction
- Dirty is set before a migration body runs and cleared after it succeeds
- Postgres: migrations are serialised with a session advisory lock; other
  dialects (SQLite in tests) skip locking

Called by: migrations/migrator.py, main.py (/health/db)
Depends on: errors.py
"""

import logging
import zlib
from contextlib import contextmanager

from sqlalchemy import BigInteger, Boolean, Column, MetaData, Table, delete, insert, inspect, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..errors import LockError

log = logging.getLogger(__name__)

NIL_VERSION = -1
ADVISORY_LOCK_SALT = 1486364155
LOCK_TIMEOUT = "15s"


def advisory_lock_id(database_name: str, *additional_names: str) -> int:
    """CRC32 of the joined names times the salt, wrapped to 32 bits."""
    joined = "\x00".join([*additional_names, database_name])
    return (zlib.crc32(joined.encode("utf-8")) * ADVISORY_LOCK_SALT) & 0xFFFFFFFF


class VersionStore:
    def __init__(self, engine: Engine, table_name: str = "schema_migrations") -> None:
        self.engine = engine
        self.metadata = MetaData()
        self.table = Table(
            table_name,
            self.metadata,
            Column("version", BigInteger, primary_key=True, autoincrement=False),
            Column("dirty", Boolean, nullable=False),
        )
        self._lock_conn: Connection | None = None
        self._lock_id: int | None = None

    def ensure_table(self) -> None:
        self.metadata.create_all(self.engine, checkfirst=True)

    def exists(self) -> bool:
        return inspect(self.engine).has_table(self.table.name)

    def get(self) -> tuple[int, bool]:
        with self.engine.connect() as conn:
            row = conn.execute(select(self.table.c.version, self.table.c.dirty).limit(1)).first()
        if row is None:
            return NIL_VERSION, False
        return int(row.version), bool(row.dirty)

    def set(self, version: int, dirty: bool) -> None:
        with self.engine.begin() as conn:
            conn.execute(delete(self.table))
            # A dirty nil version is kept so a failed first migration is still visible
            if version >= 0 or (version == NIL_VERSION and dirty):
                conn.execute(insert(self.table).values(version=version, dirty=dirty))

    # ── Locking ──────────────────────────────────────────────────────

    @property
    def is_locked(self) -> bool:
        return self._lock_conn is not None

    def lock(self) -> None:
        if self.engine.dialect.name != "postgresql":
            return
        if self._lock_conn is not None:
            raise LockError("already locked")

        conn = self.engine.connect()
        try:
            database = conn.execute(text("SELECT CURRENT_DATABASE()")).scalar_one()
            schema = conn.execute(text("SELECT CURRENT_SCHEMA()")).scalar_one()
            lock_id = advisory_lock_id(database, schema, self.table.name)
            conn.execute(text(f"SET lock_timeout = '{LOCK_TIMEOUT}'"))
            conn.execute(text("SELECT pg_advisory_lock(:id)"), {"id": lock_id})
            conn.commit()
        except SQLAlchemyError as e:
            conn.close()
            raise LockError(str(e)) from e

        self._lock_conn = conn
        self._lock_id = lock_id
        log.debug("Acquired advisory lock %s", lock_id)

    def unlock(self) -> None:
        conn, self._lock_conn = self._lock_conn, None
        if conn is None:
            return
        try:
            conn.execute(text("SELECT pg_advisory_unlock(:id)"), {"id": self._lock_id})
            # the connection goes back to the pool
            conn.execute(text("RESET lock_timeout"))
            conn.commit()
        except SQLAlchemyError as e:
            raise LockError(f"unlock failed: {e}") from e
        finally:
            conn.close()
        log.debug("Released advisory lock %s", self._lock_id)

    @contextmanager
    def locked(self):
        self.lock()
        try:
            yield self
        except BaseException:
            try:
                self.unlock()
            except LockError as e:
                log.error("Releasing advisory lock after a failed run: %s", e)
            raise
        else:
            self.unlock()
