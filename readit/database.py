"""Database engine and connection helpers.

The engine is created lazily so CLI commands that never touch Postgres
(tidy, build, db/start) don't need a reachable server or a driver.
Postgres sessions are pinned to UTC on connect.
"""

from functools import lru_cache

from loguru import logger
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .config import get_settings


def create_db_engine(url: str | None = None) -> Engine:
    settings = get_settings()
    url = url or settings.sqlalchemy_url
    if url.startswith("sqlite"):
        return create_engine(url)

    engine = create_engine(
        url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=3600,
        connect_args={"connect_timeout": int(settings.healthcheck_timeout)},
    )

    @event.listens_for(engine, "connect")
    def _set_timezone(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("SET timezone = 'UTC'")
        cursor.close()

    return engine


@lru_cache
def get_engine() -> Engine:
    return create_db_engine()


def ping(engine: Engine) -> bool:
    """Return True when a trivial query succeeds."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.warning("Database ping failed: {}", e)
        return False
