"""
conftest.py — Shared Test Fixtures for readit

Provides an in-memory SQLite engine, a directory of sample migrations,
a Migrator wired to both, and a FastAPI TestClient whose database
dependency points at the same engine.

Business Rules:
- No test needs Postgres or Docker; subprocess calls are patched
- Each test function gets a fresh engine and a fresh migrations dir
- Settings are rebuilt per test so env patches take effect

Called by: all test files via pytest autodiscovery
Depends on: readit.config, readit.migrations, readit.main
"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from loguru import logger
from sqlalchemy import create_engine, inspect
from sqlalchemy.pool import StaticPool

from readit.config import Settings, get_settings
from readit.database import get_engine
from readit.migrations import MigrationSource, Migrator, VersionStore

SAMPLE_MIGRATIONS = [
    (
        1,
        "create_users",
        "CREATE TABLE users (id INTEGER PRIMARY KEY, email TEXT NOT NULL UNIQUE);",
        "DROP TABLE users;",
    ),
    (
        2,
        "create_posts",
        "CREATE TABLE posts (id INTEGER PRIMARY KEY, user_id INTEGER REFERENCES users(id), title TEXT);\n"
        "CREATE INDEX idx_posts_user ON posts (user_id);",
        "DROP INDEX idx_posts_user;\nDROP TABLE posts;",
    ),
    (
        3,
        "seed_admin",
        "INSERT INTO users (email) VALUES ('admin@example.com');",
        "DELETE FROM users WHERE email = 'admin@example.com';",
    ),
]


def write_migration(directory: Path, version: int, name: str, up: str | None, down: str | None) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    if up is not None:
        (directory / f"{version:06d}_{name}.up.sql").write_text(up)
    if down is not None:
        (directory / f"{version:06d}_{name}.down.sql").write_text(down)


def table_names(engine) -> set[str]:
    return set(inspect(engine).get_table_names())


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    get_engine.cache_clear()
    yield
    get_settings.cache_clear()
    get_engine.cache_clear()
    # setup_logging may have bound sinks to streams pytest is about to close
    logger.remove()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        migrations_path=str(tmp_path / "migrations"),
        build_dir=str(tmp_path / "bin"),
        coverage_dir=str(tmp_path / "coverage"),
    )


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield eng
    eng.dispose()


@pytest.fixture()
def migrations_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "migrations"
    for version, name, up, down in SAMPLE_MIGRATIONS:
        write_migration(directory, version, name, up, down)
    return directory


@pytest.fixture()
def store(engine) -> VersionStore:
    return VersionStore(engine)


@pytest.fixture()
def migrator(migrations_dir: Path, store: VersionStore) -> Migrator:
    return Migrator(MigrationSource.open(migrations_dir), store)


@pytest.fixture()
def client(engine) -> TestClient:
    from readit.main import app, get_db_engine

    app.dependency_overrides[get_db_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def tables(engine):
    """Callable returning the current table names."""
    return lambda: table_names(engine)


@pytest.fixture()
def write_sql():
    return write_migration
