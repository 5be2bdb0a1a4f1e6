"""SQL migrations: golang-migrate compatible files and version table."""

from .create import create_migration  # noqa: F401
from .migrator import Migration, Migrator  # noqa: F401
from .source import MigrationSource  # noqa: F401
from .version_store import NIL_VERSION, VersionStore  # noqa: F401
