"""readit error types.

All custom exceptions inherit from ReaditError so the CLI can catch any
readit-specific failure in one place and exit non-zero.

Migration errors keep the wording of the golang-migrate CLI so operators
see the same messages whichever tool touched the database last.
"""


class ReaditError(Exception):
    """Base exception for all readit errors."""

    pass


class ConfigurationError(ReaditError):
    """Invalid or missing configuration."""

    pass


class CommandError(ReaditError):
    """An external tool exited with a non-zero status (or never started)."""

    def __init__(self, cmd: list[str], returncode: int, message: str = "") -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        text = message or f"command failed with exit status {returncode}"
        super().__init__(f"{' '.join(self.cmd)}: {text}")


class AbortedError(ReaditError):
    """The operator declined a confirmation prompt."""

    def __init__(self) -> None:
        super().__init__("aborted")


# ── Migrations ────────────────────────────────────────────────────────


class MigrateError(ReaditError):
    """Base exception for migration engine failures."""

    pass


class NoChangeError(MigrateError):
    def __init__(self) -> None:
        super().__init__("no change")


class NilVersionError(MigrateError):
    def __init__(self) -> None:
        super().__init__("no migration")


class DirtyError(MigrateError):
    """The last migration failed half-way; the schema needs a manual fix."""

    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"Dirty database version {version}. Fix and force version.")


class ShortLimitError(MigrateError):
    """Fewer migrations were available than the requested step count."""

    def __init__(self, short: int) -> None:
        self.short = short
        super().__init__(f"limit {short} short")


class InvalidVersionError(MigrateError):
    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"invalid version {version}: must be >= -1")


class MigrationNotFoundError(MigrateError):
    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"no migration found for version {version}: file does not exist")


class DuplicateMigrationError(MigrateError):
    def __init__(self, version: int | str, detail: str = "") -> None:
        self.version = version
        msg = f"duplicate migration version: {version}"
        super().__init__(f"{msg} ({detail})" if detail else msg)


class MigrationFailedError(MigrateError):
    """A migration body raised; the version table is left dirty."""

    def __init__(self, version: int, identifier: str, cause: Exception) -> None:
        self.version = version
        self.identifier = identifier
        self.cause = cause
        super().__init__(f"migration failed: {version}/{identifier} ({cause})")


class LockError(MigrateError):
    def __init__(self, detail: str = "") -> None:
        super().__init__(f"can't acquire lock: {detail}" if detail else "can't acquire lock")
