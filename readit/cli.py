"""
cli.py — readit command line

One subcommand per project target, named the same way the targets have
always been named (``test/cover``, ``db/migrations/up``, ...). Make-style
``name=...`` / ``version=...`` arguments are accepted as well as plain
positionals.

Business Rules:
- Any ReaditError exits 1 with the error logged
- "no change" from the migration engine is not a failure (exit 0)
- db/migrations/down, goto and force ask for confirmation; --yes skips it
- db/migrations/version prints "<version>" or "<version> (dirty)"

Called by: console script ``readit``, ``python -m readit``
Depends on: services/*, migrations/*, logging_config.py
"""

import argparse
import sys

from loguru import logger

from .config import get_settings
from .errors import NoChangeError, ReaditError
from .logging_config import setup_logging
from .migrations import Migrator, create_migration
from .services.compose import ComposeDatabase
from .services.tasks import Tasks

# (target, argument hint, description) in the order help prints them
TARGETS = [
    ("help", "", "print this help message"),
    ("confirm", "", "ask for confirmation before continuing"),
    ("no-dirty", "", "fail if the working tree has uncommitted changes"),
    ("tidy", "", "format code and sort imports"),
    ("audit", "", "run quality control checks"),
    ("test", "", "run all tests"),
    ("test/cover", "", "run all tests and display coverage"),
    ("build", "", "build the application"),
    ("run", "", "run the application"),
    ("run/live", "", "run the application with reloading on file changes"),
    ("push", "", "push changes to the remote Git repository"),
    ("production/deploy", "", "deploy the application to production"),
    ("db/connect", "", "connect to the local database"),
    ("db/start", "", "start the database server"),
    ("db/stop", "", "stop the database server"),
    ("db/wait", "", "wait until the database container is healthy"),
    ("db/migrations/new", "name=$1", "create a new migration"),
    ("db/migrations/up", "", "apply all up migrations"),
    ("db/migrations/down", "", "apply all down migrations"),
    ("db/migrations/goto", "version=$1", "migrate to a specific version number"),
    ("db/migrations/force", "version=$1", "force database migration version number"),
    ("db/migrations/version", "", "print the current migration version"),
]


def _assignment(key: str, cast=str):
    """argparse type accepting both ``value`` and ``key=value``."""

    def parse(raw: str):
        prefix = f"{key}="
        value = raw[len(prefix):] if raw.startswith(prefix) else raw
        try:
            return cast(value)
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid {key}: {value!r}") from None

    parse.__name__ = key
    return parse


def _non_negative_int(raw: str) -> int:
    value = int(raw)
    if value < 0:
        raise ValueError(raw)
    return value


def format_help() -> str:
    width = max(len(f"{name} {hint}".strip()) for name, hint, _ in TARGETS)
    lines = ["Usage:"]
    for name, hint, desc in TARGETS:
        lines.append(f"  {f'{name} {hint}'.strip():<{width}}  {desc}")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="readit", description="readit project tasks")
    parser.add_argument("-y", "--yes", action="store_true", help="answer yes to confirmation prompts")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="target", metavar="target")

    descriptions = {name: desc for name, _, desc in TARGETS}
    parsers = {name: sub.add_parser(name, help=desc) for name, desc in descriptions.items()}

    parsers["db/start"].add_argument("--wait", action="store_true", help="block until the health check passes")
    parsers["test/cover"].add_argument("--no-open", action="store_true", help="don't open the HTML report")

    new = parsers["db/migrations/new"]
    new.add_argument("name", type=_assignment("name"))
    new.add_argument("--ext", default="sql")
    new.add_argument("--timestamp", action="store_true", help="timestamp versions instead of -seq")

    parsers["db/migrations/up"].add_argument("limit", nargs="?", type=_assignment("limit", _non_negative_int))
    parsers["db/migrations/down"].add_argument("limit", nargs="?", type=_assignment("limit", _non_negative_int))
    parsers["db/migrations/goto"].add_argument("version", type=_assignment("version", int))
    parsers["db/migrations/force"].add_argument("version", type=_assignment("version", int))
    return parser


# ── Handlers ─────────────────────────────────────────────────────────


def _migrations_new(args, tasks: Tasks) -> None:
    settings = tasks.settings
    for path in create_migration(
        args.name,
        settings.migrations_path,
        ext=args.ext,
        seq=not args.timestamp,
        seq_digits=settings.migrations_seq_digits,
    ):
        print(path)


def _migrations_up(args, tasks: Tasks) -> None:
    Migrator.from_settings(tasks.settings).up(args.limit)


def _migrations_down(args, tasks: Tasks) -> None:
    tasks.confirm()
    Migrator.from_settings(tasks.settings).down(args.limit)


def _migrations_goto(args, tasks: Tasks) -> None:
    tasks.confirm()
    Migrator.from_settings(tasks.settings).goto(args.version)


def _migrations_force(args, tasks: Tasks) -> None:
    tasks.confirm()
    Migrator.from_settings(tasks.settings).force(args.version)


def _migrations_version(args, tasks: Tasks) -> None:
    version, dirty = Migrator.from_settings(tasks.settings).version()
    print(f"{version} (dirty)" if dirty else version)


HANDLERS = {
    "help": lambda args, tasks: print(format_help()),
    "confirm": lambda args, tasks: tasks.confirm(),
    "no-dirty": lambda args, tasks: tasks.no_dirty(),
    "tidy": lambda args, tasks: tasks.tidy(),
    "audit": lambda args, tasks: tasks.audit(),
    "test": lambda args, tasks: tasks.test(),
    "test/cover": lambda args, tasks: tasks.test_cover(open_report=not args.no_open),
    "build": lambda args, tasks: tasks.build(),
    "run": lambda args, tasks: tasks.run(),
    "run/live": lambda args, tasks: tasks.run_live(),
    "push": lambda args, tasks: tasks.push(),
    "production/deploy": lambda args, tasks: tasks.deploy(),
    "db/connect": lambda args, tasks: ComposeDatabase(tasks.settings).connect(),
    "db/start": lambda args, tasks: ComposeDatabase(tasks.settings).start(wait=args.wait),
    "db/stop": lambda args, tasks: ComposeDatabase(tasks.settings).stop(),
    "db/wait": lambda args, tasks: ComposeDatabase(tasks.settings).wait_healthy(),
    "db/migrations/new": _migrations_new,
    "db/migrations/up": _migrations_up,
    "db/migrations/down": _migrations_down,
    "db/migrations/goto": _migrations_goto,
    "db/migrations/force": _migrations_force,
    "db/migrations/version": _migrations_version,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.verbose else None)

    if args.target is None:
        print(format_help())
        return 0

    tasks = Tasks(get_settings(), assume_yes=args.yes)
    try:
        HANDLERS[args.target](args, tasks)
    except NoChangeError as e:
        logger.info(str(e))
    except ReaditError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
