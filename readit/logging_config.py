"""
logging_config.py — Centralized Logging Configuration for readit

Sets up Loguru as the single logging backend. Intercepts Python's stdlib
logging module so uvicorn, SQLAlchemy and every getLogger() call route
through Loguru with the same format and level.

Business Rules:
- All logs go through Loguru (command output for operators uses print)
- JSON format in production for machine parsing
- Human-readable format in development
- Request ID from middleware is included when available
- Log rotation: 50MB files, 7-day retention

Called by: readit/main.py (lifespan), readit/cli.py (main)
Depends on: readit/config.py (app_env, log_level, log_file)
"""

import logging
import sys

from loguru import logger

from .config import get_settings


def setup_logging(level: str | None = None) -> None:
    """Configure Loguru and intercept stdlib logging.

    Call once per process, before anything logs. ``level`` overrides
    the LOG_LEVEL setting (the CLI's --verbose flag uses it).
    """
    settings = get_settings()
    logger.remove()

    log_level = (level or settings.log_level).upper()
    is_production = settings.is_production

    if is_production:
        logger.add(sys.stdout, level=log_level, format="{message}", serialize=True)
        logger.add(
            settings.log_file,
            level=log_level,
            rotation="50 MB",
            retention="7 days",
            compression="gz",
            serialize=True,
        )
    else:
        logger.add(
            sys.stderr,
            level=log_level,
            format=(
                "<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "{message}"
            ),
            colorize=True,
        )

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)

    for noisy in ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.debug("Logging configured", level=log_level, production=is_production)


class _InterceptHandler(logging.Handler):
    """Route stdlib logging records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip frames from stdlib logging internals so Loguru reports the caller
        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())
