"""
compose.py — Local Postgres container lifecycle

Drives the ``postgres`` service from docker-compose.yml: start, stop,
open a psql shell, and wait for the container health check to pass.

Business Rules:
- Start/stop act on the single compose service, never the whole stack
- psql runs inside the container, so no local client is needed
- Health: poll the container's own health status every interval, each
  probe bounded by the timeout, giving up after the configured retries
  (10s / 5s / 5, the same numbers as the compose healthcheck)

Called by: cli.py (db/start, db/stop, db/connect, db/wait)
Depends on: services/runner.py, config.py
"""

import time
from typing import Callable

from loguru import logger

from ..config import Settings, get_settings
from ..errors import CommandError
from . import runner

HEALTHY = "healthy"


class ComposeDatabase:
    def __init__(self, settings: Settings | None = None, sleep: Callable[[float], None] = time.sleep) -> None:
        self.settings = settings or get_settings()
        self._sleep = sleep

    def compose(self, *args: str) -> list[str]:
        return ["docker", "compose", "-f", self.settings.compose_file, *args]

    def start(self, wait: bool = False) -> None:
        runner.run(self.compose("up", "-d", self.settings.compose_service))
        if wait:
            self.wait_healthy()

    def stop(self) -> None:
        runner.run(self.compose("down", self.settings.compose_service))

    def connect(self) -> None:
        s = self.settings
        runner.run(["docker", "exec", "-it", s.db_container, "psql", "-d", s.postgres_db, "-U", s.postgres_user])

    def inspect_cmd(self) -> list[str]:
        return ["docker", "inspect", "--format", "{{.State.Health.Status}}", self.settings.db_container]

    def health_status(self) -> str:
        """Container health as docker reports it; "unavailable" when inspect fails."""
        try:
            result = runner.run(self.inspect_cmd(), capture=True, timeout=self.settings.healthcheck_timeout)
        except CommandError as e:
            logger.debug("Health probe failed: {}", e)
            return "unavailable"
        return result.stdout.strip() or "none"

    def wait_healthy(self) -> None:
        s = self.settings
        status = "unknown"
        for attempt in range(1, s.healthcheck_retries + 1):
            status = self.health_status()
            if status == HEALTHY:
                logger.info("Container {} is healthy", s.db_container)
                return
            logger.info(
                "Container {} is {} (check {}/{})", s.db_container, status, attempt, s.healthcheck_retries
            )
            if attempt < s.healthcheck_retries:
                self._sleep(s.healthcheck_interval)
        raise CommandError(
            self.inspect_cmd(),
            1,
            f"{s.db_container} not healthy after {s.healthcheck_retries} checks (last status: {status})",
        )
