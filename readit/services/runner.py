"""
runner.py — External command execution and confirmation prompts

Every build/ops target shells out to real tools (ruff, pytest, git,
docker, ...). This module is the one place that does it, so failures look
the same everywhere and tests only need to patch subprocess.run here.

Business Rules:
- Commands run without a shell; arguments are passed as a list
- A non-zero exit aborts the calling target with CommandError
- A missing executable is reported as exit status 127
- Destructive targets ask "Are you sure? [y/N]"; only "y" proceeds

Called by: services/compose.py, services/tasks.py, cli.py
Depends on: errors.py
"""

import os
import shlex
import subprocess
from typing import Callable

from loguru import logger

from ..errors import AbortedError, CommandError


def run(
    cmd: list[str],
    *,
    env: dict[str, str] | None = None,
    capture: bool = False,
    timeout: float | None = None,
) -> subprocess.CompletedProcess:
    """Run ``cmd`` and raise CommandError unless it exits 0."""
    logger.info("$ {}", shlex.join(cmd))
    try:
        result = subprocess.run(
            cmd,
            env={**os.environ, **env} if env else None,
            capture_output=capture,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        raise CommandError(cmd, 127, f"{cmd[0]}: command not found") from None
    except subprocess.TimeoutExpired:
        raise CommandError(cmd, -1, f"timed out after {timeout}s") from None

    if result.returncode != 0:
        detail = (result.stderr or "").strip()[:200] if capture else ""
        raise CommandError(cmd, result.returncode, detail)
    return result


def run_all(commands: list[list[str]], **kwargs) -> None:
    for cmd in commands:
        run(cmd, **kwargs)


def confirm(
    prompt: str = "Are you sure? [y/N] ",
    *,
    assume_yes: bool = False,
    input_fn: Callable[[str], str] | None = None,
) -> None:
    if assume_yes:
        return
    try:
        answer = (input_fn or input)(prompt).strip()
    except EOFError:
        answer = ""
    if (answer or "N") != "y":
        raise AbortedError()
