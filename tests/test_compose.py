"""
test_compose.py — Tests for readit/services/compose.py

Docker commands issued for the postgres service and the health wait
loop. runner.run is patched; sleep is injected.
"""

import subprocess
from unittest.mock import patch

import pytest

from readit.errors import CommandError
from readit.services.compose import ComposeDatabase


def _done(stdout=""):
    return subprocess.CompletedProcess([], 0, stdout=stdout, stderr="")


@pytest.fixture()
def sleeps():
    return []


@pytest.fixture()
def db(settings, sleeps):
    return ComposeDatabase(settings, sleep=sleeps.append)


def test_start(db):
    with patch("readit.services.runner.run") as mock_run:
        db.start()
    mock_run.assert_called_once_with(["docker", "compose", "-f", "docker-compose.yml", "up", "-d", "postgres"])


def test_stop(db):
    with patch("readit.services.runner.run") as mock_run:
        db.stop()
    mock_run.assert_called_once_with(["docker", "compose", "-f", "docker-compose.yml", "down", "postgres"])


def test_connect_uses_db_and_user(settings, sleeps):
    settings.postgres_db = "readit_dev"
    settings.postgres_user = "dev"
    with patch("readit.services.runner.run") as mock_run:
        ComposeDatabase(settings, sleep=sleeps.append).connect()
    mock_run.assert_called_once_with(
        ["docker", "exec", "-it", "postgres", "psql", "-d", "readit_dev", "-U", "dev"]
    )


def test_wait_healthy_polls_until_healthy(db, sleeps):
    statuses = [_done("starting\n"), _done("healthy\n")]
    with patch("readit.services.runner.run", side_effect=statuses) as mock_run:
        db.wait_healthy()
    assert mock_run.call_count == 2
    assert mock_run.call_args.args[0] == [
        "docker", "inspect", "--format", "{{.State.Health.Status}}", "postgres",
    ]
    assert mock_run.call_args.kwargs["timeout"] == 5
    assert sleeps == [10]


def test_wait_healthy_gives_up_after_retries(db, sleeps):
    with patch("readit.services.runner.run", return_value=_done("unhealthy")) as mock_run:
        with pytest.raises(CommandError, match="not healthy after 5 checks"):
            db.wait_healthy()
    assert mock_run.call_count == 5
    assert sleeps == [10, 10, 10, 10]


def test_health_status_when_inspect_fails(db):
    with patch("readit.services.runner.run", side_effect=CommandError(["docker"], 1)):
        assert db.health_status() == "unavailable"


def test_start_and_wait(db):
    with patch("readit.services.runner.run", side_effect=[_done(), _done("healthy")]) as mock_run:
        db.start(wait=True)
    assert mock_run.call_count == 2
