"""
test_tasks.py — Tests for readit/services/tasks.py

Command sequences for quality control, development and release targets.
runner.run is patched so only the issued commands are checked.
"""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from readit.errors import AbortedError, CommandError
from readit.services.tasks import LIVE_EXTENSIONS, Tasks


@pytest.fixture()
def tasks(settings):
    return Tasks(settings)


def _commands(mock_run) -> list[list[str]]:
    return [c.args[0] for c in mock_run.call_args_list]


def test_tidy(tasks):
    with patch("readit.services.runner.run") as mock_run:
        tasks.tidy()
    assert _commands(mock_run) == [
        ["ruff", "format", "."],
        ["ruff", "check", "--select", "I", "--fix", "."],
    ]


def test_audit(tasks):
    with patch("readit.services.runner.run") as mock_run:
        tasks.audit()
    assert _commands(mock_run) == [
        [sys.executable, "-m", "pip", "check"],
        ["ruff", "check", "."],
        ["pip-audit"],
        [sys.executable, "-m", "pytest", "-q"],
    ]


def test_test(tasks):
    with patch("readit.services.runner.run") as mock_run:
        tasks.test()
    assert _commands(mock_run) == [[sys.executable, "-m", "pytest", "-v"]]


def test_test_cover(tasks, settings):
    with patch("readit.services.runner.run") as mock_run, patch("webbrowser.open") as mock_open:
        index = tasks.test_cover()
    cmd = _commands(mock_run)[0]
    assert "--cov=readit" in cmd
    assert f"--cov-report=html:{settings.coverage_dir}" in cmd
    assert index == Path(settings.coverage_dir) / "index.html"
    mock_open.assert_called_once()


def test_build(tasks, settings):
    with patch("readit.services.runner.run") as mock_run:
        tasks.build()
    assert _commands(mock_run) == [
        [sys.executable, "-m", "build", "--wheel", "--outdir", settings.build_dir],
    ]


def test_no_dirty(tasks):
    with patch("readit.services.runner.run") as mock_run:
        tasks.no_dirty()
    assert _commands(mock_run) == [["git", "diff", "--exit-code"]]


def test_push_runs_checks_before_pushing(tasks):
    with patch("readit.services.runner.run") as mock_run:
        tasks.push()
    cmds = _commands(mock_run)
    assert cmds[0] == ["ruff", "format", "."]
    assert ["git", "diff", "--exit-code"] in cmds
    assert cmds[-1] == ["git", "push"]


def test_push_stops_when_audit_fails(tasks):
    def _fail_on_audit(cmd, **kwargs):
        if cmd == ["pip-audit"]:
            raise CommandError(cmd, 1)

    with patch("readit.services.runner.run", side_effect=_fail_on_audit) as mock_run:
        with pytest.raises(CommandError):
            tasks.push()
    assert ["git", "push"] not in _commands(mock_run)


def test_deploy_requires_confirmation(tasks):
    with patch("builtins.input", return_value="n"), patch("readit.services.runner.run") as mock_run:
        with pytest.raises(AbortedError):
            tasks.deploy()
    mock_run.assert_not_called()


def test_deploy_builds_linux_executable(settings):
    tasks = Tasks(settings, assume_yes=True)
    with patch("readit.services.runner.run") as mock_run:
        output = tasks.deploy()
    assert output == Path(settings.build_dir) / "linux_amd64" / "readit"
    assert output.parent.is_dir()
    pex = _commands(mock_run)[-1]
    assert pex[:2] == ["pex", "."]
    assert pex[pex.index("--output-file") + 1] == str(output)
    assert pex[pex.index("--platform") + 1] == settings.deploy_platform


def test_run_serves_app(tasks, settings):
    with patch("uvicorn.run") as mock_uvicorn:
        tasks.run()
    mock_uvicorn.assert_called_once_with("readit.main:app", host=settings.app_host, port=settings.app_port)


def test_run_live_reloads_on_listed_extensions(tasks):
    with patch("uvicorn.run") as mock_uvicorn:
        tasks.run_live()
    kwargs = mock_uvicorn.call_args.kwargs
    assert kwargs["reload"] is True
    assert kwargs["reload_delay"] == 0.1
    assert kwargs["reload_includes"] == [f"*.{ext}" for ext in LIVE_EXTENSIONS]
    assert "*.sql" in kwargs["reload_includes"]
