"""
tasks.py — Quality control, development and release targets

Each target is a short, ordered list of external commands. The first
failure aborts the target (CommandError), so push and deploy never run
on code that doesn't format, lint, audit and test cleanly.

Business Rules:
- push = tidy → audit → no-dirty → git push
- production/deploy = confirm → tidy → audit → no-dirty → Linux/amd64
  single-file executable under <build_dir>/linux_amd64/
- run/live reloads on source, template, style, script, SQL and image
  changes with a 100ms debounce

Called by: cli.py
Depends on: services/runner.py, config.py
"""

import sys
import webbrowser
from pathlib import Path

from ..config import Settings, get_settings
from . import runner

LIVE_EXTENSIONS = (
    "py", "tpl", "tmpl", "html", "css", "scss", "js", "ts", "sql",
    "jpeg", "jpg", "gif", "png", "bmp", "svg", "webp", "ico",
)
APP_IMPORT = "readit.main:app"


class Tasks:
    def __init__(self, settings: Settings | None = None, assume_yes: bool = False) -> None:
        self.settings = settings or get_settings()
        self.assume_yes = assume_yes

    def _python(self, *args: str) -> list[str]:
        return [sys.executable, "-m", *args]

    # ── Helpers ──────────────────────────────────────────────────────

    def confirm(self) -> None:
        runner.confirm(assume_yes=self.assume_yes)

    def no_dirty(self) -> None:
        runner.run(["git", "diff", "--exit-code"])

    # ── Quality control ──────────────────────────────────────────────

    def tidy(self) -> None:
        runner.run_all([
            ["ruff", "format", "."],
            ["ruff", "check", "--select", "I", "--fix", "."],
        ])

    def audit(self) -> None:
        runner.run_all([
            self._python("pip", "check"),
            ["ruff", "check", "."],
            ["pip-audit"],
            self._python("pytest", "-q"),
        ])

    # ── Development ──────────────────────────────────────────────────

    def test(self) -> None:
        runner.run(self._python("pytest", "-v"))

    def test_cover(self, open_report: bool = True) -> Path:
        report_dir = Path(self.settings.coverage_dir)
        runner.run(self._python("pytest", "-v", "--cov=readit", f"--cov-report=html:{report_dir}"))
        index = report_dir / "index.html"
        if open_report:
            webbrowser.open(index.resolve().as_uri())
        return index

    def build(self) -> None:
        runner.run(self._python("build", "--wheel", "--outdir", self.settings.build_dir))

    def run(self) -> None:
        import uvicorn

        uvicorn.run(APP_IMPORT, host=self.settings.app_host, port=self.settings.app_port)

    def run_live(self) -> None:
        import uvicorn

        uvicorn.run(
            APP_IMPORT,
            host=self.settings.app_host,
            port=self.settings.app_port,
            reload=True,
            reload_includes=[f"*.{ext}" for ext in LIVE_EXTENSIONS],
            reload_delay=0.1,
        )

    # ── Operations ───────────────────────────────────────────────────

    def push(self) -> None:
        self.tidy()
        self.audit()
        self.no_dirty()
        runner.run(["git", "push"])

    def release_path(self) -> Path:
        return Path(self.settings.build_dir) / "linux_amd64" / self.settings.binary_name

    def deploy(self) -> Path:
        self.confirm()
        self.tidy()
        self.audit()
        self.no_dirty()

        output = self.release_path()
        output.parent.mkdir(parents=True, exist_ok=True)
        runner.run([
            "pex", ".",
            "--console-script", self.settings.binary_name,
            "--platform", self.settings.deploy_platform,
            "--output-file", str(output),
        ])
        return output
