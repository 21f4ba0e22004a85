"""Runnable scripts for common dev tasks. Use: uv run <script-name>."""

import subprocess
import sys

PATHS = ["eventrouter", "tests"]


def _run(args: list[str]) -> None:
    """Run a command; exit with its code."""
    sys.exit(subprocess.run(args).returncode)


def _ruff(*args: str) -> list[str]:
    return [sys.executable, "-m", "ruff", *args, *PATHS]


def lint() -> None:
    """Run ruff check on eventrouter and tests."""
    _run(_ruff("check"))


def lint_fix() -> None:
    _run(_ruff("check", "--fix"))


def format() -> None:
    """Run ruff format on eventrouter and tests."""
    _run(_ruff("format"))


def type_check() -> None:
    """Run pyright on eventrouter."""
    _run([sys.executable, "-m", "pyright", "eventrouter"])


def test() -> None:
    _run([sys.executable, "-m", "pytest", "tests/", "-v"])


def test_cov() -> None:
    """Run pytest with a coverage report for the eventrouter package."""
    _run(
        [
            sys.executable,
            "-m",
            "pytest",
            "tests/",
            "--cov=eventrouter",
            "--cov-report=term-missing",
            "-v",
        ]
    )


def check() -> None:
    """Lint, type-check, then test; stop at the first failure."""
    for cmd in (_ruff("check"), [sys.executable, "-m", "pyright", "eventrouter"]):
        code = subprocess.run(cmd).returncode
        if code != 0:
            sys.exit(code)
    test()
