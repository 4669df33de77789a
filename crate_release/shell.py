"""Shell and git utilities.

Provides simple wrappers around subprocess calls for running git and cargo,
a retry helper, plus output formatting helpers.
"""

from __future__ import annotations

import subprocess
import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from .errors import CommandError, ReleaseError

T = TypeVar("T")


def run_command(*args: str, cwd: Path | str | None = None) -> str:
    """Run a command, capture its output and return stripped stdout.

    Raises:
        CommandError: If the command exits with a non-zero status.
    """
    result = subprocess.run(args, cwd=cwd, capture_output=True, text=True)
    if result.returncode != 0:
        raise CommandError(args, result.stderr)
    return result.stdout.strip()


def run(*args: str, cwd: Path | str | None = None) -> None:
    """Run a command with output streamed to the terminal.

    Unlike run_command(), output is not captured so users can follow cargo
    progress as it happens.

    Raises:
        CommandError: If the command exits with a non-zero status.
    """
    result = subprocess.run(args, cwd=cwd)
    if result.returncode != 0:
        raise CommandError(args, f"Code: {result.returncode}")


def git(*args: str, cwd: Path | str | None = None) -> str:
    """Run a git command and return stdout."""
    return run_command("git", *args, cwd=cwd)


def cargo(*args: str, cwd: Path | str | None = None) -> None:
    """Run a cargo command in the given directory, streaming output."""
    run("cargo", *args, cwd=cwd)


def with_retries(action: Callable[[], T], *, count: int, delay: float) -> T:
    """Call action until it succeeds, at most count times.

    Waits delay seconds between attempts. Every failure is printed so the
    log shows why a retry happened.

    Raises:
        ReleaseError: Once all attempts have failed. The last failure is
            chained as the cause.
    """
    last_error: Exception | None = None
    for attempt in range(count):
        if attempt > 0:
            print(f"  Failed. Trying again in {delay:g} seconds...")
            time.sleep(delay)
            print(f"  Attempt {attempt + 1}/{count}...")
        try:
            return action()
        except Exception as exc:
            print(f"  {exc}", file=sys.stderr)
            last_error = exc
    raise ReleaseError(f"Failed after {count} attempts.") from last_error


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of a release in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def warn(msg: str) -> None:
    """Print a warning to stderr without stopping."""
    print(f"WARNING: {msg}", file=sys.stderr)


def fatal(msg: str) -> None:
    """Print an error message and exit with code 1.

    Use for unrecoverable errors that should halt the release.
    """
    print(f"ERROR: {msg}", file=sys.stderr)
    sys.exit(1)
