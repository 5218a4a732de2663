"""Thin wrapper around the git command line."""

import re
import subprocess
from pathlib import Path

import structlog

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

URL_CREDENTIALS_PATTERN = re.compile(r"(https?://)[^/@\s]+@")
"""Pattern matching the userinfo part of an HTTP(S) URL (e.g. a token in a clone URL)."""


def redact_command(command: list[str]) -> str:
    """Join a command for display with any URL credentials masked."""
    return URL_CREDENTIALS_PATTERN.sub(r"\1***@", " ".join(command))


class GitCommandError(Exception):
    """Raised when a git command exits non-zero or times out."""

    def __init__(self, command: list[str], returncode: int | None, stderr: str, timed_out: bool = False) -> None:
        """Initializes the exception with the failed command and its output."""
        display = redact_command(command)
        stderr = URL_CREDENTIALS_PATTERN.sub(r"\1***@", stderr)
        if timed_out:
            message = f"git command timed out: {display}"
        else:
            message = f"git command failed with exit code {returncode}: {display}: {stderr.strip()}"
        super().__init__(message)
        self.command = display
        self.returncode = returncode
        self.stderr = stderr
        self.timed_out = timed_out


def run_git(
    args: list[str],
    cwd: Path | None = None,
    timeout: float | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run a git command and return the completed process.

    Args:
        args: Arguments passed to git (without the leading "git").
        cwd: Working directory for the command.
        timeout: Seconds before the command is killed. Expiry raises GitCommandError.
        check: Raise GitCommandError when the command exits non-zero.

    Returns:
        The completed process with text stdout/stderr.
    """
    command = ["git", *args]
    logger.debug("Running git command", command=redact_command(command), cwd=str(cwd) if cwd else None)
    try:
        result = subprocess.run(
            command,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        logger.error("git command timed out", command=redact_command(command), timeout=timeout)
        stderr = exc.stderr.decode() if isinstance(exc.stderr, bytes) else (exc.stderr or "")
        raise GitCommandError(command, None, stderr, timed_out=True) from exc
    if check and result.returncode != 0:
        raise GitCommandError(command, result.returncode, result.stderr)
    return result
