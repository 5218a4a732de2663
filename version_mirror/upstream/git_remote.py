"""Upstream source backed by any git remote."""

import asyncio
import shutil
from pathlib import Path

import structlog

from version_mirror.upstream.abc import UpstreamSourceBase
from version_mirror.upstream.exceptions import UpstreamUnavailableError
from version_mirror.utils.git import GitCommandError, redact_command, run_git

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

HEADS_PREFIX = "refs/heads/"


def parse_ls_remote_heads(output: str) -> set[str]:
    """Parse `git ls-remote --heads` output into a set of branch names."""
    branches: set[str] = set()
    for line in output.splitlines():
        parts = line.strip().split("\t")
        if len(parts) != 2 or not parts[1].startswith(HEADS_PREFIX):
            continue
        branches.add(parts[1][len(HEADS_PREFIX) :])
    return branches


class GitRemoteUpstream(UpstreamSourceBase):
    """Lists branches with `git ls-remote` and fetches versions with a shallow clone."""

    def __init__(self, url: str, timeout: float | None = None) -> None:
        """Initialize with the remote URL (may embed credentials) and a per-command timeout."""
        self.url = url
        self.timeout = timeout

    @property
    def source(self) -> str:
        """The remote URL with any credentials masked."""
        return redact_command([self.url])

    async def list_branches(self) -> set[str]:
        """List branches advertised by the remote."""
        try:
            result = await asyncio.to_thread(run_git, ["ls-remote", "--heads", self.url], None, self.timeout)
        except GitCommandError as exc:
            logger.error("Failed to list upstream branches", source=self.source, error=str(exc))
            raise UpstreamUnavailableError(f"Failed to list branches of {self.source}: {exc}", self.source) from exc
        branches = parse_ls_remote_heads(result.stdout)
        logger.info("Listed upstream branches", source=self.source, branch_count=len(branches))
        return branches

    async def fetch_snapshot(self, version: str, destination: Path) -> Path:
        """Shallow-clone a single branch into destination and strip its git metadata."""
        if destination.exists() and any(destination.iterdir()):
            raise ValueError(f"Snapshot destination must be empty: {destination}")
        args = [
            "clone",
            "--depth",
            "1",
            "--single-branch",
            "--no-tags",
            "--branch",
            version,
            self.url,
            str(destination),
        ]
        logger.info("Fetching upstream snapshot", source=self.source, version=version)
        try:
            await asyncio.to_thread(run_git, args, None, self.timeout)
        except GitCommandError as exc:
            logger.error("Failed to fetch upstream snapshot", source=self.source, version=version, error=str(exc))
            raise UpstreamUnavailableError(f"Failed to fetch {version} from {self.source}: {exc}", self.source) from exc
        shutil.rmtree(destination / ".git", ignore_errors=True)
        return destination
