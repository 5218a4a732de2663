"""Upstream source hosted on GitHub."""

import structlog
from githubkit.exception import GitHubException

from version_mirror.github.abc import GitHubClientBase
from version_mirror.upstream.exceptions import UpstreamUnavailableError
from version_mirror.upstream.git_remote import GitRemoteUpstream

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class GitHubUpstream(GitRemoteUpstream):
    """Lists branches through the GitHub REST API; fetches snapshots with git."""

    def __init__(self, github_client: GitHubClientBase, repo: str, clone_url: str, timeout: float | None = None) -> None:
        """Initialize with a GitHub client bound to the upstream repository."""
        super().__init__(clone_url, timeout)
        self.github_client = github_client
        self.repo = repo

    @property
    def source(self) -> str:
        """The upstream repository in 'owner/repo' format."""
        return self.repo

    async def list_branches(self) -> set[str]:
        """List branches of the upstream repository via the GitHub API."""
        try:
            branches = await self.github_client.list_branches()
        except GitHubException as exc:
            logger.error("Failed to list upstream branches", source=self.source, error=str(exc), error_type=type(exc).__name__)
            raise UpstreamUnavailableError(f"Failed to list branches of {self.source}: {exc}", self.source) from exc
        logger.info("Listed upstream branches", source=self.source, branch_count=len(branches))
        return set(branches)
