"""GitHub client adapter for the githubkit library."""

from functools import wraps
from pathlib import Path
from typing import Any, Awaitable, Callable, Self, TypeVar

import structlog
from githubkit import Response
from githubkit.exception import RequestFailed
from githubkit.versions.latest.models import FullRepository, PrivateUser, PublicUser, ShortBranch

from version_mirror.configuration.models import GitHubAuthenticationType
from version_mirror.utils.github import split_repository_in_configuration

from .abc import GitHubClientBase
from .client import GitHubClient, get_github_client
from .exceptions import GitHubUnprocessableEntityError

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def handle_github_422(func: F) -> F:
    """Decorator to handle GitHub 422 Unprocessable Entity errors, logging and raising with details."""

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)
        except RequestFailed as exc:
            if exc.response.status_code == 422:
                try:
                    error_data = exc.response.json()
                except ValueError:
                    error_data = {}
                message = error_data.get("message", "Unprocessable Entity")
                errors = error_data.get("errors", [])
                logger.error(
                    "GitHub 422 Unprocessable Entity",
                    function=func.__name__,
                    message=message,
                    errors=errors,
                    url=getattr(exc.response, "url", None),
                    status_code=422,
                )
                raise GitHubUnprocessableEntityError(func.__name__, message, errors, getattr(exc.response, "url", None)) from exc
            raise

    return wrapper  # type: ignore


class GitHubKitAdapter(GitHubClientBase):
    """GitHub client adapter for the githubkit library."""

    def __init__(self, client: GitHubClient, owner: str, repo_name: str) -> None:
        """Initialize the GitHub client adapter with an already-initialized client."""
        self.client = client
        self.owner = owner
        self.repo_name = repo_name

    def _omit_null_parameters(self, **kwargs: Any) -> dict[str, Any]:
        """Omit parameters that are None."""
        return {k: v for k, v in kwargs.items() if v is not None}

    @classmethod
    async def create(
        cls,
        repo: str,
        github_auth_type: GitHubAuthenticationType,
        github_pat_token: str | None = None,
        github_app_id: int | None = None,
        github_app_private_key_path: Path | None = None,
        github_app_installation_id: int | None = None,
        github_api_url: str = "https://api.github.com",
        timeout: float | None = None,
    ) -> Self:
        """Create a new GitHub client adapter.

        Args:
            repo: Repository in 'owner/repo' format
            github_auth_type: Type of authentication (PAT, APP or ANONYMOUS)
            github_pat_token: Personal access token (required for PAT auth)
            github_app_id: GitHub App ID (required for APP auth)
            github_app_private_key_path: Path to private key file (required for APP auth)
            github_app_installation_id: Installation ID (required for APP auth)
            github_api_url: GitHub API URL (defaults to https://api.github.com)
            timeout: Per-request timeout in seconds

        Returns:
            Configured GitHubKitAdapter instance

        Raises:
            ValueError: If the repository is not in 'owner/repo' format
        """
        owner, repo_name = await split_repository_in_configuration(repo=repo)
        logger.info(
            "Creating client for GitHub instance and repository",
            github_api_url=github_api_url,
            owner=owner,
            repo_name=repo_name,
            auth_type=github_auth_type.value,
        )
        client = await get_github_client(
            github_auth_type=github_auth_type,
            github_pat_token=github_pat_token,
            github_app_id=github_app_id,
            github_app_private_key_path=github_app_private_key_path,
            github_app_installation_id=github_app_installation_id,
            github_api_url=github_api_url,
            timeout=timeout,
        )
        return cls(client, owner, repo_name)

    # Repository operations
    async def get_repository(self) -> FullRepository:
        """Get the repository for the current client."""
        response: Response[FullRepository] = await self.client.rest.repos.async_get(owner=self.owner, repo=self.repo_name)
        return response.parsed_data

    @handle_github_422
    async def create_repository(self, description: str | None = None, private: bool = False) -> FullRepository:
        """Create the repository, in the owner's organization or under the authenticated user.

        An existing repository is returned as is.
        """
        try:
            existing = await self.get_repository()
        except RequestFailed as exc:
            if exc.response.status_code != 404:
                raise
        else:
            logger.info("Repository already exists, reusing it", owner=self.owner, repo_name=self.repo_name)
            return existing
        owner_response: Response[PrivateUser | PublicUser] = await self.client.rest.users.async_get_by_username(username=self.owner)
        params = self._omit_null_parameters(name=self.repo_name, description=description, private=private)
        if owner_response.parsed_data.type == "Organization":
            logger.info("Creating repository in organization", org=self.owner, repo_name=self.repo_name, private=private)
            response: Response[FullRepository] = await self.client.rest.repos.async_create_in_org(org=self.owner, **params)
        else:
            logger.info("Creating repository for authenticated user", owner=self.owner, repo_name=self.repo_name, private=private)
            response = await self.client.rest.repos.async_create_for_authenticated_user(**params)
        return response.parsed_data

    # Branch operations
    async def list_branches(self, per_page: int = 100) -> list[str]:
        """List the names of all branches of the repository, handling pagination."""
        logger.debug("Listing branches", owner=self.owner, repo=self.repo_name)
        all_branches: list[str] = []
        page: int = 1
        while True:
            response: Response[list[ShortBranch]] = await self.client.rest.repos.async_list_branches(
                owner=self.owner,
                repo=self.repo_name,
                per_page=per_page,
                page=page,
            )
            branches: list[ShortBranch] = response.parsed_data
            if not branches:
                break
            all_branches.extend(branch.name for branch in branches)
            # GitHub returns less than per_page when no more results
            if len(branches) < per_page:
                break
            page += 1
        logger.debug("Retrieved branches", owner=self.owner, repo=self.repo_name, branch_count=len(all_branches))
        return all_branches
