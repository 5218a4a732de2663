# This file is intended to hold the setup for the authenticated githubkit client.

"""Sets up the githubkit client."""

from pathlib import Path
from typing import TypeAlias

from githubkit import GitHub
from githubkit.auth import (
    AppAuthStrategy,
    AppInstallationAuthStrategy,
    TokenAuthStrategy,
    UnauthAuthStrategy,
)

from version_mirror.configuration.models import GitHubAuthenticationType

from .exceptions import GitHubAppPrivateKeyError

GitHubClient: TypeAlias = GitHub[AppInstallationAuthStrategy] | GitHub[TokenAuthStrategy] | GitHub[UnauthAuthStrategy]


async def get_github_app_client(
    github_app_id: int,
    github_app_private_key_path: Path,
    github_app_installation_id: int,
    github_api_url: str,
    timeout: float | None = None,
) -> GitHub[AppInstallationAuthStrategy]:
    """Returns a GitHub client authenticated as a GitHub App installation."""
    if not (github_app_id and github_app_private_key_path and github_app_installation_id):
        raise RuntimeError("GitHub App authentication requires app_id, private_key_path, and installation_id in config.")
    try:
        with open(github_app_private_key_path) as f:
            private_key = f.read()
    except OSError as e:
        raise GitHubAppPrivateKeyError(f"Failed to read GitHub App private key: {e}") from e
    auth = AppAuthStrategy(
        app_id=github_app_id,
        private_key=private_key,
    )
    # Disable HTTP caching to always get fresh data and leave retries to the scheduler
    app_client = GitHub(auth=auth, base_url=github_api_url, http_cache=False, auto_retry=False, timeout=timeout)
    return app_client.with_auth(app_client.auth.as_installation(github_app_installation_id))


async def get_github_pat_client(github_pat_token: str, github_api_url: str, timeout: float | None = None) -> GitHub[TokenAuthStrategy]:
    """Returns an authenticated GitHub client using GitHub PAT credentials."""
    if not github_pat_token:
        raise RuntimeError("GitHub PAT authentication requires github_pat_token in config.")
    return GitHub(auth=TokenAuthStrategy(github_pat_token), base_url=github_api_url, http_cache=False, auto_retry=False, timeout=timeout)


async def get_github_anonymous_client(github_api_url: str, timeout: float | None = None) -> GitHub[UnauthAuthStrategy]:
    """Returns an unauthenticated GitHub client, enough for reading public repositories."""
    return GitHub(auth=UnauthAuthStrategy(), base_url=github_api_url, http_cache=False, auto_retry=False, timeout=timeout)


async def get_github_client(
    github_auth_type: GitHubAuthenticationType,
    github_pat_token: str | None,
    github_app_id: int | None,
    github_app_private_key_path: Path | None,
    github_app_installation_id: int | None,
    github_api_url: str,
    timeout: float | None = None,
) -> GitHubClient:
    """Returns a GitHub client using GitHub App, PAT, or no credentials.

    Supports custom base URL for GitHub Enterprise Server (GHES).
    Raises RuntimeError if the chosen authentication type is missing credentials.
    """
    if github_auth_type == GitHubAuthenticationType.APP:
        if not (github_app_id and github_app_private_key_path and github_app_installation_id):
            raise RuntimeError("GitHub App authentication requires app_id, private_key_path, and installation_id in config.")
        return await get_github_app_client(github_app_id, github_app_private_key_path, github_app_installation_id, github_api_url, timeout)
    elif github_auth_type == GitHubAuthenticationType.PAT:
        if not github_pat_token:
            raise RuntimeError("GitHub PAT authentication requires github_pat_token in config.")
        return await get_github_pat_client(github_pat_token, github_api_url, timeout)
    return await get_github_anonymous_client(github_api_url, timeout)
