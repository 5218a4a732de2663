"""Contains utility functions for GitHub interactions."""

from urllib.parse import quote


async def split_repository_in_configuration(repo: str | None) -> tuple[str, str]:
    """Splits the repository in the configuration into owner and repository."""
    if repo is None:
        raise ValueError("A repository in 'owner/repo' format is required.")
    repo = repo.strip("/")
    parts = repo.split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError("Repository must be in the format 'owner/repo' with no leading/trailing slashes or extra parts.")
    owner, repository = parts
    return owner, repository


def github_web_url(github_api_url: str) -> str:
    """Derive the web (and git) base URL from a GitHub API URL.

    e.g., "https://api.github.com" -> "https://github.com"
    or "https://github.example.com/api/v3" -> "https://github.example.com"
    """
    if "api.github.com" in github_api_url:
        return "https://github.com"
    # For GitHub Enterprise, remove /api/v3 suffix
    return github_api_url.rstrip("/").replace("/api/v3", "").replace("/api", "")


def build_clone_url(github_api_url: str, repo: str, token: str | None = None) -> str:
    """Build an HTTPS clone URL for a repository, embedding a token when given."""
    base_url = github_web_url(github_api_url)
    if token:
        scheme, _, host = base_url.partition("://")
        base_url = f"{scheme}://x-access-token:{quote(token, safe='')}@{host}"
    return f"{base_url}/{repo.strip('/')}.git"
