"""Base ABC for GitHub clients."""

from abc import ABC, abstractmethod
from typing import Any


class GitHubClientBase(ABC):
    """Base ABC for GitHub clients."""

    # Repository operations
    @abstractmethod
    async def get_repository(self) -> Any:
        """Get a repository."""
        pass

    @abstractmethod
    async def create_repository(self, description: str | None = None, private: bool = False) -> Any:
        """Create the repository under its owner (user or organization)."""
        pass

    # Branch operations
    @abstractmethod
    async def list_branches(self, per_page: int = 100) -> list[str]:
        """List the names of all branches of a repository."""
        pass
