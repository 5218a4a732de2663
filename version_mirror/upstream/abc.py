"""Base ABC for upstream version sources."""

from abc import ABC, abstractmethod
from pathlib import Path


class UpstreamSourceBase(ABC):
    """A source of released versions, one branch per version."""

    @property
    @abstractmethod
    def source(self) -> str:
        """Human-readable identifier of the upstream, used in logs and errors."""
        pass

    @abstractmethod
    async def list_branches(self) -> set[str]:
        """Return the names of all branches advertised by the upstream.

        Raises:
            UpstreamUnavailableError: If the listing fails or times out.
        """
        pass

    @abstractmethod
    async def fetch_snapshot(self, version: str, destination: Path) -> Path:
        """Retrieve the content of one version, without history, into destination.

        Returns:
            The directory holding the content tree (no .git directory).

        Raises:
            UpstreamUnavailableError: If the fetch fails or times out.
        """
        pass
