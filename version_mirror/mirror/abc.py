"""Base ABC for mirror repositories."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path


class MirrorRepositoryBase(ABC):
    """The local working tree of a mirror, plus the remote it publishes to."""

    # Version marker
    @abstractmethod
    def read_marker(self) -> str:
        """Return the persisted version marker."""
        pass

    @abstractmethod
    def write_marker(self, version: str) -> None:
        """Overwrite the version marker in the working tree."""
        pass

    # Content
    @abstractmethod
    def replace_content(self, snapshot: Path, preserved_paths: Iterable[str]) -> None:
        """Make the working tree match snapshot everywhere outside preserved_paths."""
        pass

    @abstractmethod
    def discard_changes(self) -> None:
        """Drop every uncommitted change in the working tree."""
        pass

    @abstractmethod
    def head_sha(self) -> str:
        """Return the SHA of the current commit."""
        pass

    @abstractmethod
    def reset_to(self, sha: str) -> None:
        """Move the branch and working tree back to commit sha."""
        pass

    # Commit / tag / publish
    @abstractmethod
    def stage_all(self) -> None:
        """Stage every change in the working tree."""
        pass

    @abstractmethod
    def has_staged_changes(self, exclude: Iterable[str] = ()) -> bool:
        """Whether the index differs from the last commit, ignoring the excluded paths."""
        pass

    @abstractmethod
    def commit(self, message: str) -> str:
        """Commit the index and return the new commit SHA."""
        pass

    @abstractmethod
    def tag(self, name: str) -> None:
        """Tag the current commit. Raises TagAlreadyExistsError if the tag exists."""
        pass

    @abstractmethod
    def delete_tag(self, name: str) -> None:
        """Delete a local tag."""
        pass

    @abstractmethod
    def publish(self, tag: str | None = None) -> None:
        """Push the branch (and the tag, if given). Raises PublishConflictError on rejection."""
        pass

    @abstractmethod
    def publish_tag(self, tag: str) -> None:
        """Push a single tag. Raises TagAlreadyExistsError if the remote already has it."""
        pass
