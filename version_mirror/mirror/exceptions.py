"""Custom exceptions for the mirror module."""


class MirrorStateError(Exception):
    """Raised when the mirror working tree is not in a state a sync can start from."""

    pass


class TagAlreadyExistsError(Exception):
    """Raised when a tag with the derived name already exists."""

    def __init__(self, tag: str) -> None:
        """Initializes the exception with the conflicting tag name."""
        super().__init__(f"Tag already exists: {tag}")
        self.tag = tag


class PublishConflictError(Exception):
    """Raised when the remote rejects a push because it has diverged."""

    def __init__(self, remote: str, ref: str, detail: str) -> None:
        """Initializes the exception with the rejected ref and git's explanation."""
        super().__init__(f"Push of {ref} to {remote} was rejected: {detail.strip()}")
        self.remote = remote
        self.ref = ref
        self.detail = detail
