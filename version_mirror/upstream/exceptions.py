"""Custom exceptions for the upstream module."""


class UpstreamUnavailableError(Exception):
    """Raised when the upstream branch listing or snapshot fetch fails or times out."""

    def __init__(self, message: str, source: str) -> None:
        """Initializes the exception with the upstream that could not be reached."""
        super().__init__(message)
        self.source = source
