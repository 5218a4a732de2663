"""Custom exceptions for the github module."""


class GitHubUnprocessableEntityError(Exception):
    """Raised when GitHub rejects a request with 422 Unprocessable Entity."""

    def __init__(self, function: str, message: str, errors: list, url: object) -> None:
        """Initializes the exception with GitHub's explanation of the rejection."""
        super().__init__(f"GitHub 422 error in {function}: {message} | errors: {errors} | url: {url}")
        self.function = function
        self.message = message
        self.errors = errors


class GitHubAppPrivateKeyError(Exception):
    """Raised when the GitHub App private key cannot be read."""

    pass
