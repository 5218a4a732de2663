"""Contains exceptions raised when reconciling application configuration."""


class GitHubAuthenticationConfigurationUndefinedError(Exception):
    """Raised when the GitHub authentication configuration is conflicting or incomplete."""

    pass


class MirrorConfigurationError(Exception):
    """Raised when the mirror configuration file is missing or invalid."""

    pass
