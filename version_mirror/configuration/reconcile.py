"""Reconciles GitHub configuration between CLI arguments and environment variables."""

from pathlib import Path

from version_mirror.configuration.env import Settings
from version_mirror.configuration.exceptions import GitHubAuthenticationConfigurationUndefinedError
from version_mirror.configuration.models import GitHubAuthenticationType, GitHubConfig


async def validate_github_authentication_configuration(
    github_pat_token: str | None,
    github_app_id: int | None,
    github_app_private_key_path: Path | None,
    github_app_installation_id: int | None,
    allow_anonymous: bool = True,
) -> GitHubAuthenticationType:
    """Validates the GitHub authentication configuration.

    Upstream repositories are usually public, so when no credentials are given at
    all the client falls back to anonymous access unless allow_anonymous is False.

    Args:
        github_pat_token (str | None): The GitHub PAT token.
        github_app_id (int | None): The GitHub App ID.
        github_app_private_key_path (Path | None): The path to the GitHub App private key.
        github_app_installation_id (int | None): The GitHub App installation ID.
        allow_anonymous (bool): Whether a configuration without credentials is acceptable.

    Raises:
        GitHubAuthenticationConfigurationUndefinedError: If both PAT and App configurations are defined,
            the App configuration is incomplete, or no credentials are given and anonymous access is not allowed.

    Returns:
        GitHubAuthenticationType: The type of GitHub authentication used.
    """
    if github_pat_token and (github_app_id or github_app_private_key_path or github_app_installation_id):
        raise GitHubAuthenticationConfigurationUndefinedError("Both PAT and GitHub App configurations are defined. Please use one or the other.")

    if github_pat_token:
        return GitHubAuthenticationType.PAT

    if github_app_id and github_app_private_key_path and github_app_installation_id:
        return GitHubAuthenticationType.APP
    elif github_app_id or github_app_private_key_path or github_app_installation_id:
        missing_settings: list[dict[str, str]] = []
        if not github_app_id:
            missing_settings.append(
                {
                    "name": "GitHub App ID",
                    "cli_name": "github_app_id",
                    "env_name": "GITHUB_APP_ID",
                }
            )
        if not github_app_private_key_path:
            missing_settings.append(
                {
                    "name": "GitHub App private key path",
                    "cli_name": "github_app_private_key_path",
                    "env_name": "GITHUB_APP_PRIVATE_KEY_PATH",
                }
            )
        if not github_app_installation_id:
            missing_settings.append(
                {
                    "name": "GitHub App installation ID",
                    "cli_name": "github_app_installation_id",
                    "env_name": "GITHUB_APP_INSTALLATION_ID",
                }
            )
        msg = "Incomplete GitHub App configuration - missing settings include " + ", ".join(
            f"{setting['name']} (command line option {setting['cli_name']}, environment variable {setting['env_name']})"
            for setting in missing_settings
        )
        raise GitHubAuthenticationConfigurationUndefinedError(msg)
    elif allow_anonymous:
        return GitHubAuthenticationType.ANONYMOUS
    else:
        raise GitHubAuthenticationConfigurationUndefinedError(
            "No GitHub authentication configuration provided. Please provide either a PAT or a GitHub App configuration."
        )


async def reconcile_github_configuration(
    settings: Settings,
    cli_debug: bool | None = None,
    cli_github_api_url: str | None = None,
    cli_github_pat_token: str | None = None,
    cli_github_app_id: int | None = None,
    cli_github_app_private_key_path: Path | None = None,
    cli_github_app_installation_id: int | None = None,
    allow_anonymous: bool = True,
) -> GitHubConfig:
    """Merge CLI values over environment settings and validate the authentication choice.

    CLI values win whenever they are not None.
    """
    debug = cli_debug if cli_debug is not None else settings.DEBUG
    github_api_url = cli_github_api_url or settings.GITHUB_API_URL
    github_pat_token = cli_github_pat_token or settings.GITHUB_PAT_TOKEN
    github_app_id = cli_github_app_id or settings.GITHUB_APP_ID
    github_app_private_key_path = cli_github_app_private_key_path or settings.GITHUB_APP_PRIVATE_KEY_PATH
    github_app_installation_id = cli_github_app_installation_id or settings.GITHUB_APP_INSTALLATION_ID

    github_auth_type = await validate_github_authentication_configuration(
        github_pat_token=github_pat_token,
        github_app_id=github_app_id,
        github_app_private_key_path=github_app_private_key_path,
        github_app_installation_id=github_app_installation_id,
        allow_anonymous=allow_anonymous,
    )
    return GitHubConfig(
        debug=debug,
        github_api_url=github_api_url,
        github_authentication_type=github_auth_type,
        github_pat_token=github_pat_token,
        github_app_id=github_app_id,
        github_app_private_key_path=github_app_private_key_path,
        github_app_installation_id=github_app_installation_id,
    )
