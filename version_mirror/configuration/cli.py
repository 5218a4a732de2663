"""Defines the Command Line Interface (CLI) using Typer."""

import asyncio
import logging
import os
from pathlib import Path

import structlog
import typer
from dotenv import load_dotenv
from githubkit.exception import GitHubException
from pydantic import ValidationError
from typer import Argument, Option
from typing_extensions import Annotated

from version_mirror.configuration.env import get_settings
from version_mirror.configuration.exceptions import GitHubAuthenticationConfigurationUndefinedError, MirrorConfigurationError
from version_mirror.configuration.models import GitHubConfig
from version_mirror.configuration.reconcile import reconcile_github_configuration
from version_mirror.github.exceptions import GitHubAppPrivateKeyError, GitHubUnprocessableEntityError
from version_mirror.mirror.exceptions import MirrorStateError, PublishConflictError
from version_mirror.provision.driver import provision_mirror, render_mirror_files
from version_mirror.schemas.mirror_config import MirrorConfig
from version_mirror.synchronize.driver import resolve_upstream_version, run_sync_workflow
from version_mirror.synchronize.models import SyncOutcome
from version_mirror.upstream.exceptions import UpstreamUnavailableError
from version_mirror.utils.constants import DEFAULT_CONFIG_FILENAME, DEFAULT_SCHEDULE
from version_mirror.utils.git import GitCommandError
from version_mirror.utils.yaml import load_mirror_config

load_dotenv()

typer_app = typer.Typer(pretty_exceptions_show_locals=False, help="Provision and sync single-version mirrors of upstream repositories.")

# Errors that end a command with a message instead of a traceback.
HANDLED_ERRORS = (
    GitHubAuthenticationConfigurationUndefinedError,
    MirrorConfigurationError,
    MirrorStateError,
    UpstreamUnavailableError,
    PublishConflictError,
    GitCommandError,
    GitHubAppPrivateKeyError,
    GitHubUnprocessableEntityError,
    GitHubException,
)


def configure_logging(debug: bool) -> None:
    """Configure structlog to render key/value events at INFO, or DEBUG when requested."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if debug else logging.INFO),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def write_github_outputs(outcome: SyncOutcome) -> None:
    """Expose the outcome as step outputs when running inside GitHub Actions."""
    github_output = os.environ.get("GITHUB_OUTPUT")
    if not github_output:
        return
    outputs = {
        "status": outcome.status.value,
        "previous_version": outcome.previous_version or "",
        "new_version": outcome.new_version or "",
        "tag": outcome.tag or "",
        "commit_sha": outcome.commit_sha or "",
    }
    with open(github_output, "a", encoding="utf-8") as f:
        for name, value in outputs.items():
            f.write(f"{name}={value}\n")


def get_github_config(ctx: typer.Context, allow_anonymous: bool = True) -> GitHubConfig:
    """Reconcile the GitHub options stored by the main callback with the environment."""
    return asyncio.run(
        reconcile_github_configuration(
            settings=get_settings(),
            cli_debug=ctx.obj["debug"],
            cli_github_api_url=ctx.obj["github_api_url"],
            cli_github_pat_token=ctx.obj["github_pat_token"],
            cli_github_app_id=ctx.obj["github_app_id"],
            cli_github_app_private_key_path=ctx.obj["github_app_private_key_path"],
            cli_github_app_installation_id=ctx.obj["github_app_installation_id"],
            allow_anonymous=allow_anonymous,
        )
    )


@typer_app.callback()
def main_callback(
    ctx: typer.Context,
    debug: Annotated[bool | None, Option("--debug/--no-debug", help="Enable debug logging.")] = None,
    github_api_url: Annotated[str | None, Option(help="GitHub API URL.")] = None,
    github_pat_token: Annotated[str | None, Option(help="GitHub Personal Access Token.")] = None,
    github_app_id: Annotated[int | None, Option(help="GitHub App ID.")] = None,
    github_app_private_key_path: Annotated[Path | None, Option(help="Path to GitHub App private key.")] = None,
    github_app_installation_id: Annotated[int | None, Option(help="GitHub App Installation ID.")] = None,
) -> None:
    """Store the shared GitHub options and configure logging."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["github_api_url"] = github_api_url
    ctx.obj["github_pat_token"] = github_pat_token
    ctx.obj["github_app_id"] = github_app_id
    ctx.obj["github_app_private_key_path"] = github_app_private_key_path
    ctx.obj["github_app_installation_id"] = github_app_installation_id
    configure_logging(debug if debug is not None else get_settings().DEBUG)


@typer_app.command(name="init")
def init_cli(
    ctx: typer.Context,
    path: Annotated[Path, Argument(help="Directory to create the mirror repository in.")],
    upstream_repo: Annotated[str, Option(help="Upstream repository (owner/repo).")],
    locale: Annotated[str, Option(help="Locale prefix of the upstream version branches, e.g. 'gb'.")],
    upstream_url: Annotated[str | None, Option(help="Plain git URL of the upstream, instead of the GitHub API.")] = None,
    branch: Annotated[str, Option(help="Branch of the mirror that receives synced content.")] = "main",
    schedule: Annotated[str, Option(help="Cron schedule of the sync workflow.")] = DEFAULT_SCHEDULE,
    package_spec: Annotated[str, Option(help="pip requirement the sync workflow installs.")] = "version-mirror",
    remote_url: Annotated[str | None, Option(help="URL of the mirror's remote.")] = None,
    create_github_repo: Annotated[str | None, Option(help="Create this GitHub repository (owner/repo) for the mirror.")] = None,
    private: Annotated[bool, Option(help="Make the created GitHub repository private.")] = False,
    push: Annotated[bool, Option(help="Push the initial commit to the remote.")] = False,
) -> None:
    """Provision a new mirror repository with its sync workflow."""
    try:
        config = MirrorConfig(
            upstream_repo=upstream_repo,
            locale=locale,
            upstream_url=upstream_url,
            branch=branch,
            schedule=schedule,
            package_spec=package_spec,
        )
    except ValidationError as exc:
        typer.echo(f"Invalid mirror configuration: {exc}", err=True)
        raise typer.Exit(1) from exc

    try:
        github_config = get_github_config(ctx, allow_anonymous=create_github_repo is None)
        result = asyncio.run(
            provision_mirror(
                path,
                config,
                github_config,
                remote_url=remote_url,
                create_github_repo=create_github_repo,
                private=private,
                push=push,
            )
        )
    except HANDLED_ERRORS as exc:
        typer.echo(f"Error provisioning mirror: {exc}", err=True)
        raise typer.Exit(1) from exc

    typer.echo(f"Provisioned mirror at {result.root.absolute()} (marker {result.initial_version}, commit {result.commit_sha[:12]})")
    for rendered_file in result.rendered_files:
        typer.echo(f"  - {rendered_file.relative_to(result.root)}")
    if result.remote_url:
        typer.echo(f"Remote: {result.remote_url}{' (pushed)' if result.pushed else ''}")


@typer_app.command(name="render")
def render_cli(
    ctx: typer.Context,
    mirror_path: Annotated[Path, Option(envvar="MIRROR_PATH", help="Root of the mirror repository.")] = Path("."),
) -> None:
    """Re-render the sync workflow and README from the mirror configuration."""
    try:
        config = load_mirror_config(mirror_path / DEFAULT_CONFIG_FILENAME)
        github_config = get_github_config(ctx)
    except HANDLED_ERRORS as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc
    rendered_files = render_mirror_files(mirror_path, config, github_config.github_api_url)
    typer.echo(f"Rendered {len(rendered_files)} file(s):")
    for rendered_file in rendered_files:
        typer.echo(f"  - {rendered_file.relative_to(mirror_path)}")


@typer_app.command(name="resolve")
def resolve_cli(
    ctx: typer.Context,
    upstream_repo: Annotated[str | None, Option(help="Upstream repository (owner/repo). Defaults to the mirror configuration.")] = None,
    locale: Annotated[str | None, Option(help="Locale prefix of the version branches. Defaults to the mirror configuration.")] = None,
    upstream_url: Annotated[str | None, Option(help="Plain git URL of the upstream, instead of the GitHub API.")] = None,
    mirror_path: Annotated[Path, Option(envvar="MIRROR_PATH", help="Root of the mirror repository.")] = Path("."),
) -> None:
    """Print the latest upstream version branch."""
    try:
        if upstream_repo and locale:
            config = MirrorConfig(upstream_repo=upstream_repo, locale=locale, upstream_url=upstream_url)
        else:
            config = load_mirror_config(mirror_path / DEFAULT_CONFIG_FILENAME)
        github_config = get_github_config(ctx)
        latest = asyncio.run(resolve_upstream_version(config, github_config))
    except ValidationError as exc:
        typer.echo(f"Invalid mirror configuration: {exc}", err=True)
        raise typer.Exit(1) from exc
    except HANDLED_ERRORS as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc

    if latest is None:
        typer.echo(f"No upstream branch matches '{config.locale}-<number>'", err=True)
        raise typer.Exit(1)
    typer.echo(latest)


@typer_app.command(name="sync")
def sync_cli(
    ctx: typer.Context,
    mirror_path: Annotated[Path, Option(envvar="MIRROR_PATH", help="Root of the mirror repository.")] = Path("."),
    dry_run: Annotated[bool, Option(help="Only report whether a sync is needed.")] = False,
    publish: Annotated[bool | None, Option("--publish/--no-publish", help="Push the commit and tag (defaults to the configuration).")] = None,
) -> None:
    """Run one sync attempt: update the mirror if upstream has a newer version."""
    try:
        config = load_mirror_config(mirror_path / DEFAULT_CONFIG_FILENAME)
        github_config = get_github_config(ctx)
        outcome = asyncio.run(run_sync_workflow(mirror_path, config, github_config, dry_run=dry_run, publish=publish))
    except HANDLED_ERRORS as exc:
        typer.echo(f"Sync failed: {exc}", err=True)
        raise typer.Exit(1) from exc

    write_github_outputs(outcome)
    typer.echo(f"Status: {outcome.status.value}")
    if outcome.previous_version or outcome.new_version:
        typer.echo(f"Version: {outcome.previous_version} -> {outcome.new_version}")
    if outcome.commit_sha:
        typer.echo(f"Commit: {outcome.commit_sha}")
    if outcome.tag:
        typer.echo(f"Tag: {outcome.tag}")


if __name__ == "__main__":
    typer_app()
