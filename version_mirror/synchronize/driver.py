"""Orchestrates a sync attempt from configuration."""

import time
from pathlib import Path

import structlog

from version_mirror.configuration.models import GitHubAuthenticationType, GitHubConfig
from version_mirror.github.adapter import GitHubKitAdapter
from version_mirror.mirror.repository import GitMirrorRepository
from version_mirror.schemas.mirror_config import MirrorConfig
from version_mirror.synchronize.executor import SyncExecutor
from version_mirror.synchronize.models import SyncOutcome
from version_mirror.synchronize.resolver import resolve_latest
from version_mirror.upstream.abc import UpstreamSourceBase
from version_mirror.upstream.git_remote import GitRemoteUpstream
from version_mirror.upstream.github import GitHubUpstream
from version_mirror.utils.github import build_clone_url

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


async def build_upstream(config: MirrorConfig, github_config: GitHubConfig) -> UpstreamSourceBase:
    """Create the upstream source described by the configuration.

    A plain git URL takes precedence over the GitHub API.
    """
    if config.upstream_url:
        logger.info("Using git remote upstream", upstream_repo=config.upstream_repo)
        return GitRemoteUpstream(config.upstream_url, timeout=config.timeout)
    github_adapter = await GitHubKitAdapter.create(
        repo=config.upstream_repo,
        github_auth_type=github_config.github_authentication_type,
        github_pat_token=github_config.github_pat_token,
        github_app_id=github_config.github_app_id,
        github_app_private_key_path=github_config.github_app_private_key_path,
        github_app_installation_id=github_config.github_app_installation_id,
        github_api_url=github_config.github_api_url,
        timeout=config.timeout,
    )
    # Only a PAT can be embedded in a clone URL; public upstreams need none.
    token = github_config.github_pat_token if github_config.github_authentication_type == GitHubAuthenticationType.PAT else None
    clone_url = build_clone_url(github_config.github_api_url, config.upstream_repo, token)
    return GitHubUpstream(github_adapter, config.upstream_repo, clone_url, timeout=config.timeout)


def build_mirror(mirror_path: Path, config: MirrorConfig) -> GitMirrorRepository:
    """Create the mirror repository wrapper described by the configuration."""
    mirror = GitMirrorRepository(
        mirror_path,
        config.marker_path,
        branch=config.branch,
        remote=config.remote,
        committer_name=config.committer_name,
        committer_email=config.committer_email,
        timeout=config.timeout,
    )
    mirror.ensure_repository()
    return mirror


async def resolve_upstream_version(config: MirrorConfig, github_config: GitHubConfig) -> str | None:
    """List the upstream branches and return the latest version for the configured locale."""
    upstream = await build_upstream(config, github_config)
    branches = await upstream.list_branches()
    return resolve_latest(config.locale, branches)


async def run_sync_workflow(
    mirror_path: Path,
    config: MirrorConfig,
    github_config: GitHubConfig,
    dry_run: bool = False,
    publish: bool | None = None,
) -> SyncOutcome:
    """Run one sync attempt of the mirror at mirror_path."""
    mirror = build_mirror(mirror_path, config)
    upstream = await build_upstream(config, github_config)
    executor = SyncExecutor(
        mirror,
        upstream,
        config.locale,
        config.preserved_paths,
        tag_format=config.tag_format,
        date_format=config.date_format,
        commit_message=config.commit_message,
        publish=config.publish if publish is None else publish,
        dry_run=dry_run,
    )
    start_time = time.time()
    logger.info("Starting sync attempt", mirror_path=str(mirror_path), upstream=upstream.source, locale=config.locale)
    outcome = await executor.run()
    logger.info(
        "Finished sync attempt",
        status=outcome.status.value,
        previous_version=outcome.previous_version,
        new_version=outcome.new_version,
        tag=outcome.tag,
        duration=round(time.time() - start_time, 2),
    )
    return outcome
