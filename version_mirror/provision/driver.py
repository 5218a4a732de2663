"""Provisions a new mirror repository and renders its automation files."""

import math
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from version_mirror.configuration.models import GitHubConfig
from version_mirror.github.adapter import GitHubKitAdapter
from version_mirror.mirror.repository import GitMirrorRepository, is_preserved
from version_mirror.schemas.mirror_config import MirrorConfig
from version_mirror.synchronize.resolver import sentinel_version
from version_mirror.utils.constants import DEFAULT_CONFIG_FILENAME, DEFAULT_README_PATH, DEFAULT_WORKFLOW_PATH
from version_mirror.utils.github import github_web_url
from version_mirror.utils.templates import TEMPLATES_DIRECTORY, construct_jinja2_template_from_file, render_template_with_model
from version_mirror.utils.yaml import dump_mirror_config

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

WORKFLOW_TEMPLATE = "sync-workflow.yml.j2"
README_TEMPLATE = "README.md.j2"

# Minutes a scheduled job may run: listing, fetch and push each get the configured timeout.
MINIMUM_JOB_TIMEOUT_MINUTES = 10


@dataclass
class ProvisionResult:
    """Contains results of the init workflow."""

    root: Path
    commit_sha: str
    initial_version: str
    rendered_files: list[Path] = field(default_factory=list)
    remote_url: str | None = None
    pushed: bool = False


def job_timeout_minutes(config: MirrorConfig) -> int:
    """Timeout for the generated workflow job, derived from the per-command timeout."""
    return max(MINIMUM_JOB_TIMEOUT_MINUTES, math.ceil(config.timeout * 3 / 60) + 5)


def render_mirror_files(root: Path, config: MirrorConfig, github_api_url: str) -> list[Path]:
    """Render the sync workflow and the README into the mirror at root."""
    for generated in (DEFAULT_WORKFLOW_PATH, DEFAULT_README_PATH):
        if not is_preserved(generated, config.preserved_paths):
            logger.warning("Generated file is not preserved and will be overwritten by upstream content", path=generated)

    upstream_web_url = config.upstream_url or f"{github_web_url(github_api_url)}/{config.upstream_repo}"
    context = {
        "job_timeout_minutes": job_timeout_minutes(config),
        "upstream_web_url": upstream_web_url,
        "workflow_path": DEFAULT_WORKFLOW_PATH,
        "example_tag": config.tag_format.format(version=f"{config.locale}-N", date=config.date_format),
    }
    rendered: list[Path] = []
    for template_name, relative_path in ((WORKFLOW_TEMPLATE, DEFAULT_WORKFLOW_PATH), (README_TEMPLATE, DEFAULT_README_PATH)):
        template = construct_jinja2_template_from_file(TEMPLATES_DIRECTORY / template_name)
        destination = root / relative_path
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(render_template_with_model(config, template, **context), encoding="utf-8")
        logger.info("Rendered mirror file", path=relative_path)
        rendered.append(destination)
    return rendered


async def provision_mirror(
    root: Path,
    config: MirrorConfig,
    github_config: GitHubConfig,
    remote_url: str | None = None,
    create_github_repo: str | None = None,
    private: bool = False,
    push: bool = False,
) -> ProvisionResult:
    """Create a new mirror repository at root.

    Writes the configuration file, the sentinel version marker, the sync
    workflow and the README, then makes the initial commit. Optionally creates
    the GitHub repository, registers it as the remote, and pushes.
    """
    mirror = GitMirrorRepository.initialize(
        root,
        config.marker_path,
        branch=config.branch,
        remote=config.remote,
        committer_name=config.committer_name,
        committer_email=config.committer_email,
        timeout=config.timeout,
    )
    dump_mirror_config(config, root / DEFAULT_CONFIG_FILENAME)
    rendered_files = render_mirror_files(root, config, github_config.github_api_url)
    initial_version = sentinel_version(config.locale)
    mirror.write_marker(initial_version)
    mirror.stage_all()
    commit_sha = mirror.commit(f"Initialize {config.locale} mirror of {config.upstream_repo}")
    result = ProvisionResult(root=root, commit_sha=commit_sha, initial_version=initial_version, rendered_files=rendered_files)

    if create_github_repo:
        github_adapter = await GitHubKitAdapter.create(
            repo=create_github_repo,
            github_auth_type=github_config.github_authentication_type,
            github_pat_token=github_config.github_pat_token,
            github_app_id=github_config.github_app_id,
            github_app_private_key_path=github_config.github_app_private_key_path,
            github_app_installation_id=github_config.github_app_installation_id,
            github_api_url=github_config.github_api_url,
            timeout=config.timeout,
        )
        repository = await github_adapter.create_repository(
            description=f"Mirror of the latest {config.locale} version of {config.upstream_repo}",
            private=private,
        )
        logger.info("GitHub repository ready", repo=create_github_repo, html_url=repository.html_url)
        remote_url = remote_url or repository.clone_url

    if remote_url:
        mirror.add_remote(remote_url)
        result.remote_url = remote_url
        if push:
            mirror.publish()
            result.pushed = True
    elif push:
        logger.warning("Nothing to push to, no remote was configured")

    logger.info("Provisioned mirror", root=str(root), initial_version=initial_version, commit_sha=commit_sha)
    return result
