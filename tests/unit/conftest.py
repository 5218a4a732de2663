"""Fixtures for unit tests."""

from pathlib import Path
from typing import Generator

import pytest
import structlog

from tests.unit.utils import git, make_upstream, write_tree
from version_mirror.configuration.models import GitHubAuthenticationType, GitHubConfig
from version_mirror.mirror.repository import GitMirrorRepository
from version_mirror.schemas.mirror_config import MirrorConfig
from version_mirror.utils.constants import DEFAULT_CONFIG_FILENAME, DEFAULT_GITHUB_API_URL
from version_mirror.utils.yaml import dump_mirror_config

UPSTREAM_BRANCHES: dict[str, dict[str, str]] = {
    "gb-9": {"README.md": "Upstream readme gb-9\n", "src/version.txt": "gb-9\n", "src/legacy.txt": "only in gb-9\n"},
    "gb-10": {"README.md": "Upstream readme gb-10\n", "src/version.txt": "gb-10\n"},
    "gb-27": {
        "README.md": "Upstream readme gb-27\n",
        "src/version.txt": "gb-27\n",
        "src/engine/core.txt": "core of gb-27\n",
        ".github/workflows/upstream-ci.yml": "name: upstream ci\n",
    },
    "de-40": {"README.md": "Upstream readme de-40\n", "src/version.txt": "de-40\n"},
    "develop": {"README.md": "Work in progress\n"},
}


@pytest.fixture(autouse=True)
def configure_structlog_for_caplog() -> Generator[None, None, None]:
    """Configure structlog for use with caplog."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def upstream_url(tmp_path: Path) -> str:
    """URL of a local upstream with gb-9, gb-10, gb-27, de-40 and develop branches."""
    return make_upstream(tmp_path / "upstream", UPSTREAM_BRANCHES)


@pytest.fixture
def origin_path(tmp_path: Path) -> Path:
    """Bare repository acting as the mirror's publish remote."""
    origin = tmp_path / "origin.git"
    origin.mkdir()
    git(origin, "init", "--quiet", "--bare")
    return origin


@pytest.fixture
def mirror_config(upstream_url: str) -> MirrorConfig:
    """Configuration of a gb mirror that syncs from the local upstream."""
    return MirrorConfig(upstream_repo="example/upstream", locale="gb", upstream_url=upstream_url)


@pytest.fixture
def github_config() -> GitHubConfig:
    """Anonymous GitHub configuration."""
    return GitHubConfig(
        debug=False,
        github_api_url=DEFAULT_GITHUB_API_URL,
        github_authentication_type=GitHubAuthenticationType.ANONYMOUS,
        github_pat_token=None,
        github_app_id=None,
        github_app_private_key_path=None,
        github_app_installation_id=None,
    )


@pytest.fixture
def mirror(tmp_path: Path, mirror_config: MirrorConfig, origin_path: Path) -> GitMirrorRepository:
    """A provisioned gb mirror at gb-0 with local-only files, pushed to a bare origin."""
    root = tmp_path / "mirror"
    repository = GitMirrorRepository.initialize(
        root,
        mirror_config.marker_path,
        branch=mirror_config.branch,
        committer_name="Test User",
        committer_email="test@example.com",
    )
    dump_mirror_config(mirror_config, root / DEFAULT_CONFIG_FILENAME)
    write_tree(
        root,
        {
            "README.md": "Mirror readme\n",
            ".github/workflows/sync-upstream.yml": "name: sync\n",
            "stale.txt": "not part of any upstream version\n",
        },
    )
    repository.write_marker("gb-0")
    repository.stage_all()
    repository.commit("Initialize mirror")
    repository.add_remote(origin_path.as_uri())
    repository.publish()
    return repository
