"""Unit tests for the SyncExecutor against real git repositories."""

from datetime import date
from pathlib import Path
from typing import Any

import pytest
from pytest import MonkeyPatch

from tests.unit.utils import git, make_upstream
from version_mirror.mirror.exceptions import PublishConflictError
from version_mirror.mirror.repository import GitMirrorRepository
from version_mirror.schemas.mirror_config import MirrorConfig
from version_mirror.synchronize.executor import SyncExecutor, format_tag_name
from version_mirror.synchronize.models import SyncState, SyncStatus
from version_mirror.upstream.abc import UpstreamSourceBase
from version_mirror.upstream.exceptions import UpstreamUnavailableError
from version_mirror.upstream.git_remote import GitRemoteUpstream
from version_mirror.utils.git import GitCommandError

SYNC_DATE = date(2026, 10, 18)
EXPECTED_TAG = "gb-27-20261018"


class UnreachableSnapshotUpstream(UpstreamSourceBase):
    """Upstream whose listing works but whose snapshot fetch fails."""

    @property
    def source(self) -> str:
        """Identifier used in logs."""
        return "unreachable"

    async def list_branches(self) -> set[str]:
        """Advertise a single newer version."""
        return {"gb-5"}

    async def fetch_snapshot(self, version: str, destination: Path) -> Path:
        """Fail like a timed out clone."""
        raise UpstreamUnavailableError(f"Timed out fetching {version}", self.source)


def make_executor(mirror: GitMirrorRepository, upstream: UpstreamSourceBase, config: MirrorConfig, **kwargs: Any) -> SyncExecutor:
    """Build an executor with a fixed sync date."""
    return SyncExecutor(mirror, upstream, config.locale, config.preserved_paths, today=lambda: SYNC_DATE, **kwargs)


def commit_count(root: Path) -> int:
    """Number of commits reachable from HEAD."""
    return int(git(root, "rev-list", "--count", "HEAD").strip())


def working_tree_status(root: Path) -> str:
    """Porcelain status, empty when the working tree is clean."""
    return git(root, "status", "--porcelain")


def test_format_tag_name() -> None:
    """Tags combine the version and the sync date."""
    assert format_tag_name("gb-27", SYNC_DATE) == EXPECTED_TAG
    assert format_tag_name("gb-27", SYNC_DATE, tag_format="v/{version}", date_format="%Y") == "v/gb-27"


@pytest.mark.asyncio
async def test_sync_from_sentinel_publishes_latest_version(
    mirror: GitMirrorRepository, mirror_config: MirrorConfig, upstream_url: str, origin_path: Path
) -> None:
    """A fresh mirror moves to the newest version with exactly one commit and one tag."""
    executor = make_executor(mirror, GitRemoteUpstream(upstream_url), mirror_config)

    outcome = await executor.run()

    assert outcome.status == SyncStatus.PUBLISHED
    assert outcome.previous_version == "gb-0"
    assert outcome.new_version == "gb-27"
    assert outcome.tag == EXPECTED_TAG
    assert outcome.published is True
    assert executor.state == SyncState.PUBLISHED
    assert commit_count(mirror.root) == 2
    assert git(mirror.root, "tag", "--list").split() == [EXPECTED_TAG]
    assert git(mirror.root, "rev-parse", "HEAD").strip() == outcome.commit_sha
    assert git(mirror.root, "log", "-1", "--format=%s").strip() == "Sync upstream gb-27"
    assert mirror.read_marker() == "gb-27"
    assert working_tree_status(mirror.root) == ""

    # Published to the remote
    assert git(origin_path, "rev-parse", "refs/heads/main").strip() == outcome.commit_sha
    assert git(origin_path, "tag", "--list").split() == [EXPECTED_TAG]


@pytest.mark.asyncio
async def test_sync_replaces_content_and_keeps_preserved_paths(
    mirror: GitMirrorRepository, mirror_config: MirrorConfig, upstream_url: str
) -> None:
    """Upstream content replaces local content everywhere except preserved paths."""
    await make_executor(mirror, GitRemoteUpstream(upstream_url), mirror_config).run()

    root = mirror.root
    assert (root / "src" / "version.txt").read_text() == "gb-27\n"
    assert (root / "src" / "engine" / "core.txt").read_text() == "core of gb-27\n"
    assert not (root / "stale.txt").exists()
    # Preserved paths keep their local content
    assert (root / "README.md").read_text() == "Mirror readme\n"
    assert (root / ".github" / "workflows" / "sync-upstream.yml").read_text() == "name: sync\n"
    assert not (root / ".github" / "workflows" / "upstream-ci.yml").exists()
    assert (root / ".mirror.yaml").is_file()


@pytest.mark.asyncio
async def test_second_run_is_up_to_date(mirror: GitMirrorRepository, mirror_config: MirrorConfig, upstream_url: str) -> None:
    """Running again without upstream changes has no side effects."""
    await make_executor(mirror, GitRemoteUpstream(upstream_url), mirror_config).run()
    head = git(mirror.root, "rev-parse", "HEAD")

    executor = make_executor(mirror, GitRemoteUpstream(upstream_url), mirror_config)
    outcome = await executor.run()

    assert outcome.status == SyncStatus.UP_TO_DATE
    assert outcome.previous_version == outcome.new_version == "gb-27"
    assert executor.state == SyncState.UP_TO_DATE
    assert git(mirror.root, "rev-parse", "HEAD") == head
    assert git(mirror.root, "tag", "--list").split() == [EXPECTED_TAG]


@pytest.mark.asyncio
async def test_identical_content_is_not_committed(mirror: GitMirrorRepository, mirror_config: MirrorConfig, upstream_url: str) -> None:
    """A version whose content matches the mirror creates no commit and leaves the marker alone."""
    await make_executor(mirror, GitRemoteUpstream(upstream_url), mirror_config).run()
    head = git(mirror.root, "rev-parse", "HEAD")

    outcome = await make_executor(mirror, GitRemoteUpstream(upstream_url), mirror_config).sync("gb-26", "gb-27")

    assert outcome.status == SyncStatus.NO_CHANGE
    assert outcome.commit_sha is None
    assert outcome.tag is None
    assert git(mirror.root, "rev-parse", "HEAD") == head
    assert mirror.read_marker() == "gb-27"
    assert working_tree_status(mirror.root) == ""


@pytest.mark.asyncio
async def test_dry_run_has_no_side_effects(mirror: GitMirrorRepository, mirror_config: MirrorConfig, upstream_url: str) -> None:
    """A dry run reports the pending sync without touching the mirror."""
    head = git(mirror.root, "rev-parse", "HEAD")

    outcome = await make_executor(mirror, GitRemoteUpstream(upstream_url), mirror_config, dry_run=True).run()

    assert outcome.status == SyncStatus.DRY_RUN
    assert outcome.new_version == "gb-27"
    assert git(mirror.root, "rev-parse", "HEAD") == head
    assert (mirror.root / "stale.txt").exists()


@pytest.mark.asyncio
async def test_no_matching_version(mirror: GitMirrorRepository, upstream_url: str) -> None:
    """A locale without versions upstream is reported, not raised."""
    executor = SyncExecutor(mirror, GitRemoteUpstream(upstream_url), "fr", [".github"])

    outcome = await executor.run()

    assert outcome.status == SyncStatus.NO_MATCHING_VERSION
    assert outcome.previous_version == "gb-0"
    assert outcome.new_version is None
    assert commit_count(mirror.root) == 1


@pytest.mark.asyncio
async def test_unavailable_upstream_leaves_mirror_untouched(tmp_path: Path, mirror: GitMirrorRepository, mirror_config: MirrorConfig) -> None:
    """Listing failures surface as UpstreamUnavailableError."""
    upstream = GitRemoteUpstream((tmp_path / "does-not-exist").as_uri(), timeout=30)

    with pytest.raises(UpstreamUnavailableError):
        await make_executor(mirror, upstream, mirror_config).run()

    assert mirror.read_marker() == "gb-0"
    assert commit_count(mirror.root) == 1


@pytest.mark.asyncio
async def test_fetch_failure_leaves_mirror_untouched(mirror: GitMirrorRepository, mirror_config: MirrorConfig) -> None:
    """A failed snapshot fetch changes neither content nor marker."""
    head = git(mirror.root, "rev-parse", "HEAD")

    with pytest.raises(UpstreamUnavailableError):
        await make_executor(mirror, UnreachableSnapshotUpstream(), mirror_config).run()

    assert git(mirror.root, "rev-parse", "HEAD") == head
    assert mirror.read_marker() == "gb-0"
    assert working_tree_status(mirror.root) == ""


@pytest.mark.asyncio
async def test_commit_failure_discards_replaced_content(
    monkeypatch: MonkeyPatch, mirror: GitMirrorRepository, mirror_config: MirrorConfig, upstream_url: str
) -> None:
    """A failure after replacing content restores the working tree and the marker."""

    def failing_commit(message: str) -> str:
        raise GitCommandError(["git", "commit", "-m", message], 1, "simulated failure")

    monkeypatch.setattr(mirror, "commit", failing_commit)

    with pytest.raises(GitCommandError):
        await make_executor(mirror, GitRemoteUpstream(upstream_url), mirror_config).run()

    assert mirror.read_marker() == "gb-0"
    assert (mirror.root / "stale.txt").read_text() == "not part of any upstream version\n"
    assert not (mirror.root / "src").exists()
    assert working_tree_status(mirror.root) == ""


@pytest.mark.asyncio
async def test_existing_tag_is_not_fatal(mirror: GitMirrorRepository, mirror_config: MirrorConfig, upstream_url: str, origin_path: Path) -> None:
    """A tag that already exists is skipped while the commit is still published."""
    git(mirror.root, "tag", EXPECTED_TAG)

    outcome = await make_executor(mirror, GitRemoteUpstream(upstream_url), mirror_config).run()

    assert outcome.status == SyncStatus.PUBLISHED
    assert outcome.tag is None
    assert outcome.commit_sha is not None
    assert git(origin_path, "rev-parse", "refs/heads/main").strip() == outcome.commit_sha
    assert git(origin_path, "tag", "--list").strip() == ""


@pytest.mark.asyncio
async def test_publish_disabled_keeps_changes_local(
    mirror: GitMirrorRepository, mirror_config: MirrorConfig, upstream_url: str, origin_path: Path
) -> None:
    """With publishing disabled the commit and tag stay in the local repository."""
    remote_head = git(origin_path, "rev-parse", "refs/heads/main")

    outcome = await make_executor(mirror, GitRemoteUpstream(upstream_url), mirror_config, publish=False).run()

    assert outcome.status == SyncStatus.PUBLISHED
    assert outcome.published is False
    assert outcome.tag == EXPECTED_TAG
    assert git(origin_path, "rev-parse", "refs/heads/main") == remote_head
    assert git(mirror.root, "tag", "--list").split() == [EXPECTED_TAG]


@pytest.mark.asyncio
async def test_diverged_remote_raises_publish_conflict(
    tmp_path: Path, mirror: GitMirrorRepository, mirror_config: MirrorConfig, upstream_url: str, origin_path: Path
) -> None:
    """A remote that moved on rejects the push and the local sync is rolled back."""
    git(tmp_path, "clone", "--quiet", "--branch", "main", origin_path.as_uri(), "other")
    other = tmp_path / "other"
    (other / "concurrent.txt").write_text("pushed elsewhere\n")
    git(other, "add", "--all")
    git(other, "commit", "--quiet", "-m", "Concurrent change")
    git(other, "push", "--quiet", "origin", "HEAD:refs/heads/main")
    head = git(mirror.root, "rev-parse", "HEAD")

    with pytest.raises(PublishConflictError) as exc_info:
        await make_executor(mirror, GitRemoteUpstream(upstream_url), mirror_config).run()

    assert exc_info.value.ref == "refs/heads/main"
    assert exc_info.value.remote == "origin"
    # The unpublished commit and tag are rolled back
    assert git(mirror.root, "rev-parse", "HEAD") == head
    assert mirror.read_marker() == "gb-0"
    assert git(mirror.root, "tag", "--list") == ""
    assert working_tree_status(mirror.root) == ""

    # The next attempt retries the sync instead of reporting up_to_date
    with pytest.raises(PublishConflictError):
        await make_executor(mirror, GitRemoteUpstream(upstream_url), mirror_config).run()

    git(mirror.root, "pull", "--quiet", "--ff-only", "origin", "main")
    outcome = await make_executor(mirror, GitRemoteUpstream(upstream_url), mirror_config).run()

    assert outcome.status == SyncStatus.PUBLISHED
    assert git(origin_path, "show", "refs/heads/main:.upstream-version") == "gb-27\n"
    assert git(origin_path, "rev-parse", "refs/heads/main").strip() == outcome.commit_sha


@pytest.fixture
def ignoring_upstream_url(tmp_path: Path) -> str:
    """Upstream whose only version tracks a file matched by its own .gitignore."""
    root = tmp_path / "ignoring-upstream"
    make_upstream(root, {"gb-3": {".gitignore": "*.log\n", "a.txt": "a\n"}})
    (root / "keep.log").write_text("tracked despite .gitignore\n")
    git(root, "add", "--force", "keep.log")
    git(root, "commit", "--quiet", "-m", "Track keep.log")
    return root.as_uri()


@pytest.mark.asyncio
async def test_sync_keeps_files_matched_by_upstream_gitignore(
    mirror: GitMirrorRepository, mirror_config: MirrorConfig, ignoring_upstream_url: str, origin_path: Path
) -> None:
    """Every file of the upstream tree is committed, even when its .gitignore matches it."""
    outcome = await make_executor(mirror, GitRemoteUpstream(ignoring_upstream_url), mirror_config).run()

    assert outcome.status == SyncStatus.PUBLISHED
    assert outcome.new_version == "gb-3"
    tracked = git(mirror.root, "ls-files").split()
    assert {".gitignore", "a.txt", "keep.log"} <= set(tracked)
    assert git(origin_path, "show", "refs/heads/main:keep.log") == "tracked despite .gitignore\n"
    assert working_tree_status(mirror.root) == ""


@pytest.mark.asyncio
async def test_commit_failure_removes_ignored_upstream_files(
    monkeypatch: MonkeyPatch, mirror: GitMirrorRepository, mirror_config: MirrorConfig, ignoring_upstream_url: str
) -> None:
    """Discarding a failed replace also removes files the copied .gitignore matches."""

    def failing_commit(message: str) -> str:
        raise GitCommandError(["git", "commit", "-m", message], 1, "simulated failure")

    monkeypatch.setattr(mirror, "commit", failing_commit)

    with pytest.raises(GitCommandError):
        await make_executor(mirror, GitRemoteUpstream(ignoring_upstream_url), mirror_config).run()

    assert not (mirror.root / "keep.log").exists()
    assert not (mirror.root / ".gitignore").exists()
    assert mirror.read_marker() == "gb-0"
