"""Decides whether a mirror is stale and, if so, replaces and republishes its content."""

import tempfile
from collections.abc import Callable, Iterable
from datetime import date
from pathlib import Path

import structlog

from version_mirror.mirror.abc import MirrorRepositoryBase
from version_mirror.mirror.exceptions import TagAlreadyExistsError
from version_mirror.synchronize.models import SyncOutcome, SyncState, SyncStatus
from version_mirror.synchronize.resolver import resolve_latest
from version_mirror.upstream.abc import UpstreamSourceBase
from version_mirror.utils.constants import DEFAULT_COMMIT_MESSAGE, DEFAULT_DATE_FORMAT, DEFAULT_TAG_FORMAT

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def format_tag_name(version: str, sync_date: date, tag_format: str = DEFAULT_TAG_FORMAT, date_format: str = DEFAULT_DATE_FORMAT) -> str:
    """Derive the tag name for a synced version, e.g. 'gb-27-20261018'."""
    return tag_format.format(version=version, date=sync_date.strftime(date_format))


class SyncExecutor:
    """Runs one sync attempt of a mirror against its upstream.

    The attempt walks IDLE -> CHECKING -> UP_TO_DATE, or
    CHECKING -> FETCHING -> REPLACING -> COMMITTING -> TAGGING -> PUBLISHED.
    Nothing is committed until the replaced content is staged, and any failure
    before the commit discards the working tree changes. A failed push resets
    the branch to its pre-sync commit and drops the new tag, so the persisted
    marker only ever moves together with the content it describes.
    """

    def __init__(
        self,
        mirror: MirrorRepositoryBase,
        upstream: UpstreamSourceBase,
        locale: str,
        preserved_paths: Iterable[str],
        tag_format: str = DEFAULT_TAG_FORMAT,
        date_format: str = DEFAULT_DATE_FORMAT,
        commit_message: str = DEFAULT_COMMIT_MESSAGE,
        publish: bool = True,
        dry_run: bool = False,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize the executor with its collaborators and fixed configuration."""
        self.mirror = mirror
        self.upstream = upstream
        self.locale = locale
        self.preserved_paths = list(preserved_paths)
        self.tag_format = tag_format
        self.date_format = date_format
        self.commit_message = commit_message
        self.publish = publish
        self.dry_run = dry_run
        self.today = today
        self.state = SyncState.IDLE

    def _transition(self, state: SyncState, **context: object) -> None:
        logger.info("Sync state changed", previous_state=self.state.value, state=state.value, **context)
        self.state = state

    async def run(self) -> SyncOutcome:
        """Run one sync attempt: resolve the newest upstream version and sync to it."""
        self.state = SyncState.IDLE
        current = self.mirror.read_marker()
        branches = await self.upstream.list_branches()
        target = resolve_latest(self.locale, branches)
        if target is None:
            logger.warning("No upstream version matches the locale, nothing to do", locale=self.locale, source=self.upstream.source)
            return SyncOutcome(status=SyncStatus.NO_MATCHING_VERSION, previous_version=current)
        return await self.sync(current, target)

    async def sync(self, current: str, target: str) -> SyncOutcome:
        """Bring the mirror from version current to version target."""
        self._transition(SyncState.CHECKING, current=current, target=target)
        if current == target:
            self._transition(SyncState.UP_TO_DATE, version=current)
            return SyncOutcome(status=SyncStatus.UP_TO_DATE, previous_version=current, new_version=target)
        if self.dry_run:
            logger.info("Dry run, mirror would be synced", current=current, target=target)
            return SyncOutcome(status=SyncStatus.DRY_RUN, previous_version=current, new_version=target)

        with tempfile.TemporaryDirectory(prefix="version-mirror-") as workspace:
            self._transition(SyncState.FETCHING, version=target)
            snapshot = await self.upstream.fetch_snapshot(target, Path(workspace) / "snapshot")
            pre_sync_sha = self.mirror.head_sha()
            try:
                self._transition(SyncState.REPLACING, version=target)
                self.mirror.replace_content(snapshot, self.preserved_paths)

                self._transition(SyncState.COMMITTING, version=target)
                self.mirror.stage_all()
                if not self.mirror.has_staged_changes(exclude=self.preserved_paths):
                    logger.info(
                        "Upstream content is identical to the mirror, skipping commit; the next run will fetch it again",
                        current=current,
                        target=target,
                    )
                    self.mirror.discard_changes()
                    return SyncOutcome(status=SyncStatus.NO_CHANGE, previous_version=current, new_version=target)
                self.mirror.write_marker(target)
                self.mirror.stage_all()
                commit_sha = self.mirror.commit(self.commit_message.format(version=target, previous_version=current))
            except Exception:
                logger.error("Sync failed before commit, discarding working tree changes", current=current, target=target)
                self.mirror.discard_changes()
                raise

        self._transition(SyncState.TAGGING, version=target)
        tag: str | None = format_tag_name(target, self.today(), self.tag_format, self.date_format)
        try:
            self.mirror.tag(tag)
        except TagAlreadyExistsError:
            logger.warning("Tag already exists, continuing without it", tag=tag)
            tag = None

        if self.publish:
            try:
                self.mirror.publish()
            except Exception:
                logger.error("Publishing failed, rolling the mirror back to its pre-sync commit", sha=pre_sync_sha, target=target)
                self._roll_back(pre_sync_sha, tag)
                raise
            if tag is not None:
                try:
                    self.mirror.publish_tag(tag)
                except TagAlreadyExistsError:
                    logger.warning("Tag already exists on the remote, branch was published without it", tag=tag)
                    tag = None

        self._transition(SyncState.PUBLISHED, previous_version=current, new_version=target, commit_sha=commit_sha, tag=tag)
        return SyncOutcome(
            status=SyncStatus.PUBLISHED,
            previous_version=current,
            new_version=target,
            commit_sha=commit_sha,
            tag=tag,
            published=self.publish,
        )

    def _roll_back(self, sha: str, tag: str | None) -> None:
        # The local marker must not move ahead of the published branch.
        if tag is not None:
            self.mirror.delete_tag(tag)
        self.mirror.reset_to(sha)
