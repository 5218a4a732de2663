"""Models describing a sync attempt and its result."""

from enum import Enum

from pydantic import BaseModel


class SyncState(str, Enum):
    """Steps of one sync attempt."""

    IDLE = "idle"
    CHECKING = "checking"
    UP_TO_DATE = "up_to_date"
    FETCHING = "fetching"
    REPLACING = "replacing"
    COMMITTING = "committing"
    TAGGING = "tagging"
    PUBLISHED = "published"


class SyncStatus(str, Enum):
    """Terminal status of a sync attempt that did not raise."""

    UP_TO_DATE = "up_to_date"
    NO_CHANGE = "no_change"
    PUBLISHED = "published"
    NO_MATCHING_VERSION = "no_matching_version"
    DRY_RUN = "dry_run"


class SyncOutcome(BaseModel):
    """Result of one sync attempt."""

    status: SyncStatus
    previous_version: str | None = None
    new_version: str | None = None
    commit_sha: str | None = None
    tag: str | None = None
    published: bool = False
