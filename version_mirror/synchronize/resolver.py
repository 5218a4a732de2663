"""Resolves the newest upstream version from a set of branch names."""

import re
from collections.abc import Iterable

import structlog

from version_mirror.utils.constants import SENTINEL_VERSION_NUMBER

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def version_pattern(locale: str) -> re.Pattern[str]:
    """Pattern matching `{locale}-{N}` exactly, capturing N."""
    return re.compile(rf"^{re.escape(locale)}-([0-9]+)$")


def parse_version_number(locale: str, branch: str) -> int | None:
    """Return the numeric suffix of branch, or None if it is not a version of locale."""
    match = version_pattern(locale).match(branch)
    if match is None:
        return None
    return int(match.group(1))


def sentinel_version(locale: str) -> str:
    """Marker value of a mirror that has never been synced."""
    return f"{locale}-{SENTINEL_VERSION_NUMBER}"


def resolve_latest(locale: str, upstream_branches: Iterable[str]) -> str | None:
    """Return the branch with the highest numeric suffix for locale.

    Versions are compared as integers, so `gb-10` is newer than `gb-9`.
    Returns None when no branch matches `{locale}-{digits}`.
    """
    candidates: list[tuple[int, str]] = []
    for branch in upstream_branches:
        number = parse_version_number(locale, branch)
        if number is not None:
            candidates.append((number, branch))
    if not candidates:
        logger.info("No upstream branch matches the locale", locale=locale)
        return None
    _, latest = max(candidates)
    logger.debug("Resolved latest upstream version", locale=locale, version=latest, candidate_count=len(candidates))
    return latest
