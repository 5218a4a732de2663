"""Pydantic schema for the mirror configuration file (.mirror.yaml)."""

import re

from pydantic import BaseModel, field_validator, model_validator

from version_mirror.utils.constants import (
    DEFAULT_COMMIT_MESSAGE,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_DATE_FORMAT,
    DEFAULT_MARKER_PATH,
    DEFAULT_PRESERVED_PATHS,
    DEFAULT_SCHEDULE,
    DEFAULT_TAG_FORMAT,
    GITHUB_ACTIONS_BOT_EMAIL,
    GITHUB_ACTIONS_BOT_NAME,
)

LOCALE_PATTERN = re.compile(r"^[A-Za-z0-9_.]+$")


class MirrorConfig(BaseModel):
    """Pydantic model describing one mirror and the upstream it tracks."""

    upstream_repo: str
    locale: str
    upstream_url: str | None = None
    marker_path: str = DEFAULT_MARKER_PATH
    preserved_paths: list[str] = list(DEFAULT_PRESERVED_PATHS)
    branch: str = "main"
    remote: str = "origin"
    tag_format: str = DEFAULT_TAG_FORMAT
    date_format: str = DEFAULT_DATE_FORMAT
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    committer_name: str = GITHUB_ACTIONS_BOT_NAME
    committer_email: str = GITHUB_ACTIONS_BOT_EMAIL
    timeout: float = 600.0
    schedule: str = DEFAULT_SCHEDULE
    publish: bool = True
    package_spec: str = "version-mirror"

    @field_validator("locale")
    @classmethod
    def validate_locale(cls, value: str) -> str:
        """Locales become part of branch and tag names, so keep them simple."""
        if not LOCALE_PATTERN.match(value):
            raise ValueError(f"Locale must only contain letters, digits, '_' or '.': {value!r}")
        return value

    @field_validator("upstream_repo")
    @classmethod
    def validate_upstream_repo(cls, value: str) -> str:
        """Upstream repository must be in 'owner/repo' format."""
        parts = value.strip("/").split("/")
        if len(parts) != 2 or not all(parts):
            raise ValueError("Upstream repository must be in the format 'owner/repo'.")
        return value.strip("/")

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """Timeouts must be positive."""
        if value <= 0:
            raise ValueError("Timeout must be greater than zero.")
        return value

    @field_validator("preserved_paths")
    @classmethod
    def normalize_preserved_paths(cls, value: list[str]) -> list[str]:
        """Normalize preserved paths to relative POSIX paths without trailing slashes."""
        normalized: list[str] = []
        for path in value:
            cleaned = path.strip().strip("/")
            if not cleaned or cleaned == ".":
                raise ValueError("Preserved paths must not be empty or the repository root.")
            if ".." in cleaned.split("/"):
                raise ValueError(f"Preserved paths cannot contain '..': {path}")
            if cleaned == ".git" or cleaned.startswith(".git/"):
                raise ValueError("The .git directory is always preserved and cannot be listed.")
            if cleaned not in normalized:
                normalized.append(cleaned)
        return normalized

    @model_validator(mode="after")
    def include_marker_and_config(self) -> "MirrorConfig":
        """The version marker and the config file itself are always preserved."""
        for path in (self.marker_path.strip("/"), DEFAULT_CONFIG_FILENAME):
            if path not in self.preserved_paths:
                self.preserved_paths.append(path)
        return self
