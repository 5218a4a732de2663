"""Shared constants used across the application."""

# Mirror Configuration Constants
# ------------------------------

DEFAULT_CONFIG_FILENAME = ".mirror.yaml"
"""Name of the configuration file stored at the root of every mirror."""

DEFAULT_MARKER_PATH = ".upstream-version"
"""Path, relative to the mirror root, of the file holding the synced version."""

DEFAULT_WORKFLOW_PATH = ".github/workflows/sync-upstream.yml"
"""Path, relative to the mirror root, of the generated GitHub Actions workflow."""

DEFAULT_README_PATH = "README.md"
"""Path, relative to the mirror root, of the generated README."""

DEFAULT_PRESERVED_PATHS = (".github", DEFAULT_README_PATH)
"""Local-only paths kept across every content replacement (marker and config are always added)."""

DEFAULT_SCHEDULE = "17 5 * * *"
"""Default cron schedule for the generated workflow (daily, off the top of the hour)."""

# Sync Record Constants
# ---------------------

DEFAULT_TAG_FORMAT = "{version}-{date}"
"""Tag name template. Receives the target version and the formatted sync date."""

DEFAULT_DATE_FORMAT = "%Y%m%d"
"""strftime format for the date placed in tag names."""

DEFAULT_COMMIT_MESSAGE = "Sync upstream {version}"
"""Commit message template. Receives the target and previous versions."""

SENTINEL_VERSION_NUMBER = 0
"""Version number written into a freshly provisioned mirror's marker."""

GITHUB_ACTIONS_BOT_NAME = "github-actions[bot]"
GITHUB_ACTIONS_BOT_EMAIL = "41898282+github-actions[bot]@users.noreply.github.com"

# GitHub Constants
# ----------------

DEFAULT_GITHUB_API_URL = "https://api.github.com"
"""Public GitHub REST API URL."""
