"""bugboard constants: filesystem layout, board columns, timeouts."""

from __future__ import annotations

import os
import sys
from enum import IntEnum
from pathlib import Path

# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------


class ExitCode(IntEnum):
    SUCCESS = 0
    ERROR = 1
    CONFIG_ERROR = 2
    NETWORK_ERROR = 4


# ---------------------------------------------------------------------------
# Platform-specific config directory
# ---------------------------------------------------------------------------


def _default_data_dir() -> Path:
    """
    Return the platform-appropriate bugboard data directory.

    macOS : ~/Library/Application Support/bugboard
    Linux : ~/.config/bugboard
    Other : ~/.bugboard
    """
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "bugboard"
    if sys.platform.startswith("linux"):
        xdg = Path(os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config")))
        return xdg / "bugboard"
    return Path.home() / ".bugboard"


CONFIG_FILENAME = "config.toml"

# ---------------------------------------------------------------------------
# Remote endpoints
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8080/api"
DEFAULT_AI_URL = "http://localhost:8080/api/ai"

# ---------------------------------------------------------------------------
# Board
# ---------------------------------------------------------------------------

DEFAULT_COLUMNS: tuple[str, ...] = (
    "open",
    "in-progress",
    "in-review",
    "done",
    "resolved",
    "closed",
)

COLUMN_TITLES: dict[str, str] = {
    "open": "Open",
    "in-progress": "In Progress",
    "in-review": "In Review",
    "done": "Done",
    "resolved": "Resolved",
    "closed": "Closed",
}

UNKNOWN_COLUMN = "unknown"  # bucket for unmapped statuses (bucket policy only)

# Display fallbacks for malformed items
UNASSIGNED = "Unassigned"
NOT_AVAILABLE = "N/A"
UNTITLED = "Untitled"

# ---------------------------------------------------------------------------
# Timeouts and limits
# ---------------------------------------------------------------------------

DEFAULT_HTTP_TIMEOUT_SECONDS = 15.0
DEFAULT_RECONCILE_TIMEOUT_SECONDS = 10.0  # expiry is treated as a failed update
DEFAULT_DEBOUNCE_SECONDS = 0.8  # quiet period before analysis fires
DEFAULT_ANALYSIS_MIN_CHARS = 10
DEFAULT_SIMILAR_LIMIT = 3

# Analysis fallbacks when the AI service is unavailable
FALLBACK_PRIORITY = "MEDIUM"
FALLBACK_SEVERITY = "NORMAL"
