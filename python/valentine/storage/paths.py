"""Storage path building utilities.

Single point of logic for screenshot object names and download filenames.

Path Invariant:
    - Production: {page_id}-{epoch_ms}.png
    - Test: test_runs/{run_id}/{page_id}-{epoch_ms}.png

Rules:
    - No leading slash
    - No creator identifiers in paths
    - Prefix applied exactly once in build_screenshot_path()
"""

import os

# Environment variable for test run prefix
TEST_PREFIX_ENV_VAR = "STORAGE_TEST_PREFIX"

SCREENSHOT_EXTENSION = "png"
SCREENSHOT_CONTENT_TYPE = "image/png"


def _get_test_prefix() -> str:
    """Get the test prefix from environment ("" in production)."""
    prefix = os.environ.get(TEST_PREFIX_ENV_VAR, "")
    if prefix and not prefix.endswith("/"):
        prefix = f"{prefix}/"
    return prefix


def build_screenshot_path(page_id: str, timestamp_ms: int) -> str:
    """Build the storage path for an accepted-card screenshot.

    The timestamp keeps two uploads for the same page apart; if two ever land
    on the same millisecond the storage layer rejects the second one.

    Example:
        >>> build_screenshot_path("abc123", 1707900000000)
        'abc123-1707900000000.png'
    """
    prefix = _get_test_prefix()
    return f"{prefix}{page_id}-{timestamp_ms}.{SCREENSHOT_EXTENSION}"


def artifact_filename(page_id: str) -> str:
    """Filename offered when the recipient saves the card."""
    return f"valentine-{page_id}.{SCREENSHOT_EXTENSION}"
