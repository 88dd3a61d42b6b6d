"""Storage module for Supabase Storage operations.

Provides:
- StorageClient for interacting with Supabase Storage
- Path building utilities for screenshot objects
- Test isolation support via configurable prefixes
"""

from valentine.storage.client import (
    FakeStorageClient,
    StorageClient,
    StorageClientBase,
    StorageError,
    get_storage_client,
)
from valentine.storage.paths import (
    SCREENSHOT_CONTENT_TYPE,
    artifact_filename,
    build_screenshot_path,
)

__all__ = [
    "StorageClient",
    "StorageClientBase",
    "FakeStorageClient",
    "StorageError",
    "get_storage_client",
    "SCREENSHOT_CONTENT_TYPE",
    "artifact_filename",
    "build_screenshot_path",
]
