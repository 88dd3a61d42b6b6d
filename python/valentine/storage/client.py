"""Screenshot storage backed by Supabase Storage.

The accept flow needs two things from storage: put a PNG under a fresh name
and turn that name into a URL anyone can open. Objects are never
overwritten; screenshot names carry a millisecond timestamp so a new capture
always gets a new name.

Paths are passed through unchanged. The test prefix is applied once, in
storage.paths.
"""

from abc import ABC, abstractmethod
from urllib.parse import quote

import httpx

from valentine.config import get_settings
from valentine.logging import get_logger

logger = get_logger(__name__)

UPLOAD_FAILED = "E_UPLOAD_FAILED"


class StorageError(Exception):
    def __init__(self, message: str, code: str = UPLOAD_FAILED):
        super().__init__(message)
        self.message = message
        self.code = code


class StorageClientBase(ABC):
    @abstractmethod
    def upload_object(self, path: str, data: bytes, *, content_type: str) -> str:
        """Store bytes under path and return the stored path.

        Raises:
            StorageError: If the upload fails or the path is already taken.
        """

    @abstractmethod
    def get_public_url(self, path: str) -> str: ...


class StorageClient(StorageClientBase):
    """Supabase Storage REST client for one public bucket (sync httpx)."""

    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        bucket: str = "screenshots",
        timeout_s: float = 30.0,
    ):
        self._bucket = bucket
        self._timeout_s = timeout_s
        self._storage_url = f"{supabase_url.rstrip('/')}/storage/v1"
        self._auth_headers = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }

    def upload_object(self, path: str, data: bytes, *, content_type: str) -> str:
        """POST /object/{bucket}/{path} with upsert disabled."""
        url = f"{self._storage_url}/object/{self._bucket}/{quote(path)}"
        headers = {**self._auth_headers, "Content-Type": content_type, "x-upsert": "false"}
        try:
            with httpx.Client(timeout=self._timeout_s) as client:
                response = client.post(url, headers=headers, content=data)
        except httpx.HTTPError as e:
            raise StorageError(f"Upload transport error: {e}") from e

        if response.status_code not in (200, 201):
            raise StorageError(f"Upload rejected: {response.status_code} {response.text}")

        # Response body: {"Key": "{bucket}/{path}", "Id": "..."}
        key = response.json().get("Key") or ""
        return key.removeprefix(f"{self._bucket}/") or path

    def get_public_url(self, path: str) -> str:
        return f"{self._storage_url}/object/public/{self._bucket}/{quote(path)}"


class FakeStorageClient(StorageClientBase):
    """In-memory bucket for local runs and tests."""

    PUBLIC_BASE = "https://fake-storage.test/public"

    def __init__(self):
        self._objects: dict[str, tuple[bytes, str]] = {}

    def upload_object(self, path: str, data: bytes, *, content_type: str) -> str:
        if path in self._objects:
            raise StorageError(f"Object already exists: {path}")
        self._objects[path] = (data, content_type)
        return path

    def get_public_url(self, path: str) -> str:
        return f"{self.PUBLIC_BASE}/{path}"

    def get_object(self, path: str) -> tuple[bytes, str]:
        """(data, content_type) of a stored object."""
        return self._objects[path]

    @property
    def paths(self) -> list[str]:
        """Stored paths in upload order."""
        return list(self._objects)


def get_storage_client() -> StorageClientBase:
    """Supabase client when SUPABASE_URL and SUPABASE_SERVICE_KEY are set, else the fake."""
    settings = get_settings()
    if not settings.use_supabase_storage:
        logger.info("storage_fake_client_selected")
        return FakeStorageClient()

    return StorageClient(
        supabase_url=settings.supabase_url,  # type: ignore[arg-type]
        service_key=settings.supabase_service_key,  # type: ignore[arg-type]
        bucket=settings.screenshot_bucket,
    )
