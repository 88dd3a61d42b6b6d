"""Test doubles for accept-flow collaborators.

Every fake records its calls in order so tests can assert on sequencing.
"""

import threading

from sqlalchemy.orm import Session

from valentine.db.models import ValentinePage
from valentine.services.acceptance import AcceptanceConflict
from valentine.services.card import CardSurface
from valentine.services.notifications import NotifyResult
from valentine.services.rasterize import RasterizeError
from valentine.storage import FakeStorageClient, StorageError
from tests.fixtures import DEMO_PAGE

# Minimal valid PNG header plus payload; fakes never decode it
FAKE_PNG = b"\x89PNG\r\n\x1a\nfake-card"


def insert_page(db: Session, **overrides) -> ValentinePage:
    """Insert a page (demo content by default) and commit."""
    page = ValentinePage(**{**DEMO_PAGE, **overrides})
    db.add(page)
    db.commit()
    return page


class CallLog:
    """Shared, ordered record of collaborator calls."""

    def __init__(self):
        self.calls: list[tuple] = []
        self._lock = threading.Lock()

    def add(self, *call) -> None:
        with self._lock:
            self.calls.append(call)

    def names(self) -> list[str]:
        return [call[0] for call in self.calls]

    def of(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]


class FakeRasterizer:
    def __init__(self, log: CallLog, *, fail: bool = False, data: bytes = FAKE_PNG):
        self.log = log
        self.fail = fail
        self.data = data

    async def rasterize(self, surface: CardSurface, *, scale: float) -> bytes:
        self.log.add("capture", surface.selector, scale)
        if self.fail:
            raise RasterizeError("browser crashed")
        return self.data


class FakeRecorder:
    def __init__(self, log: CallLog, *, error: Exception | None = None):
        self.log = log
        self.error = error

    def record(self, page_id: str, screenshot_url: str | None) -> None:
        self.log.add("record", page_id, screenshot_url)
        if self.error is not None:
            raise self.error


class DuplicateRecorder(FakeRecorder):
    def __init__(self, log: CallLog):
        super().__init__(log)

    def record(self, page_id: str, screenshot_url: str | None) -> None:
        self.log.add("record", page_id, screenshot_url)
        raise AcceptanceConflict(page_id)


class FakeNotifier:
    def __init__(self, log: CallLog, *, fail: bool = False):
        self.log = log
        self.fail = fail

    async def notify_yes(self, page_id, screenshot_url=None, receiver_name=None) -> NotifyResult:
        self.log.add("notify", page_id, screenshot_url, receiver_name)
        if self.fail:
            raise RuntimeError("notification channel down")
        return NotifyResult(sent=True, message="Email sent")


class FakeCelebration:
    def __init__(self, log: CallLog):
        self.log = log

    def start(self) -> None:
        self.log.add("celebrate")

    def stop(self) -> None:
        self.log.add("celebration_stopped")


class RecordingDownload:
    """DownloadTarget that remembers what was saved."""

    def __init__(self):
        self.saved: list[tuple[str, object, str]] = []

    def save_url(self, url: str, filename: str) -> None:
        self.saved.append(("url", url, filename))

    def save_bytes(self, data: bytes, filename: str) -> None:
        self.saved.append(("bytes", data, filename))


class RecordingStorage(FakeStorageClient):
    def __init__(self, log: CallLog, *, fail: bool = False):
        super().__init__()
        self.log = log
        self.fail = fail

    def upload_object(self, path: str, data: bytes, *, content_type: str) -> str:
        self.log.add("upload", path, content_type)
        if self.fail:
            raise StorageError("bucket unavailable", code="E_UPLOAD_FAILED")
        return super().upload_object(path, data, content_type=content_type)
