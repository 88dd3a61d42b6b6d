"""Accept-flow orchestration.

One AcceptFlow per page view. accept() flips the state to ACCEPTED and starts
the celebration synchronously, then runs the pipeline in a detached task:

    capture -> upload -> record -> notify

Every pipeline step is a soft failure: errors are logged and the next step
still runs. A duplicate acceptance (AcceptanceConflict) counts as success.
No step is retried. The state never leaves ACCEPTED once reached.

Collaborators are injected through AcceptFlowDependencies. Synchronous ones
(storage client, recorder) are run on the threadpool.
"""

import asyncio
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Any, Protocol
from uuid import uuid4

from starlette.concurrency import run_in_threadpool

from valentine.logging import bind_flow_context, get_logger
from valentine.schemas.pages import PageViewOut
from valentine.services.acceptance import AcceptanceConflict
from valentine.services.card import CardSurface, build_card_surface
from valentine.services.celebration import ConfettiCelebration
from valentine.services.rasterize import Rasterizer
from valentine.storage import (
    SCREENSHOT_CONTENT_TYPE,
    StorageClientBase,
    artifact_filename,
    build_screenshot_path,
)
from valentine.themes import get_theme

logger = get_logger(__name__)

DEFAULT_SETTLE_DELAY_S = 0.5
DEFAULT_CAPTURE_SCALE = 2.0


class AcceptState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    ACCEPTED = "accepted"


class Recorder(Protocol):
    def record(self, page_id: str, screenshot_url: str | None) -> Any: ...


class Notifier(Protocol):
    async def notify_yes(
        self, page_id: str, screenshot_url: str | None = None, receiver_name: str | None = None
    ) -> Any: ...


class Celebration(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


class DownloadTarget(Protocol):
    """Where a saved card ends up (a browser download in the HTTP layer)."""

    def save_url(self, url: str, filename: str) -> None: ...

    def save_bytes(self, data: bytes, filename: str) -> None: ...


def _epoch_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class AcceptFlowDependencies:
    """External operations used by the accept flow.

    Attributes:
        recorder: Persists the acceptance; raises AcceptanceConflict on duplicates.
        notifier: Notifies the page creator.
        storage: Screenshot storage. None disables upload.
        rasterizer: Card rasterizer. None disables capture.
        celebration_factory: Builds the decorative celebration for one accept.
        settle_delay_s: Wait before capture so the celebration state is rendered.
        capture_scale: Device scale factor for the captured image.
        sleep: Awaitable sleep (replaceable in tests).
        now_ms: Epoch-millisecond clock used for object names.
    """

    recorder: Recorder
    notifier: Notifier
    storage: StorageClientBase | None = None
    rasterizer: Rasterizer | None = None
    celebration_factory: Callable[[], Celebration] = ConfettiCelebration
    settle_delay_s: float = DEFAULT_SETTLE_DELAY_S
    capture_scale: float = DEFAULT_CAPTURE_SCALE
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    now_ms: Callable[[], int] = field(default=_epoch_ms)


class AcceptFlow:
    """Accept-flow state machine for one page view."""

    def __init__(
        self,
        page_id: str,
        deps: AcceptFlowDependencies,
        *,
        surface_provider: Callable[[], CardSurface | None] | None = None,
        already_accepted: bool = False,
        existing_screenshot_url: str | None = None,
        on_state_change: Callable[[AcceptState], None] | None = None,
    ):
        self.page_id = page_id
        self._deps = deps
        self._surface_provider = surface_provider
        self._on_state_change = on_state_change
        self._state = AcceptState.ACCEPTED if already_accepted else AcceptState.IDLE
        self._screenshot_url = existing_screenshot_url
        self._pipeline: asyncio.Task | None = None
        self._celebration: Celebration | None = None

    @property
    def state(self) -> AcceptState:
        return self._state

    @property
    def screenshot_url(self) -> str | None:
        return self._screenshot_url

    @property
    def running(self) -> bool:
        """Whether the pipeline task is still in flight."""
        return self._pipeline is not None and not self._pipeline.done()

    def _set_state(self, state: AcceptState) -> None:
        self._state = state
        if self._on_state_change is not None:
            self._on_state_change(state)

    def accept(self, receiver_name: str | None = None) -> bool:
        """Trigger the accept flow.

        Must be called from a running event loop. Returns False (and does
        nothing) if the flow is already processing or accepted.
        """
        if self._state is not AcceptState.IDLE:
            return False

        self._set_state(AcceptState.PROCESSING)
        self._set_state(AcceptState.ACCEPTED)

        self._celebration = self._deps.celebration_factory()
        self._celebration.start()

        self._pipeline = asyncio.create_task(self._run_pipeline(receiver_name))
        return True

    async def wait(self) -> None:
        """Wait for the pipeline to finish (no-op if it never started)."""
        if self._pipeline is not None:
            await self._pipeline

    def stop_celebration(self) -> None:
        if self._celebration is not None:
            self._celebration.stop()

    async def _run_pipeline(self, receiver_name: str | None) -> None:
        bind_flow_context(self.page_id, uuid4().hex)
        logger.info("accept_flow_started")

        image = await self._guarded("capture", self.capture())
        if image is not None:
            self._screenshot_url = await self._guarded("upload", self.upload(image))

        await self._guarded("record", self._record(self._screenshot_url))
        await self._guarded("notify", self._notify(self._screenshot_url, receiver_name))

        logger.info("accept_flow_completed", has_screenshot=self._screenshot_url is not None)

    async def _guarded(self, step: str, coro: Awaitable[Any]) -> Any:
        """Await one pipeline step; an escaped error is logged and yields None."""
        try:
            return await coro
        except Exception:
            logger.exception("accept_step_crashed", step=step)
            return None

    async def capture(self) -> bytes | None:
        """Rasterize the current card surface after the settle delay.

        Returns None when no surface or rasterizer is available, or when
        building the surface or rasterizing it fails.
        """
        try:
            surface = self._surface_provider() if self._surface_provider is not None else None
        except Exception as e:
            logger.warning("accept_capture_failed", error=str(e), error_type=type(e).__name__)
            return None

        if surface is None or self._deps.rasterizer is None:
            logger.info("accept_capture_skipped", has_surface=surface is not None)
            return None

        await self._deps.sleep(self._deps.settle_delay_s)

        try:
            return await self._deps.rasterizer.rasterize(surface, scale=self._deps.capture_scale)
        except Exception as e:
            logger.warning("accept_capture_failed", error=str(e), error_type=type(e).__name__)
            return None

    async def upload(self, data: bytes) -> str | None:
        """Upload a captured image and return its public URL, or None."""
        storage = self._deps.storage
        if storage is None:
            logger.info("accept_upload_skipped")
            return None

        path = build_screenshot_path(self.page_id, self._deps.now_ms())
        try:
            stored_path = await run_in_threadpool(
                storage.upload_object, path, data, content_type=SCREENSHOT_CONTENT_TYPE
            )
            return storage.get_public_url(stored_path)
        except Exception as e:
            logger.warning("accept_upload_failed", error=str(e), error_type=type(e).__name__)
            return None

    async def _record(self, screenshot_url: str | None) -> None:
        try:
            await run_in_threadpool(self._deps.recorder.record, self.page_id, screenshot_url)
        except AcceptanceConflict:
            logger.info("accept_record_duplicate")
        except Exception as e:
            logger.error("accept_record_failed", error=str(e), error_type=type(e).__name__)

    async def _notify(self, screenshot_url: str | None, receiver_name: str | None) -> None:
        try:
            await self._deps.notifier.notify_yes(self.page_id, screenshot_url, receiver_name)
        except Exception as e:
            logger.warning("accept_notify_failed", error=str(e), error_type=type(e).__name__)

    async def download_artifact(self, target: DownloadTarget) -> bool:
        """Save the card: the stored screenshot if any, else a fresh capture.

        A fresh capture is handed to the target directly and never uploaded.
        Returns whether anything was saved.
        """
        filename = artifact_filename(self.page_id)
        if self._screenshot_url:
            target.save_url(self._screenshot_url, filename)
            return True

        data = await self.capture()
        if data is None:
            return False
        target.save_bytes(data, filename)
        return True


def flow_for_page_view(view: PageViewOut, deps: AcceptFlowDependencies) -> AcceptFlow:
    """Build the flow for a page view, capturing the celebration card."""
    return AcceptFlow(
        view.id,
        deps,
        surface_provider=partial(build_card_surface, view, get_theme(view.theme)),
        already_accepted=view.accepted,
        existing_screenshot_url=view.screenshot_url,
    )


class AcceptFlowRegistry:
    """Bounded per-page AcceptFlow cache.

    Evicts least-recently-used flows whose pipeline is not running, and never
    the flow being handed out. A cached flow still IDLE is replaced when the
    stored page shows it was accepted elsewhere.

    Pages whose flow was accepted here are remembered after eviction (with
    their screenshot URL), so a rebuilt flow starts ACCEPTED even if the
    acceptance never reached the database.
    """

    def __init__(self, factory: Callable[[PageViewOut], AcceptFlow], max_size: int = 1024):
        self._factory = factory
        self._max_size = max_size
        self._flows: OrderedDict[str, AcceptFlow] = OrderedDict()
        self._retired_accepted: dict[str, str | None] = {}

    def __len__(self) -> int:
        return len(self._flows)

    def __contains__(self, page_id: object) -> bool:
        return page_id in self._flows

    def get(self, page_id: str) -> AcceptFlow | None:
        flow = self._flows.get(page_id)
        if flow is not None:
            self._flows.move_to_end(page_id)
        return flow

    def get_or_create(self, view: PageViewOut) -> AcceptFlow:
        flow = self.get(view.id)
        if flow is not None and not (flow.state is AcceptState.IDLE and view.accepted):
            return flow

        if view.accepted:
            self._retired_accepted.pop(view.id, None)
        elif view.id in self._retired_accepted:
            view = view.model_copy(
                update={"accepted": True, "screenshot_url": self._retired_accepted[view.id]}
            )

        self._flows.pop(view.id, None)
        self._make_room()
        flow = self._factory(view)
        self._flows[view.id] = flow
        return flow

    def _make_room(self) -> None:
        """Evict idle flows until one more fits; running flows may overflow the bound."""
        while len(self._flows) >= self._max_size:
            victim = next((pid for pid, f in self._flows.items() if not f.running), None)
            if victim is None:
                return
            evicted = self._flows.pop(victim)
            if evicted.state is not AcceptState.IDLE:
                self._retired_accepted[victim] = evicted.screenshot_url

    async def drain(self) -> None:
        """Wait for running pipelines and stop celebrations."""
        flows = list(self._flows.values())
        pending = [flow.wait() for flow in flows if flow.running]
        if pending:
            logger.info("accept_flows_draining", count=len(pending))
            results = await asyncio.gather(*pending, return_exceptions=True)
            for result in results:
                if isinstance(result, BaseException):
                    logger.error("accept_flow_crashed", error=str(result))
        for flow in flows:
            flow.stop_celebration()
