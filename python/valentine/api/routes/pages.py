"""Page routes.

Routes are transport-only:
- Call one service function (or the page's accept flow)
- Return success(...) or raise ApiError

The accept endpoint answers as soon as the flow has flipped to accepted;
capture, upload, record and notify continue in the background.
"""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from valentine.api.deps import get_accept_flows, get_db
from valentine.errors import ApiErrorCode, ConflictError, NotFoundError
from valentine.responses import success_response
from valentine.schemas.pages import AcceptOut, AcceptRequest, CreatePageRequest
from valentine.services import pages as pages_service
from valentine.services.accept_flow import AcceptFlowRegistry, AcceptState
from valentine.storage import SCREENSHOT_CONTENT_TYPE

router = APIRouter()


class HttpDownload:
    """DownloadTarget producing an HTTP response.

    A stored screenshot becomes a redirect; fresh bytes become a PNG
    attachment.
    """

    def __init__(self) -> None:
        self.response: Response | None = None

    def save_url(self, url: str, filename: str) -> None:
        self.response = RedirectResponse(url, status_code=302)

    def save_bytes(self, data: bytes, filename: str) -> None:
        self.response = Response(
            content=data,
            media_type=SCREENSHOT_CONTENT_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )


@router.post("/pages", status_code=201)
def create_page(
    body: CreatePageRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Create a Valentine page and return its share link."""
    result = pages_service.create_page(db, body)
    return success_response(result.model_dump(mode="json"))


@router.get("/pages/{page_id}")
def get_page(
    page_id: str,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Public page view with acceptance state."""
    view = pages_service.get_page_view(db, page_id)
    return success_response(view.model_dump(mode="json"))


@router.post("/pages/{page_id}/accept")
async def accept_page(
    page_id: str,
    db: Annotated[Session, Depends(get_db)],
    flows: Annotated[AcceptFlowRegistry, Depends(get_accept_flows)],
    body: Annotated[AcceptRequest | None, Body()] = None,
) -> dict:
    """Trigger the accept flow.

    A repeated accept is a no-op and reports started=false.
    """
    view = await run_in_threadpool(pages_service.get_page_view, db, page_id)
    flow = flows.get_or_create(view)
    started = flow.accept(body.receiver_name if body else None)

    result = AcceptOut(
        page_id=page_id,
        state=flow.state.value,
        started=started,
        screenshot_url=flow.screenshot_url,
    )
    return success_response(result.model_dump(mode="json"))


@router.get("/pages/{page_id}/artifact")
async def download_artifact(
    page_id: str,
    db: Annotated[Session, Depends(get_db)],
    flows: Annotated[AcceptFlowRegistry, Depends(get_accept_flows)],
) -> Response:
    """Save the accepted card.

    Redirects to the stored screenshot when there is one, otherwise renders
    the card and returns it as a PNG attachment.
    """
    view = await run_in_threadpool(pages_service.get_page_view, db, page_id)
    flow = flows.get_or_create(view)
    if flow.state is not AcceptState.ACCEPTED:
        raise ConflictError(ApiErrorCode.E_NOT_ACCEPTED, "Valentine has not been accepted yet")

    target = HttpDownload()
    if not await flow.download_artifact(target) or target.response is None:
        raise NotFoundError(ApiErrorCode.E_ARTIFACT_UNAVAILABLE, "No image available for this page")
    return target.response
