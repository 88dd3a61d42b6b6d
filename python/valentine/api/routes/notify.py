"""Creator notification route.

POST /notify-yes lets a client that ran its own accept flow notify the page
creator. The creator address is always looked up server-side.
"""

from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends

from valentine.api.deps import get_notification_service
from valentine.errors import ApiError, ApiErrorCode
from valentine.logging import get_logger
from valentine.responses import success_response
from valentine.schemas.pages import NotifyYesOut, NotifyYesRequest
from valentine.services.notifications import EmailDeliveryError, NotificationService

logger = get_logger(__name__)

router = APIRouter()


@router.post("/notify-yes")
async def notify_yes(
    body: NotifyYesRequest,
    service: Annotated[NotificationService, Depends(get_notification_service)],
) -> dict:
    """Email the page creator that their Valentine was accepted.

    Returns sent=false (not an error) when the page has no creator email or
    email delivery is not configured.
    """
    try:
        result = await service.notify_yes(body.page_id, body.screenshot_url, body.receiver_name)
    except EmailDeliveryError as e:
        logger.error("notify_delivery_failed", page_id=body.page_id, status_code=e.status_code)
        raise ApiError(ApiErrorCode.E_NOTIFY_FAILED, "Failed to send notification") from e

    return success_response(NotifyYesOut(**asdict(result)).model_dump(mode="json"))
