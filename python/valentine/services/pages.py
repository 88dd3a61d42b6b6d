"""Valentine page service layer.

Pages are created once and never edited. The public view joins the page with
its acceptance event (if any) and never exposes creator_email.
"""

import secrets
import string
from collections.abc import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from valentine.config import get_settings
from valentine.db.integrity import is_unique_violation
from valentine.db.models import PAGE_ID_LENGTH, ValentinePage
from valentine.db.session import transaction
from valentine.errors import ApiError, ApiErrorCode, InvalidRequestError, NotFoundError
from valentine.logging import get_logger
from valentine.schemas.pages import CreatePageOut, CreatePageRequest, PageViewOut
from valentine.services.acceptance import get_acceptance
from valentine.themes import THEMES, is_known_theme

logger = get_logger(__name__)

PAGE_ID_ALPHABET = string.ascii_letters + string.digits + "_-"
MAX_ID_ATTEMPTS = 3


def generate_page_id() -> str:
    return "".join(secrets.choice(PAGE_ID_ALPHABET) for _ in range(PAGE_ID_LENGTH))


def _clean_optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def create_page(
    db: Session,
    request: CreatePageRequest,
    *,
    id_factory: Callable[[], str] = generate_page_id,
) -> CreatePageOut:
    """Validate and insert a new page.

    Raises:
        InvalidRequestError(E_SENDER_NAME_REQUIRED): sender_name is blank.
        InvalidRequestError(E_INVALID_THEME): theme id is unknown.
        ApiError(E_INTERNAL): no free id after MAX_ID_ATTEMPTS tries.
    """
    sender_name = request.sender_name.strip()
    if not sender_name:
        raise InvalidRequestError(ApiErrorCode.E_SENDER_NAME_REQUIRED, "Sender name is required")
    if not is_known_theme(request.theme):
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_THEME,
            f"Unknown theme '{request.theme}'. Choose one of: {', '.join(THEMES)}",
        )

    begging_messages = [m for m in request.begging_messages if m.strip()]

    for attempt in range(1, MAX_ID_ATTEMPTS + 1):
        page = ValentinePage(
            id=id_factory(),
            question=request.question,
            begging_messages=begging_messages,
            final_message=request.final_message,
            social_label=_clean_optional(request.social_label),
            social_link=_clean_optional(request.social_link),
            sender_name=sender_name,
            creator_email=_clean_optional(request.creator_email),
            theme=request.theme,
        )
        try:
            with transaction(db):
                db.add(page)
                db.flush()
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise
            logger.warning("page_id_collision", attempt=attempt)
            continue

        logger.info("page_created", page_id=page.id, theme=page.theme)
        return CreatePageOut(id=page.id, share_link=get_settings().share_link(page.id))

    raise ApiError(ApiErrorCode.E_INTERNAL, "Could not allocate a page id")


def get_page(db: Session, page_id: str) -> ValentinePage:
    """Load a page or raise E_PAGE_NOT_FOUND."""
    page = db.get(ValentinePage, page_id)
    if page is None:
        raise NotFoundError(ApiErrorCode.E_PAGE_NOT_FOUND, "Valentine not found")
    return page


def get_page_view(db: Session, page_id: str) -> PageViewOut:
    """Public page view with acceptance state."""
    page = get_page(db, page_id)
    view = PageViewOut.model_validate(page)

    acceptance = get_acceptance(db, page_id)
    if acceptance is not None:
        view.accepted = True
        view.accepted_at = acceptance.clicked_at
        view.screenshot_url = acceptance.screenshot_url
    return view
