"""Acceptance event store.

A page is accepted at most once. The guarantee comes from the
uq_yes_events_page_id constraint alone: concurrent writers both attempt the
insert and the loser gets AcceptanceConflict.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from valentine.db.integrity import is_unique_violation
from valentine.db.models import YES_EVENTS_PAGE_UNIQUE, YesEvent
from valentine.db.session import transaction
from valentine.logging import get_logger

logger = get_logger(__name__)


class AcceptanceConflict(Exception):
    """The page already has an acceptance event."""

    def __init__(self, page_id: str):
        super().__init__(f"Page {page_id} is already accepted")
        self.page_id = page_id


def record_acceptance(db: Session, page_id: str, screenshot_url: str | None) -> YesEvent:
    """Insert the acceptance event for a page.

    Raises:
        AcceptanceConflict: If the page already has one.
        IntegrityError: For any other constraint failure (e.g. unknown page).
    """
    event = YesEvent(page_id=page_id, screenshot_url=screenshot_url)
    try:
        with transaction(db):
            db.add(event)
            db.flush()
    except IntegrityError as e:
        if is_unique_violation(e, YES_EVENTS_PAGE_UNIQUE):
            raise AcceptanceConflict(page_id) from e
        raise

    logger.info("acceptance_recorded", page_id=page_id, has_screenshot=screenshot_url is not None)
    return event


def get_acceptance(db: Session, page_id: str) -> YesEvent | None:
    return db.scalars(select(YesEvent).where(YesEvent.page_id == page_id)).one_or_none()


class AcceptanceRecorder:
    """Session-owning recorder used by the accept flow.

    Synchronous; the flow runs it on the threadpool.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def record(self, page_id: str, screenshot_url: str | None) -> datetime:
        """Record the acceptance and return its timestamp."""
        with self._session_factory() as db:
            event = record_acceptance(db, page_id, screenshot_url)
            db.refresh(event)
            return event.clicked_at
