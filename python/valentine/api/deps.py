"""FastAPI dependencies for route handlers.

Shared collaborators (session factory, accept-flow registry, notification
service) are created at startup and stored on app.state.
"""

from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from valentine.services.accept_flow import AcceptFlowRegistry
from valentine.services.notifications import NotificationService

__all__ = ["get_db", "get_accept_flows", "get_notification_service"]


def get_db(request: Request) -> Generator[Session, None, None]:
    """Provide a database session from the app's session factory.

    Yields:
        A database session that is automatically closed after use.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_accept_flows(request: Request) -> AcceptFlowRegistry:
    return request.app.state.accept_flows


def get_notification_service(request: Request) -> NotificationService:
    return request.app.state.notification_service
