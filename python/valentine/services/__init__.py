"""Business logic services.

Services are called by route handlers and orchestrate database operations
and external integrations (rasterizer, storage, email).
"""

from valentine.services.accept_flow import (
    AcceptFlow,
    AcceptFlowDependencies,
    AcceptFlowRegistry,
    AcceptState,
)
from valentine.services.acceptance import AcceptanceConflict, AcceptanceRecorder
from valentine.services.notifications import NotificationService
from valentine.services.pages import create_page, get_page_view

__all__ = [
    "AcceptFlow",
    "AcceptFlowDependencies",
    "AcceptFlowRegistry",
    "AcceptState",
    "AcceptanceConflict",
    "AcceptanceRecorder",
    "NotificationService",
    "create_page",
    "get_page_view",
]
