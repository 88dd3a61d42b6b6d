"""Pydantic schemas for request/response models.

All schemas are re-exported here for convenient imports.
"""

from valentine.schemas.pages import (
    AcceptOut,
    AcceptRequest,
    CreatePageOut,
    CreatePageRequest,
    NotifyYesOut,
    NotifyYesRequest,
    PageViewOut,
)

__all__ = [
    "AcceptOut",
    "AcceptRequest",
    "CreatePageOut",
    "CreatePageRequest",
    "NotifyYesOut",
    "NotifyYesRequest",
    "PageViewOut",
]
