"""Page-related Pydantic schemas.

Contains request and response models for page, accept and notification
endpoints.
"""

from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

DEFAULT_QUESTION = "Will you be my Valentine?"
DEFAULT_BEGGING_MESSAGES = [
    "Please? 🥺",
    "Pretty please? 💕",
    "I'll be so sad...",
    "You're breaking my heart! 💔",
    "Don't do this to me!",
]
DEFAULT_FINAL_MESSAGE = "You just made me the happiest person ever! 💖"
DEFAULT_SOCIAL_LABEL = "Message me on Instagram"

AcceptStateValue = Literal["idle", "processing", "accepted"]

__all__ = [
    "CreatePageRequest",
    "AcceptRequest",
    "NotifyYesRequest",
    "CreatePageOut",
    "PageViewOut",
    "AcceptOut",
    "NotifyYesOut",
    "AcceptStateValue",
]

# =============================================================================
# Request Schemas
# =============================================================================


class CreatePageRequest(BaseModel):
    """Request body for creating a Valentine page.

    Blank begging messages are dropped and blank social fields become null
    by the page service; sender_name must be non-blank.
    """

    sender_name: str = Field(..., max_length=100, description="Creator display name")
    question: str = Field(default=DEFAULT_QUESTION, min_length=1, max_length=500)
    begging_messages: list[str] = Field(default_factory=lambda: list(DEFAULT_BEGGING_MESSAGES))
    final_message: str = Field(default=DEFAULT_FINAL_MESSAGE, min_length=1, max_length=1000)
    social_label: str | None = Field(default=DEFAULT_SOCIAL_LABEL, max_length=100)
    social_link: str | None = Field(default=None, max_length=2048)
    creator_email: str | None = Field(default=None, max_length=320)
    theme: str = Field(default="pink", description="Theme id (pink, red, purple, blue, gold)")


class AcceptRequest(BaseModel):
    """Optional body for the accept endpoint."""

    receiver_name: str | None = Field(
        default=None,
        max_length=100,
        validation_alias=AliasChoices("receiver_name", "receiverName"),
    )


class NotifyYesRequest(BaseModel):
    """Request body for the notification channel.

    Accepts both camelCase and snake_case keys.
    """

    page_id: str = Field(..., min_length=1, validation_alias=AliasChoices("page_id", "pageId"))
    screenshot_url: str | None = Field(
        default=None, validation_alias=AliasChoices("screenshot_url", "screenshotUrl")
    )
    receiver_name: str | None = Field(
        default=None, validation_alias=AliasChoices("receiver_name", "receiverName")
    )


# =============================================================================
# Response Schemas
# =============================================================================


class CreatePageOut(BaseModel):
    id: str
    share_link: str


class PageViewOut(BaseModel):
    """Public page view.

    Never includes creator_email.
    """

    id: str
    question: str
    begging_messages: list[str]
    final_message: str
    social_label: str | None
    social_link: str | None
    sender_name: str | None
    theme: str
    created_at: datetime
    accepted: bool = False
    accepted_at: datetime | None = None
    screenshot_url: str | None = None

    model_config = ConfigDict(from_attributes=True)


class AcceptOut(BaseModel):
    """State of the accept flow after a trigger."""

    page_id: str
    state: AcceptStateValue
    started: bool = Field(..., description="False if the page was already accepted or processing")
    screenshot_url: str | None = None


class NotifyYesOut(BaseModel):
    sent: bool
    message: str
    email_id: str | None = None
