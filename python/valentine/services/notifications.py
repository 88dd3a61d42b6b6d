"""Creator notification for accepted pages.

notify_yes looks the page up server-side (the caller never supplies the
address), and emails the creator through the Resend HTTP API when both a
creator address and an API key are configured. Missing configuration is a
non-error outcome reported as sent=False.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from html import escape

import httpx
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from valentine.logging import get_logger
from valentine.services.pages import get_page

logger = get_logger(__name__)

RESEND_EMAILS_URL = "https://api.resend.com/emails"
EMAIL_TIMEOUT_S = 10.0

YES_SUBJECT = "🎉 They said YES to your Valentine! 💕"


class EmailDeliveryError(Exception):
    """Email provider rejected the message or could not be reached.

    Attributes:
        status_code: Provider HTTP status, None for transport errors.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True)
class NotifyResult:
    sent: bool
    message: str
    email_id: str | None = None


class ResendEmailClient:
    """Minimal Resend client over a shared httpx.AsyncClient."""

    def __init__(self, client: httpx.AsyncClient, api_key: str, from_address: str):
        self._client = client
        self._api_key = api_key
        self._from_address = from_address

    async def send(self, *, to: str, subject: str, html: str) -> str | None:
        """Send one HTML email.

        Returns:
            The provider message id, if returned.

        Raises:
            EmailDeliveryError: On non-2xx responses or transport errors.
        """
        try:
            response = await self._client.post(
                RESEND_EMAILS_URL,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json={"from": self._from_address, "to": [to], "subject": subject, "html": html},
                timeout=httpx.Timeout(EMAIL_TIMEOUT_S, connect=5.0),
            )
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"Email transport error: {e}") from e

        if not response.is_success:
            raise EmailDeliveryError(
                f"Email provider returned {response.status_code}",
                status_code=response.status_code,
            )

        return response.json().get("id")


def format_timestamp(moment: datetime) -> str:
    """Format like "Feb 14, 3:05 PM"."""
    hour = moment.hour % 12 or 12
    return f"{moment:%b} {moment.day}, {hour}:{moment:%M} {moment:%p}"


def render_yes_email(
    timestamp: str, screenshot_url: str | None = None, receiver_name: str | None = None
) -> str:
    """Render the "they said yes" email body."""
    screenshot_section = ""
    if screenshot_url:
        screenshot_section = (
            '<p style="margin: 20px 0;">'
            f'<a href="{escape(screenshot_url, quote=True)}" style="background: #ec4899; '
            "color: white; padding: 12px 24px; border-radius: 8px; text-decoration: none; "
            'display: inline-block;">📸 View Screenshot</a></p>'
        )

    who = escape(receiver_name) if receiver_name else "Someone special"

    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; background: #fdf2f8; padding: 40px 20px; margin: 0;">
  <div style="max-width: 500px; margin: 0 auto; background: white; border-radius: 16px; padding: 40px; box-shadow: 0 10px 40px rgba(236, 72, 153, 0.15);">
    <div style="text-align: center;">
      <div style="font-size: 64px; margin-bottom: 20px;">🎉💖🎉</div>
      <h1 style="color: #db2777; font-size: 28px; margin: 0 0 10px;">THEY SAID YES!</h1>
      <p style="color: #6b7280; font-size: 14px; margin: 0 0 30px;">{timestamp}</p>
      <div style="background: linear-gradient(135deg, #fce7f3, #fbcfe8); padding: 24px; border-radius: 12px; margin: 20px 0;">
        <p style="color: #831843; font-size: 18px; margin: 0; font-weight: 500;">Your Valentine card worked! 💕</p>
        <p style="color: #9d174d; font-size: 14px; margin: 10px 0 0;">{who} clicked "Yes" on your Valentine</p>
      </div>
      {screenshot_section}
      <p style="color: #9ca3af; font-size: 12px; margin-top: 30px;">Made with 💖 using Valentine Creator</p>
    </div>
  </div>
</body>
</html>
"""  # noqa: E501


class NotificationService:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        email_client: ResendEmailClient | None,
        *,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self._session_factory = session_factory
        self._email_client = email_client
        self._now = now

    def _creator_email(self, page_id: str) -> str | None:
        with self._session_factory() as db:
            return get_page(db, page_id).creator_email

    async def notify_yes(
        self,
        page_id: str,
        screenshot_url: str | None = None,
        receiver_name: str | None = None,
    ) -> NotifyResult:
        """Notify the creator that the page was accepted.

        Raises:
            NotFoundError(E_PAGE_NOT_FOUND): Page does not exist.
            EmailDeliveryError: Provider rejected the email.
        """
        creator_email = await run_in_threadpool(self._creator_email, page_id)

        if not creator_email:
            logger.info("notify_skipped_no_email", page_id=page_id)
            return NotifyResult(sent=False, message="No email configured")

        if self._email_client is None:
            logger.warning("notify_skipped_no_provider", page_id=page_id)
            return NotifyResult(sent=False, message="Email delivery not configured")

        html = render_yes_email(
            format_timestamp(self._now()),
            screenshot_url=screenshot_url,
            receiver_name=receiver_name,
        )
        email_id = await self._email_client.send(to=creator_email, subject=YES_SUBJECT, html=html)

        logger.info("notify_sent", page_id=page_id, email_id=email_id)
        return NotifyResult(sent=True, message="Email sent", email_id=email_id)
