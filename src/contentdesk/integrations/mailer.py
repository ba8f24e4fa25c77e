"""Email sender using a Gmail access token.

The token comes from an interactive consent flow that happens elsewhere;
this module only checks whether a send-capable credential is present and
uses it.
"""

import base64
from datetime import datetime, timedelta
from email.message import EmailMessage

import httpx
import structlog
from pydantic import BaseModel

from contentdesk.config import settings
from contentdesk.core.constants import EMAIL_TOKEN_EXPIRY_BUFFER_SECONDS
from contentdesk.core.database.base import utcnow


logger = structlog.get_logger()

GMAIL_SEND_URL = "https://www.googleapis.com/gmail/v1/users/me/messages/send"


class EmailCredential(BaseModel):
    """Access token granted by the consent flow."""

    access_token: str
    expires_at: datetime
    sender: str | None = None

    def is_available(self, now: datetime | None = None) -> bool:
        """Usable for at least the expiry buffer from ``now``."""
        now = now or utcnow()
        return self.expires_at > now + timedelta(seconds=EMAIL_TOKEN_EXPIRY_BUFFER_SECONDS)


class SendResult(BaseModel):
    """Outcome of one send."""

    success: bool
    error: str | None = None
    message_id: str | None = None


def credential_from_settings() -> EmailCredential | None:
    """Credential configured through the environment, if any."""
    if not settings.email_access_token or settings.email_token_expires_at is None:
        return None
    return EmailCredential(
        access_token=settings.email_access_token,
        expires_at=settings.email_token_expires_at,
        sender=settings.email_sender,
    )


def encode_message(to: list[str], subject: str, body: str, sender: str | None = None) -> str:
    """Build a plain-text message and encode it the way Gmail expects."""
    message = EmailMessage()
    message["To"] = ", ".join(to)
    if sender:
        message["From"] = sender
    message["Subject"] = subject
    message.set_content(body)
    return base64.urlsafe_b64encode(message.as_bytes()).decode().rstrip("=")


class EmailSender:
    """Sends mail through the Gmail API."""

    def __init__(
        self,
        credential: EmailCredential | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.credential = credential if credential is not None else credential_from_settings()
        self._transport = transport

    @property
    def is_available(self) -> bool:
        return self.credential is not None and self.credential.is_available()

    async def send(self, to: list[str], subject: str, body: str) -> SendResult:
        """Send one message.

        Failures are returned, not raised, so a caller can decide whether to
        keep its own bookkeeping unchanged.
        """
        if self.credential is None or not self.credential.is_available():
            return SendResult(success=False, error="Not authenticated. Please sign in to Gmail.")
        if not to:
            return SendResult(success=False, error="No recipients")

        raw = encode_message(to, subject, body, self.credential.sender)
        async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
            try:
                response = await client.post(
                    GMAIL_SEND_URL,
                    json={"raw": raw},
                    headers={"Authorization": f"Bearer {self.credential.access_token}"},
                )
            except httpx.HTTPError as e:
                logger.error("email_send_failed", error=str(e))
                return SendResult(success=False, error=str(e))

        if response.status_code == 401:
            return SendResult(success=False, error="Session expired. Please sign in again.")
        if response.is_error:
            try:
                error = response.json().get("error", {}).get("message")
            except (ValueError, AttributeError):
                error = None
            logger.warning("email_send_rejected", status_code=response.status_code, error=error)
            return SendResult(success=False, error=error or "Failed to send email")

        message_id = None
        try:
            message_id = response.json().get("id")
        except (ValueError, AttributeError):
            pass
        logger.info("email_sent", recipients=len(to), message_id=message_id)
        return SendResult(success=True, message_id=message_id)
