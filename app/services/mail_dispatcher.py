"""
Transactional mail delivery through the Resend HTTP API.

``MailDispatcher.send`` never raises: every failure comes back as a non-ok
MailResult so callers can fall back to logging the link and carry on.
"""

import re
from dataclasses import dataclass

import httpx

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
MAIL_TIMEOUT_SECONDS = 10.0

EMAIL_RX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_email(value) -> bool:
    return isinstance(value, str) and bool(EMAIL_RX.match(value))


@dataclass(slots=True)
class MailResult:
    ok: bool
    message_id: str | None = None
    reason: str | None = None
    skipped: bool = False


class MailDispatcher:
    """Pluggable sender; ``transport`` lets tests swap the HTTP layer."""

    def __init__(
        self,
        api_key: str | None = None,
        sender: str | None = None,
        reply_to: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.sender = sender if sender is not None else settings.MAIL_FROM
        self.reply_to = reply_to if reply_to is not None else settings.MAIL_REPLY_TO
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.sender)

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
        reply_to: str | None = None,
    ) -> MailResult:
        if not self.configured:
            logger.warning("Mail skipped (missing config)", to=to)
            return MailResult(ok=False, skipped=True, reason="not_configured")

        if not is_email(to):
            logger.error("Mail rejected: bad recipient", to=to)
            return MailResult(ok=False, reason="bad_recipient")

        payload = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": html,
            "text": text,
        }
        if reply_to or self.reply_to:
            payload["reply_to"] = reply_to or self.reply_to

        try:
            async with httpx.AsyncClient(
                timeout=MAIL_TIMEOUT_SECONDS, transport=self._transport
            ) as client:
                response = await client.post(
                    RESEND_API_URL,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )

            if response.status_code >= 400:
                logger.error(
                    "Mail provider rejected message",
                    to=to,
                    status_code=response.status_code,
                    body=response.text[:200],
                )
                return MailResult(ok=False, reason="provider_error")

            message_id = (response.json() or {}).get("id")
            logger.info("Mail sent", to=to, message_id=message_id)
            return MailResult(ok=True, message_id=message_id)

        except Exception as e:
            logger.error("Mail delivery exception", to=to, error=str(e), error_type=type(e).__name__)
            return MailResult(ok=False, reason="exception")


def log_link_fallback(kind: str, to: str, link: str, reason: str | None) -> None:
    """
    Log a link that could not be mailed so it can be retrieved manually.

    The full link is only written outside production.
    """
    if settings.environment == "production":
        logger.warning("Link not delivered", link_kind=kind, to=to, reason=reason)
        return
    logger.warning(
        "Link not delivered; manual fallback",
        link_kind=kind,
        to=to,
        reason=reason,
        link=link,
    )
