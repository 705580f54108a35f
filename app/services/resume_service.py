"""
Resume flow: email a single-use link, exchange it for a draft session cookie,
and load the saved draft for that session.

The exchange is the only place a resume token is consumed, and the store's
``consume`` does the check-and-mark atomically. A resume token never leaves
this module except inside the emailed URL.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import quote

from app.config import settings
from app.errors import Gone, InvalidInput, NotFound
from app.infrastructure.observability.logging import get_logger, token_preview
from app.models.domain.draft_domain import EmailDeliveryStatus, ResumeTokenRecord
from app.repositories.draft_repository import DraftStore
from app.repositories.resume_token_repository import ResumeTokenStore
from app.security.tokens import generate_resume_token
from app.services.draft_service import DraftService
from app.services.mail_dispatcher import MailDispatcher, is_email, log_link_fallback

logger = get_logger(__name__)

RESUME_COOKIE_NAME = "resume"
EXCHANGE_PATH = "/api/resume/exchange"


def build_exchange_url(base_url: str, resume_token: str) -> str:
    return f"{base_url.rstrip('/')}{EXCHANGE_PATH}?rt={quote(resume_token, safe='')}"


def resume_redirect_url(public_base_url: str | None) -> str:
    """Where the browser lands after a successful exchange."""
    return f"{(public_base_url or '').rstrip('/')}/?resumed=1"


def set_resume_cookie(response, draft_token: str, max_age_hours: int | None = None) -> None:
    hours = max_age_hours if max_age_hours is not None else settings.RESUME_COOKIE_MAX_AGE_HOURS
    response.set_cookie(
        RESUME_COOKIE_NAME,
        draft_token,
        max_age=hours * 3600,
        path="/",
        httponly=True,
        secure=True,
        samesite="lax",
    )


def clear_resume_cookie(response) -> None:
    response.delete_cookie(
        RESUME_COOKIE_NAME, path="/", httponly=True, secure=True, samesite="lax"
    )


class ResumeFlowController:
    def __init__(
        self,
        drafts: DraftStore,
        resume_tokens: ResumeTokenStore,
        draft_service: DraftService,
        mailer: MailDispatcher,
        exchange_base_url: str | None = None,
        token_ttl_hours: int | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.drafts = drafts
        self.resume_tokens = resume_tokens
        self.draft_service = draft_service
        self.mailer = mailer
        self.exchange_base_url = (
            exchange_base_url if exchange_base_url is not None else settings.exchange_base_url()
        )
        self.token_ttl_hours = (
            token_ttl_hours if token_ttl_hours is not None else settings.RESUME_TOKEN_TTL_HOURS
        )
        self._clock = clock

    async def send_link(self, email: str | None, draft_token: str | None) -> None:
        """
        Issue a resume token for an existing draft and email the exchange link.

        Mail failures are recorded against the draft and never surface to the
        caller; the response is a bare acknowledgement either way.

        Raises:
            InvalidInput: malformed email or missing draft token
            NotFound: no draft for ``draft_token``
        """
        email = (email or "").strip()
        if not is_email(email):
            raise InvalidInput("Valid email required")
        if not draft_token:
            raise InvalidInput("Missing draft token")

        draft = await self.drafts.get(draft_token)
        if not draft:
            raise NotFound("Draft not found")

        now = self._clock()
        resume_token = generate_resume_token()
        await self.resume_tokens.create(
            ResumeTokenRecord(
                resume_token=resume_token,
                submission_id=draft_token,
                email=email,
                created_at=now,
                expires_at=now + timedelta(hours=self.token_ttl_hours),
            )
        )

        link = build_exchange_url(self.exchange_base_url, resume_token)
        status = await self._deliver(email, link)
        await self.drafts.record_resume_email(draft_token, email, status, now)

        logger.info(
            "Resume link issued",
            draft=token_preview(draft_token),
            email_status=status,
            ttl_hours=self.token_ttl_hours,
        )

    async def _deliver(self, email: str, link: str) -> EmailDeliveryStatus:
        if not self.mailer.configured:
            log_link_fallback("resume_link", email, link, "not_configured")
            return "skipped"

        result = await self.mailer.send(
            to=email,
            subject="Resume your application",
            html=(
                "<p>Pick up your application where you left off:</p>"
                f'<p><a href="{link}">Resume application</a></p>'
                f"<p>This link works once and expires in {self.token_ttl_hours} hours.</p>"
            ),
            text=(
                f"Pick up your application where you left off: {link}\n"
                f"This link works once and expires in {self.token_ttl_hours} hours."
            ),
        )
        if result.ok:
            return "sent"

        log_link_fallback("resume_link", email, link, result.reason)
        return "skipped" if result.skipped else "failed"

    async def exchange(self, resume_token: str | None) -> str:
        """
        Consume a resume token and return the draft token it points to.

        Raises:
            InvalidInput: token missing
            NotFound: unknown token
            Gone: token already used or expired
        """
        if not resume_token:
            raise InvalidInput("Missing token")

        result = await self.resume_tokens.consume(resume_token, self._clock())
        if result.status == "not_found":
            raise NotFound("Invalid link")
        if result.status == "used":
            raise Gone("Link already used")
        if result.status == "expired":
            raise Gone("Link expired")

        logger.info("Resume token exchanged", token=token_preview(resume_token))
        return result.record.submission_id

    @staticmethod
    def resolve_draft_token(query_token: str | None, cookie_token: str | None) -> str | None:
        """The session cookie wins over a token passed in the query string."""
        return cookie_token or query_token or None

    async def get_draft(
        self, query_token: str | None = None, cookie_token: str | None = None
    ) -> dict[str, Any]:
        token = self.resolve_draft_token(query_token, cookie_token)
        if not token:
            raise InvalidInput("Missing token")
        return await self.draft_service.load_draft_payload(token)
