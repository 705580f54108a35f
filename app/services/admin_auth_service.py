"""
Admin magic-link authentication.

Flow:
    1. request_magic_link(email)  -> short-lived "magic" JWT mailed as a login link
    2. verify_magic_link(token)   -> longer-lived "session" JWT returned to the UI
    3. authenticate(token)        -> verified AdminPrincipal for protected routes

Magic and session tokens are signed with two different secrets, and the ``typ``
claim is checked on every verification regardless of signature validity.
Neither token type is stored server-side: validation is signature + expiry only.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from urllib.parse import quote

import jwt
from pydantic import ValidationError

from app.config import Settings, settings
from app.errors import ConfigurationError, Forbidden, InvalidInput, RateLimited, Unauthorized
from app.infrastructure.observability.logging import get_logger
from app.models.domain.auth_domain import (
    MAGIC_TOKEN_TYPE,
    SESSION_TOKEN_TYPE,
    AdminPrincipal,
    IssuedSession,
    MagicTokenPayload,
    SessionTokenPayload,
)
from app.services.mail_dispatcher import MailDispatcher, log_link_fallback
from app.services.resend_limiter import LastAcceptedStore

logger = get_logger(__name__)

JWT_ALGORITHM = "HS256"
SECRET_MIN_LENGTH = 16


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


@dataclass(frozen=True, slots=True)
class AdminAuthConfig:
    """
    Validated admin authentication settings.

    Raises ConfigurationError on construction when a secret is missing, too
    short, or shared between the two token types.
    """

    magic_secret: str
    session_secret: str
    allowed_emails: frozenset[str] = field(default_factory=frozenset)
    magic_ttl_minutes: int = 15
    session_ttl_hours: int = 12
    ui_base_url: str = ""
    min_resend_seconds: int = 60
    brand_name: str = "Admin Access"

    def __post_init__(self):
        object.__setattr__(
            self,
            "allowed_emails",
            frozenset(normalize_email(e) for e in self.allowed_emails if normalize_email(e)),
        )

        for name in ("magic_secret", "session_secret"):
            secret = getattr(self, name)
            if not secret:
                raise ConfigurationError(f"Admin {name} is not configured")
            if len(secret) < SECRET_MIN_LENGTH:
                raise ConfigurationError(f"Admin {name} is too short; please rotate it")
        if self.magic_secret == self.session_secret:
            raise ConfigurationError("Magic and session secrets must differ")

        if self.magic_ttl_minutes <= 0 or self.session_ttl_hours <= 0:
            raise ConfigurationError("Admin token TTLs must be positive")
        if self.min_resend_seconds < 0:
            raise ConfigurationError("Magic-link resend interval cannot be negative")

        if not self.allowed_emails:
            logger.warning("No admin emails allow-listed; every magic-link request will be refused")

    @classmethod
    def from_settings(cls, source: Settings = settings) -> "AdminAuthConfig":
        return cls(
            magic_secret=source.ADMIN_JWT_SECRET or "",
            session_secret=source.ADMIN_SESSION_SECRET or "",
            allowed_emails=frozenset(source.admin_allowed_emails()),
            magic_ttl_minutes=source.ADMIN_MAGIC_TTL_MIN,
            session_ttl_hours=source.ADMIN_SESSION_TTL_HOURS,
            ui_base_url=source.ADMIN_UI_BASE_URL,
            min_resend_seconds=source.ADMIN_MAGIC_RESEND_SECONDS,
            brand_name=source.ADMIN_BRAND,
        )


class AdminMagicLinkAuthenticator:
    """Issues and verifies magic and session tokens for allow-listed staff."""

    def __init__(
        self,
        config: AdminAuthConfig,
        mailer: MailDispatcher,
        limiter: LastAcceptedStore,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.config = config
        self.mailer = mailer
        self.limiter = limiter
        self._clock = clock

    def is_allowed(self, email: str) -> bool:
        return normalize_email(email) in self.config.allowed_emails

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    def sign_magic_token(self, email: str) -> str:
        now = self._clock()
        claims = {
            "sub": normalize_email(email),
            "typ": MAGIC_TOKEN_TYPE,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=self.config.magic_ttl_minutes)).timestamp()),
        }
        return jwt.encode(claims, self.config.magic_secret, algorithm=JWT_ALGORITHM)

    def sign_session_token(self, email: str) -> IssuedSession:
        now = self._clock()
        exp = int((now + timedelta(hours=self.config.session_ttl_hours)).timestamp())
        claims = {
            "sub": normalize_email(email),
            "role": "admin",
            "typ": SESSION_TOKEN_TYPE,
            "iat": int(now.timestamp()),
            "exp": exp,
        }
        token = jwt.encode(claims, self.config.session_secret, algorithm=JWT_ALGORITHM)
        return IssuedSession(token=token, exp=exp)

    @staticmethod
    def _decode(token: str, secret: str) -> dict:
        """Signature + expiry check. Every failure collapses into Unauthorized."""
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp", "sub"]},
            )
        except jwt.PyJWTError as e:
            logger.info("Admin token rejected", reason=type(e).__name__)
            raise Unauthorized("Invalid or expired token") from None

    @staticmethod
    def _parse(model: type[MagicTokenPayload] | type[SessionTokenPayload], claims: dict):
        try:
            return model.model_validate(claims)
        except ValidationError:
            logger.info("Admin token rejected", reason="malformed_claims")
            raise Unauthorized("Invalid or expired token") from None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def build_login_link(self, magic_token: str, fallback_base_url: str | None = None) -> str:
        base = self.config.ui_base_url or fallback_base_url or ""
        separator = "" if base.endswith("/") else "/"
        return f"{base}{separator}?m={quote(magic_token, safe='')}"

    async def request_magic_link(self, email: str | None, fallback_base_url: str | None = None) -> None:
        normalized = normalize_email(email)
        if not normalized:
            raise InvalidInput("Missing email")

        if not self.is_allowed(normalized):
            logger.warning("Magic link refused: email not allow-listed", email=normalized)
            raise Forbidden("Email not allowed")

        allowed, retry_after = await self.limiter.try_acquire(
            normalized, self.config.min_resend_seconds
        )
        if not allowed:
            logger.warning("Magic link rate limited", email=normalized, retry_after=retry_after)
            raise RateLimited("Too many requests. Try again in a minute.", retry_after=retry_after)

        magic = self.sign_magic_token(normalized)
        link = self.build_login_link(magic, fallback_base_url)
        await self._deliver(normalized, link)
        logger.info("Magic link issued", email=normalized, ttl_minutes=self.config.magic_ttl_minutes)

    async def _deliver(self, to: str, link: str) -> None:
        brand = self.config.brand_name
        ttl = self.config.magic_ttl_minutes
        result = await self.mailer.send(
            to=to,
            subject=f"{brand} magic link",
            html=(
                f"<p>Use this link to access {brand}:</p>"
                f'<p><a href="{link}">{link}</a></p>'
                f"<p>This link expires in {ttl} minutes.</p>"
            ),
            text=f"Use this link to access {brand}: {link}\nThis link expires in {ttl} minutes.",
        )
        if not result.ok:
            log_link_fallback("admin_magic_link", to, link, result.reason)

    def verify_magic_link(self, token: str | None) -> IssuedSession:
        if not token:
            raise InvalidInput("Missing token")

        claims = self._decode(token, self.config.magic_secret)
        if claims.get("typ") != MAGIC_TOKEN_TYPE:
            logger.warning("Non-magic token presented to magic verifier", typ=claims.get("typ"))
            raise InvalidInput("Invalid token type")

        payload = self._parse(MagicTokenPayload, claims)
        if not self.is_allowed(payload.email):
            logger.warning("Magic link verify refused: email no longer allowed", email=payload.email)
            raise Forbidden("Email not allowed")

        session = self.sign_session_token(payload.email)
        logger.info("Admin session issued", email=payload.email, exp=session.exp)
        return session

    def authenticate(self, token: str | None) -> AdminPrincipal:
        if not token:
            raise Unauthorized("Missing admin token")

        claims = self._decode(token, self.config.session_secret)
        if claims.get("typ") != SESSION_TOKEN_TYPE:
            logger.warning("Non-session token presented as admin session", typ=claims.get("typ"))
            raise Unauthorized("Invalid or expired session")

        payload = self._parse(SessionTokenPayload, claims)
        if not self.is_allowed(payload.email):
            raise Forbidden("Email not allowed")

        return AdminPrincipal(email=payload.email, role=payload.role, expires_at=payload.expires_at)
