# models/domain/auth_domain.py
"""
Admin token payloads.

Magic and session tokens are a tagged union on ``typ``. Callers always verify
the discriminator explicitly; a payload is never classified by its shape.
"""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel

MAGIC_TOKEN_TYPE = "magic"
SESSION_TOKEN_TYPE = "session"


class MagicTokenPayload(BaseModel):
    typ: Literal["magic"] = MAGIC_TOKEN_TYPE
    sub: str
    exp: int
    iat: int | None = None

    @property
    def email(self) -> str:
        return self.sub.lower()


class SessionTokenPayload(BaseModel):
    typ: Literal["session"] = SESSION_TOKEN_TYPE
    sub: str
    role: Literal["admin"] = "admin"
    exp: int
    iat: int | None = None

    @property
    def email(self) -> str:
        return self.sub.lower()

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.exp, tz=UTC)


class AdminPrincipal(BaseModel):
    """Authenticated admin attached to a request."""

    email: str
    role: str = "admin"
    expires_at: datetime | None = None


class IssuedSession(BaseModel):
    token: str
    exp: int
