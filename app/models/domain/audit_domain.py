# models/domain/audit_domain.py
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

ActorType = Literal["admin", "token", "unknown"]
AuditAction = Literal["presign-get", "view-data"]


class AuditEvent(BaseModel):
    """A sensitive read: who touched which storage key, from where, with what result."""

    action: AuditAction
    key: str | None = None
    http_status: int | None = None
    actor_type: ActorType = "unknown"
    actor_email: str | None = None
    token: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None
    extra: dict[str, Any] | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
