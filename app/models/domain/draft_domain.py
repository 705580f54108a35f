# models/domain/draft_domain.py
"""
Draft and resume token domain models.
"""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

DraftStatus = Literal["draft", "finalized"]
EmailDeliveryStatus = Literal["sent", "skipped", "failed"]


class DraftRecord(BaseModel):
    """Metadata for an in-progress form; the payload itself lives in object storage."""

    token: str
    s3_key: str | None = None
    step: int = Field(default=0, ge=0)
    status: DraftStatus = "draft"
    email: str | None = None
    last_activity_at: datetime | None = None
    updated_at: datetime | None = None
    finalized_at: datetime | None = None
    last_resume_email_at: datetime | None = None
    last_email_status: EmailDeliveryStatus | None = None


class ResumeTokenRecord(BaseModel):
    """Single-use, short-lived mapping from a resume token to a draft token."""

    resume_token: str
    submission_id: str
    email: str | None = None
    used: bool = False
    used_at: datetime | None = None
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(UTC)) >= self.expires_at


class ConsumeResult(BaseModel):
    """Outcome of an atomic consume attempt on a resume token."""

    status: Literal["consumed", "not_found", "used", "expired"]
    record: ResumeTokenRecord | None = None
