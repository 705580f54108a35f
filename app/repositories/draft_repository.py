"""
Draft store adapter: maps an opaque draft token to its stored metadata.
"""

from datetime import datetime
from typing import Protocol

from app.db.helpers import execute_query, fetch_one
from app.infrastructure.observability.logging import get_logger
from app.models.domain.draft_domain import DraftRecord, EmailDeliveryStatus

logger = get_logger(__name__)

_DRAFT_COLUMNS = """
    token, s3_key, step, status, email, last_activity_at, updated_at,
    finalized_at, last_resume_email_at, last_email_status
"""


class DraftStore(Protocol):
    async def get(self, token: str) -> DraftRecord | None: ...

    async def save(self, token: str, s3_key: str, step: int, now: datetime) -> DraftRecord: ...

    async def record_resume_email(
        self, token: str, email: str, status: EmailDeliveryStatus, now: datetime
    ) -> None: ...


class PostgresDraftStore:
    """Persistence helpers for form_drafts."""

    async def get(self, token: str) -> DraftRecord | None:
        row = await fetch_one(
            f"SELECT {_DRAFT_COLUMNS} FROM form_drafts WHERE token = %s",
            (token,),
        )
        return DraftRecord(**row) if row else None

    async def save(self, token: str, s3_key: str, step: int, now: datetime) -> DraftRecord:
        """Create or update the draft after its payload was written to storage."""
        row = await fetch_one(
            f"""
            INSERT INTO form_drafts (token, s3_key, step, status, last_activity_at, updated_at)
            VALUES (%s, %s, %s, 'draft', %s, %s)
            ON CONFLICT (token)
            DO UPDATE SET
                s3_key = EXCLUDED.s3_key,
                step = EXCLUDED.step,
                status = 'draft',
                last_activity_at = EXCLUDED.last_activity_at,
                updated_at = EXCLUDED.updated_at
            RETURNING {_DRAFT_COLUMNS}
            """,
            (token, s3_key, step, now, now),
        )
        return DraftRecord(**row)

    async def record_resume_email(
        self, token: str, email: str, status: EmailDeliveryStatus, now: datetime
    ) -> None:
        await execute_query(
            """
            INSERT INTO form_drafts (
                token, email, last_activity_at, updated_at,
                last_resume_email_at, last_email_status
            )
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (token)
            DO UPDATE SET
                email = EXCLUDED.email,
                last_activity_at = EXCLUDED.last_activity_at,
                updated_at = EXCLUDED.updated_at,
                last_resume_email_at = EXCLUDED.last_resume_email_at,
                last_email_status = EXCLUDED.last_email_status
            """,
            (token, email, now, now, now, status),
        )

    async def purge_idle(self, cutoff: datetime) -> int:
        """Delete drafts not updated since ``cutoff``."""
        return await execute_query(
            "DELETE FROM form_drafts WHERE updated_at < %s",
            (cutoff,),
        )
