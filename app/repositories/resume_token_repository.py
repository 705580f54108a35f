"""
Resume token store: single-use, short-lived resume tokens.

``consume`` is the security-critical operation. The conditional UPDATE marks the
token used and returns it in one statement, so two concurrent exchanges of the
same token cannot both observe ``consumed``.
"""

from datetime import datetime
from typing import Protocol

from app.db.helpers import execute_query, fetch_one
from app.infrastructure.observability.logging import get_logger, token_preview
from app.models.domain.draft_domain import ConsumeResult, ResumeTokenRecord

logger = get_logger(__name__)

_TOKEN_COLUMNS = "resume_token, submission_id, email, used, used_at, created_at, expires_at"


class ResumeTokenStore(Protocol):
    async def create(self, record: ResumeTokenRecord) -> None: ...

    async def consume(self, resume_token: str, now: datetime) -> ConsumeResult: ...


class PostgresResumeTokenStore:
    """Persistence helpers for resume_tokens."""

    async def create(self, record: ResumeTokenRecord) -> None:
        await execute_query(
            """
            INSERT INTO resume_tokens (resume_token, submission_id, email, used, created_at, expires_at)
            VALUES (%s, %s, %s, FALSE, %s, %s)
            """,
            (
                record.resume_token,
                record.submission_id,
                record.email,
                record.created_at,
                record.expires_at,
            ),
        )

    async def consume(self, resume_token: str, now: datetime) -> ConsumeResult:
        row = await fetch_one(
            f"""
            UPDATE resume_tokens
            SET used = TRUE, used_at = %s
            WHERE resume_token = %s AND used = FALSE AND expires_at > %s
            RETURNING {_TOKEN_COLUMNS}
            """,
            (now, resume_token, now),
        )
        if row:
            return ConsumeResult(status="consumed", record=ResumeTokenRecord(**row))

        # Nothing updated: classify why for the caller.
        row = await fetch_one(
            f"SELECT {_TOKEN_COLUMNS} FROM resume_tokens WHERE resume_token = %s",
            (resume_token,),
        )
        if not row:
            return ConsumeResult(status="not_found")

        record = ResumeTokenRecord(**row)
        if record.used:
            logger.warning("Resume token replay rejected", token=token_preview(resume_token))
            return ConsumeResult(status="used", record=record)
        return ConsumeResult(status="expired", record=record)

    async def purge_expired(self, now: datetime) -> int:
        return await execute_query(
            "DELETE FROM resume_tokens WHERE expires_at <= %s",
            (now,),
        )
