"""
AuditLogger - records sensitive reads of applicant data.

Every admin read of stored submission data (presigned file URLs, draft
payloads) produces one AuditEvent, written to:
1. Structured logs (stdout) - real-time monitoring
2. Database (audit_logs table) - immutable, queryable

Usage:
    from app.infrastructure.audit import audit_logger

    await audit_logger.record(
        AuditEvent(
            action="presign-get",
            key="submissions/abc123/files/passport.pdf",
            http_status=200,
            actor_type="admin",
            actor_email="staff@org.example",
        )
    )

Recording never fails the request: database errors are logged with enough
context to recreate the row by hand.
"""

from psycopg.types.json import Jsonb

from app.db.helpers import execute_query
from app.infrastructure.observability.logging import get_logger, token_preview
from app.models.domain.audit_domain import AuditEvent

logger = get_logger(__name__)


class AuditLogger:
    """Writes audit events to the log stream and the audit_logs table."""

    async def record(self, event: AuditEvent) -> bool:
        """
        Record an audit event.

        Returns:
            True if the row was written, False if the insert failed (never raises)
        """
        logger.info(
            "Audit event",
            audit_action=event.action,
            actor_type=event.actor_type,
            actor_email=event.actor_email,
            key=event.key,
            http_status=event.http_status,
            ip_address=event.ip_address,
            request_id=event.request_id,
        )

        try:
            await execute_query(
                """
                INSERT INTO audit_logs (
                    actor_type, actor_email, token, ip_address, user_agent,
                    request_id, action, resource_key, http_status, extra, created_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    event.actor_type,
                    event.actor_email,
                    event.token,
                    event.ip_address,
                    event.user_agent,
                    event.request_id,
                    event.action,
                    event.key,
                    event.http_status,
                    Jsonb(event.extra) if event.extra is not None else None,
                    event.created_at,
                ),
            )
            return True

        except Exception as e:
            logger.error(
                "CRITICAL: Failed to write audit log to database",
                error=str(e),
                error_type=type(e).__name__,
                audit_action=event.action,
                fallback_data={
                    "actor_type": event.actor_type,
                    "actor_email": event.actor_email,
                    "token": token_preview(event.token),
                    "action": event.action,
                    "key": event.key,
                    "http_status": event.http_status,
                    "ip_address": event.ip_address,
                    "request_id": event.request_id,
                    "timestamp": event.created_at.isoformat(),
                },
            )
            return False


# Global singleton instance
audit_logger = AuditLogger()
