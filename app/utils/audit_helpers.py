"""
Audit Helper Utilities - one-line audit logging for admin endpoints.

Usage:
    from app.utils.audit_helpers import audit_admin_read

    audit_admin_read(
        request=request,
        background_tasks=background_tasks,
        action="presign-get",
        key=key,
    )

Request context (IP, user agent, request ID, admin email) is read from
``request.state``, populated by RequestContextMiddleware and the admin
session dependency.
"""

from typing import Any

from fastapi import BackgroundTasks, Request

from app.infrastructure.audit.audit_logger import AuditLogger, audit_logger
from app.models.domain.audit_domain import AuditAction, AuditEvent


def build_audit_event(
    request: Request,
    action: AuditAction,
    key: str | None = None,
    http_status: int = 200,
    extra: dict[str, Any] | None = None,
    token: str | None = None,
) -> AuditEvent:
    """
    Build an AuditEvent with the actor and client context of ``request``.

    The actor is the admin session when present, else the draft ``token``.
    """
    state = request.state
    actor_email = getattr(state, "admin_email", None)

    if actor_email:
        actor_type = "admin"
    elif token:
        actor_type = "token"
    else:
        actor_type = "unknown"

    return AuditEvent(
        action=action,
        key=key,
        http_status=http_status,
        actor_type=actor_type,
        actor_email=actor_email,
        token=token,
        ip_address=getattr(state, "ip_address", None),
        user_agent=getattr(state, "user_agent", None),
        request_id=getattr(state, "request_id", None),
        extra=extra,
    )


def get_audit_logger(request: Request) -> AuditLogger:
    return getattr(request.app.state, "audit", None) or audit_logger


def audit_admin_read(
    request: Request,
    background_tasks: BackgroundTasks,
    action: AuditAction,
    key: str | None = None,
    http_status: int = 200,
    extra: dict[str, Any] | None = None,
    token: str | None = None,
) -> AuditEvent:
    """
    Schedule an audit record for a read of stored applicant data.

    The write runs after the response is sent, so it never gates the read.
    """
    event = build_audit_event(request, action, key, http_status, extra, token)
    background_tasks.add_task(get_audit_logger(request).record, event)
    return event
