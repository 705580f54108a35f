"""
admin_session.py
----------------
Purpose:
    Admin session verification for protected admin routes.

Notes:
    - Session tokens arrive in the ``x-admin-token`` header.
    - Verification (signature, expiry, ``typ="session"``, allow-list) lives in
      AdminMagicLinkAuthenticator.authenticate; this module only adapts it to
      a FastAPI dependency.
    - The verified email is exposed as ``request.state.admin_email`` for audit.
"""

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader

from app.dependencies import get_admin_auth
from app.models.domain.auth_domain import AdminPrincipal
from app.services.admin_auth_service import AdminMagicLinkAuthenticator

ADMIN_TOKEN_HEADER = "x-admin-token"

_security = APIKeyHeader(name=ADMIN_TOKEN_HEADER, auto_error=False)


def admin_session_dependency(
    request: Request,
    token: str | None = Depends(_security),
    authenticator: AdminMagicLinkAuthenticator = Depends(get_admin_auth),
) -> AdminPrincipal:
    principal = authenticator.authenticate(token)
    request.state.admin_email = principal.email
    return principal
