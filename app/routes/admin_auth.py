"""
admin_auth.py
-------------
Purpose:
    Admin magic-link login.

    - POST /admin/auth/request  mail a magic link to an allow-listed address
    - GET  /admin/auth/verify   trade a magic token for a session token
"""

from fastapi import APIRouter, Depends, Request

from app.dependencies import get_admin_auth
from app.models.api.admin_request import MagicLinkRequest
from app.models.api.admin_response import AdminSessionResponse
from app.models.api.resume_response import AckResponse
from app.services.admin_auth_service import AdminMagicLinkAuthenticator

router = APIRouter(prefix="/admin/auth", tags=["Admin Auth"])


@router.post("/request", response_model=AckResponse)
async def request_magic_link(
    body: MagicLinkRequest,
    request: Request,
    authenticator: AdminMagicLinkAuthenticator = Depends(get_admin_auth),
):
    await authenticator.request_magic_link(body.email, fallback_base_url=str(request.base_url))
    return AckResponse()


@router.get("/verify", response_model=AdminSessionResponse)
async def verify_magic_link(
    token: str | None = None,
    authenticator: AdminMagicLinkAuthenticator = Depends(get_admin_auth),
):
    session = authenticator.verify_magic_link(token)
    return AdminSessionResponse(token=session.token, exp=session.exp)
