"""
admin.py
--------
Purpose:
    Read-only staff endpoints. Every route requires an admin session token in
    ``x-admin-token``; every read of stored applicant data is audited.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from app.auth.admin_session import admin_session_dependency
from app.dependencies import get_draft_service, get_object_storage
from app.errors import InvalidInput
from app.infrastructure.observability.logging import get_logger
from app.models.api.admin_response import AdminMeResponse, FileUrlResponse
from app.models.domain.auth_domain import AdminPrincipal
from app.services.draft_service import DraftService
from app.services.object_storage import PRESIGN_TTL_SECONDS, ObjectStorage, draft_key
from app.utils.audit_helpers import audit_admin_read

router = APIRouter(prefix="/admin", tags=["Admin"])
logger = get_logger(__name__)

SUBMISSION_KEY_PREFIX = "submissions/"


@router.get("/me", response_model=AdminMeResponse)
async def me(admin: AdminPrincipal = Depends(admin_session_dependency)):
    return AdminMeResponse(email=admin.email, role=admin.role)


@router.get("/file-url", response_model=FileUrlResponse)
async def file_url(
    request: Request,
    background_tasks: BackgroundTasks,
    key: str | None = None,
    admin: AdminPrincipal = Depends(admin_session_dependency),
    storage: ObjectStorage = Depends(get_object_storage),
):
    if not key:
        raise InvalidInput("Missing key")
    if not key.startswith(SUBMISSION_KEY_PREFIX) or ".." in key:
        raise InvalidInput("Invalid key")

    url = await storage.presign_get(key, expires_in=PRESIGN_TTL_SECONDS)
    audit_admin_read(request, background_tasks, action="presign-get", key=key)
    return FileUrlResponse(url=url, expires_in=PRESIGN_TTL_SECONDS)


@router.get("/drafts/{token}")
async def view_draft(
    token: str,
    request: Request,
    background_tasks: BackgroundTasks,
    admin: AdminPrincipal = Depends(admin_session_dependency),
    drafts: DraftService = Depends(get_draft_service),
):
    payload = await drafts.load_draft_payload(token)
    audit_admin_read(request, background_tasks, action="view-data", key=draft_key(token))
    logger.info("Admin viewed draft", admin_email=admin.email)
    return payload
