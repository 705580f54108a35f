"""
FastAPI dependencies resolving the services wired onto ``app.state`` by the
application lifespan (or by a test app).
"""

from fastapi import Request

from app.services.admin_auth_service import AdminMagicLinkAuthenticator
from app.services.draft_service import DraftService
from app.services.object_storage import ObjectStorage
from app.services.resume_service import ResumeFlowController


def get_admin_auth(request: Request) -> AdminMagicLinkAuthenticator:
    return request.app.state.admin_auth


def get_resume_flow(request: Request) -> ResumeFlowController:
    return request.app.state.resume_flow


def get_draft_service(request: Request) -> DraftService:
    return request.app.state.draft_service


def get_object_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage
