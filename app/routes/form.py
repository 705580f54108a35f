"""
form.py
-------
Purpose:
    Draft save endpoint for the multi-step application form.

    The body is the form state as the browser holds it. Only ``token`` and
    ``step`` are interpreted; everything else is stored verbatim.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends

from app.dependencies import get_draft_service
from app.models.api.resume_response import SaveDraftResponse
from app.services.draft_service import DraftService

router = APIRouter(tags=["Form"])


@router.post("/save-draft", response_model=SaveDraftResponse)
async def save_draft(
    body: dict[str, Any] | None = Body(default=None),
    drafts: DraftService = Depends(get_draft_service),
):
    record = await drafts.save_draft(body or {})
    return SaveDraftResponse(token=record.token, step=record.step)
