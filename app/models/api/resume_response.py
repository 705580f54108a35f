# models/api/resume_response.py
from pydantic import BaseModel, Field


class AckResponse(BaseModel):
    """Bare acknowledgement; never reveals whether an email or draft was known."""

    ok: bool = True


class WhoAmIResponse(BaseModel):
    ok: bool = True
    token: str | None = Field(default=None, description="Draft token bound to the resume cookie")


class SaveDraftResponse(BaseModel):
    """Response after a draft save."""

    ok: bool = True
    token: str = Field(..., description="Draft token to keep for later saves and resume links")
    step: int = Field(..., description="Wizard step recorded for the draft")
