# models/api/resume_request.py
from pydantic import BaseModel, Field


class SendResumeLinkRequest(BaseModel):
    """Request for a resume link to be emailed for a saved draft."""

    email: str | None = Field(default=None, description="Address the resume link is sent to")
    token: str | None = Field(default=None, description="Draft token of the saved application")
