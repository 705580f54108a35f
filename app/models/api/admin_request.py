# models/api/admin_request.py
from pydantic import BaseModel, Field


class MagicLinkRequest(BaseModel):
    """Request for an admin magic link."""

    email: str | None = Field(default=None, description="Staff email; must be allow-listed")
