# models/api/admin_response.py
from pydantic import BaseModel, Field


class AdminSessionResponse(BaseModel):
    """Session issued after a magic link is verified."""

    token: str = Field(..., description="Admin session token; send as x-admin-token")
    exp: int = Field(..., description="Session expiry (epoch seconds)")


class AdminMeResponse(BaseModel):
    ok: bool = True
    email: str = Field(..., description="Authenticated admin email")
    role: str = Field(default="admin", description="Admin role")


class FileUrlResponse(BaseModel):
    """Short-lived presigned URL for a stored submission file."""

    ok: bool = True
    url: str = Field(..., description="Presigned GET URL")
    expires_in: int = Field(..., description="URL lifetime in seconds")
