"""
Pydantic schemas for the credential provisioning endpoint.

The request is validated explicitly in the service layer (after the caller
is authorized), so validation errors become 400 responses with a short
message rather than FastAPI's default 422 body.
"""

from pydantic import BaseModel, Field, StrictStr

from app.config import settings


class SetPasswordRequest(BaseModel):
    """Request body for POST /set-auth-password."""
    # Upper bound is the largest value a BIGINT primary key can hold
    user_id: int = Field(gt=0, le=2**63 - 1)
    password: StrictStr = Field(min_length=settings.MIN_PASSWORD_LENGTH)


class SetPasswordResponse(BaseModel):
    """Response body for a successful password provisioning."""
    success: bool = True
    auth_uid: str
    auth_email: str
    created_auth_user: bool
