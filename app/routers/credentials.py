"""
Credentials router — administrative password provisioning.

Endpoints:
  POST    /set-auth-password  — Set or reset a user's login password (admin only)
  OPTIONS /set-auth-password  — CORS pre-flight (204, no body)

Security notes:
  - The plaintext password exists only in memory while the request is
    processed; it is forwarded to the identity provider and never logged
    or stored locally.
  - The body is read only after the caller has been authorized.
"""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_identity_provider, require_admin
from app.models.user import DirectoryUser
from app.schemas.credentials import SetPasswordResponse
from app.services import credential_service
from app.services.identity_provider import IdentityProvider

router = APIRouter()


@router.post(
    "/set-auth-password",
    response_model=SetPasswordResponse,
    summary="Set or reset a user's login password",
)
async def set_auth_password(
    request: Request,
    caller: DirectoryUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """
    Ensure the target user's identity provider account has this password.

    Body: {"user_id": <positive int>, "password": <string, 8+ characters>}

    Creates the account (and binds it to the profile) when the user has none
    or their bound account no longer exists.
    """
    body = await request.body()
    return await credential_service.set_password(
        db=db,
        provider=provider,
        caller=caller,
        body=body,
    )


@router.options(
    "/set-auth-password",
    status_code=status.HTTP_204_NO_CONTENT,
    include_in_schema=False,
)
async def set_auth_password_preflight():
    return Response(status_code=status.HTTP_204_NO_CONTENT)
