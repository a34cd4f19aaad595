"""
Authorization service — who is calling, and may they provision credentials?

Guard flow:
  1. Exchange the bearer token for an identity provider account (whoami)
  2. Load the caller's directory profile bound to that account
  3. Require "admin" in the caller's normalized role set

A caller without a directory profile is treated exactly like a caller
without the admin role. Nothing here mutates state.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ForbiddenError, IdentityProviderError, UnauthorizedError
from app.models.user import DirectoryUser
from app.services import directory_service
from app.services.identity_provider import IdentityProvider
from app.services.roles import has_admin_role


def read_bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an "Authorization: Bearer <token>" header value."""
    header = (authorization or "").strip()
    if not header.lower().startswith("bearer "):
        return None
    token = header[7:].strip()
    return token or None


async def authorize_caller(
    db: AsyncSession,
    provider: IdentityProvider,
    token: str | None,
) -> DirectoryUser:
    """
    Resolve and authorize the administrator making the request.

    Args:
        db: Database session.
        provider: Identity provider used to validate the token.
        token: Bearer token from the request, or None if absent.

    Returns:
        The caller's DirectoryUser.

    Raises:
        UnauthorizedError: If the token is missing or rejected by the provider.
        InternalServiceError: If the caller's profile cannot be loaded.
        ForbiddenError: If the caller has no profile or lacks the admin role.
    """
    if not token:
        raise UnauthorizedError("Missing bearer token.")

    try:
        account = await provider.whoami(token)
    except IdentityProviderError as exc:
        raise UnauthorizedError("Invalid access token.") from exc
    if not account.ref:
        raise UnauthorizedError("Invalid access token.")

    caller = await directory_service.get_user_by_identity_ref(db, account.ref)

    if caller is None or not has_admin_role(caller):
        raise ForbiddenError()

    return caller
