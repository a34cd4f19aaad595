"""
FastAPI dependencies for the identity provider and caller authorization.

  get_identity_provider                  — process-wide provider instance
  require_admin (Authorization -> DirectoryUser)  [admin role]

Protected endpoints declare require_admin as a parameter, so a request
with a missing/invalid token or a non-admin caller is rejected before the
route handler runs and before the request body is looked at.

Tests replace get_identity_provider through app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.user import DirectoryUser
from app.services import auth_service
from app.services.identity_provider import GoTrueIdentityProvider, IdentityProvider


@lru_cache
def get_identity_provider() -> IdentityProvider:
    """Build the configured identity provider once per process."""
    return GoTrueIdentityProvider()


async def require_admin(
    authorization: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> DirectoryUser:
    """
    Require the caller to be an administrator.

    Args:
        authorization: Raw Authorization header value.
        db: Database session (injected by get_db).
        provider: Identity provider used to validate the bearer token.

    Returns:
        The caller's DirectoryUser.

    Raises:
        UnauthorizedError: Missing or invalid bearer token (401).
        ForbiddenError: No profile or no admin role (403).
        InternalServiceError: Profile lookup failed (500).
    """
    token = auth_service.read_bearer_token(authorization)
    return await auth_service.authorize_caller(db, provider, token)
