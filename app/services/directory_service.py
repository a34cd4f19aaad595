"""
Directory service — reads and the single write against the Directory Store.

Store failures are converted to InternalServiceError here so callers never
need to know about SQLAlchemy. bind_identity_ref is the only mutation the
service performs on a profile and is the request's commit point.
"""

from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import InternalServiceError, TargetUserNotFoundError
from app.logging_config import logger
from app.models.user import DirectoryUser


async def get_user_by_identity_ref(db: AsyncSession, identity_ref: str) -> DirectoryUser | None:
    """Load the profile bound to an identity provider account, if any."""
    try:
        result = await db.execute(
            select(DirectoryUser).where(DirectoryUser.identity_ref == identity_ref)
        )
        return result.scalars().first()
    except SQLAlchemyError as exc:
        logger.error("Caller profile lookup failed: %s", exc)
        raise InternalServiceError("Failed to load caller profile.") from exc


async def get_user_by_id(db: AsyncSession, user_id: int) -> DirectoryUser | None:
    try:
        result = await db.execute(select(DirectoryUser).where(DirectoryUser.id == user_id))
        return result.scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.error("Target profile lookup failed for user %s: %s", user_id, exc)
        raise InternalServiceError("Failed to load target user.") from exc


async def bind_identity_ref(db: AsyncSession, user_id: int, identity_ref: str) -> None:
    """
    Point a profile at its identity provider account and commit.

    Raises:
        InternalServiceError: If the update or commit fails. The provider
            side has already changed at this point; the caller's retry
            re-resolves the live account and binds it again.
        TargetUserNotFoundError: If the profile was deleted after it was loaded.
    """
    try:
        result = await db.execute(
            update(DirectoryUser)
            .where(DirectoryUser.id == user_id)
            .values({
                DirectoryUser.identity_ref: identity_ref,
                DirectoryUser.updated_at: datetime.now(timezone.utc),
            })
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Binding identity %s to user %s failed: %s", identity_ref, user_id, exc)
        raise InternalServiceError("Failed to bind auth_uid to user profile.") from exc

    if result.rowcount == 0:
        logger.warning("User %s vanished before identity %s could be bound", user_id, identity_ref)
        raise TargetUserNotFoundError(user_id)
    logger.info("Bound identity %s to user %s", identity_ref, user_id)
