"""
Credential service — set or reset another user's login password.

This is the request orchestration, separated from HTTP concerns:

  1. Authorize the caller (admin only)
  2. Validate the body: positive user_id, password of minimum length
  3. Load the target profile
  4. Resolve the target's live identity provider account, if any
  5. Update its password, or create an account (with conflict fallback)
  6. Bind identity_ref on the target profile (the single commit point)
  7. Clear disabled-account flags, best effort

Authorization runs before body validation, so a non-admin caller gets 403
whatever they send.

Every step before the bind is idempotent or self-correcting, so a caller
may safely retry after any 5xx, including a failed bind.
"""

import json

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import BadRequestError, TargetUserNotFoundError
from app.logging_config import logger
from app.models.user import DirectoryUser
from app.schemas.credentials import SetPasswordRequest, SetPasswordResponse
from app.services import directory_service
from app.services.identity_provider import IdentityProvider
from app.services.identity_provisioner import provision, revive_account
from app.services.identity_resolver import resolve_identity


def _validation_message(exc: ValidationError) -> str:
    fields = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}
    if "user_id" in fields:
        return "user_id must be a positive number."
    if "password" in fields:
        return f"password must be at least {settings.MIN_PASSWORD_LENGTH} characters."
    return "Invalid request body."


def parse_payload(body: bytes) -> SetPasswordRequest:
    """
    Parse and validate the raw request body.

    Raises:
        BadRequestError: On malformed JSON or invalid fields.
    """
    try:
        payload = json.loads(body or b"")
    except ValueError as exc:
        raise BadRequestError("Invalid JSON body.") from exc
    if not isinstance(payload, dict):
        raise BadRequestError("Invalid JSON body.")

    try:
        return SetPasswordRequest.model_validate(payload)
    except ValidationError as exc:
        raise BadRequestError(_validation_message(exc)) from exc


async def set_password(
    db: AsyncSession,
    provider: IdentityProvider,
    caller: DirectoryUser,
    body: bytes,
) -> SetPasswordResponse:
    """
    Ensure the target user's provider account has exactly the given password.

    Args:
        db: Database session.
        provider: Identity provider.
        caller: The already-authorized administrator.
        body: Raw JSON request body.

    Returns:
        The bound reference, its login identifier, and whether it was created.

    Raises:
        BadRequestError: Invalid body.
        TargetUserNotFoundError: No profile with the requested user_id.
        InternalServiceError: Store or unexpected provider failure.
    """
    request = parse_payload(body)

    target = await directory_service.get_user_by_id(db, request.user_id)
    if target is None:
        raise TargetUserNotFoundError(request.user_id)

    resolved = await resolve_identity(provider, target)
    result = await provision(provider, resolved, request.password)

    await directory_service.bind_identity_ref(db, target.id, result.ref)

    await revive_account(provider, result.ref)

    logger.info(
        "Admin %s set password for user %s (identity %s, created=%s)",
        caller.id, target.id, result.ref, result.created,
    )
    return SetPasswordResponse(
        auth_uid=result.ref,
        auth_email=result.login_identifier,
        created_auth_user=result.created,
    )
