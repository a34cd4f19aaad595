"""
Identity provisioner — make the provider account carry the new password.

Update path:
  update_password(ref). If the account vanished since resolution, fall
  through to the create path instead of failing.

Create path:
  1. create(canonical identifier)
  2. On a conflict only, create once more with a fallback identifier
     (canonical local part + 8 random hex characters). The canonical
     identifier can be held by an orphaned or soft-deleted provider record
     this service cannot see.
  3. Anything else, or a second failure, is an InternalServiceError.

Revival:
  After a live reference exists, clear the soft-delete, ban and
  external-login-only flags. Each step runs regardless of the others and
  failures are only logged.
"""

import uuid
from dataclasses import dataclass

from app.exceptions import (
    IdentityConflictError,
    IdentityNotFoundError,
    IdentityProviderError,
    InternalServiceError,
)
from app.logging_config import logger
from app.services.identity_provider import IdentityAccount, IdentityProvider
from app.services.identity_resolver import ResolvedIdentity


@dataclass(frozen=True)
class ProvisionResult:
    ref: str
    login_identifier: str
    created: bool


REVIVAL_STEPS = (
    ("clear_soft_delete", "soft-delete"),
    ("clear_ban", "ban"),
    ("clear_external_login_only", "external-login-only"),
)


def build_fallback_identifier(canonical: str) -> str:
    """Append a random 8-character suffix to the local part of an identifier."""
    local, _, domain = canonical.partition("@")
    suffix = uuid.uuid4().hex[:8]
    return f"{local}.{suffix}@{domain}"


async def _create_with_fallback(
    provider: IdentityProvider,
    canonical: str,
    password: str,
) -> tuple[IdentityAccount, str]:
    identifier = canonical
    try:
        account = await provider.create(identifier, password)
    except IdentityConflictError:
        identifier = build_fallback_identifier(canonical)
        logger.info("Login identifier %s is taken; retrying with %s", canonical, identifier)
        try:
            account = await provider.create(identifier, password)
        except IdentityProviderError as exc:
            logger.error("Creating identity %s failed: %s", identifier, exc.message)
            raise InternalServiceError("Failed to create auth user.") from exc
    except IdentityProviderError as exc:
        logger.error("Creating identity %s failed: %s", identifier, exc.message)
        raise InternalServiceError("Failed to create auth user.") from exc

    if not account.ref:
        raise InternalServiceError("Failed to create auth user.")
    return account, identifier


async def provision(
    provider: IdentityProvider,
    resolved: ResolvedIdentity,
    password: str,
) -> ProvisionResult:
    """
    Update the live account's password, or create a new account.

    Args:
        provider: Identity provider.
        resolved: Output of the identity resolver.
        password: The new password (never logged).

    Returns:
        The live reference, its login identifier, and whether it was created.

    Raises:
        InternalServiceError: On any provider error not recovered above.
    """
    if resolved.ref:
        try:
            await provider.update_password(resolved.ref, password)
            return ProvisionResult(
                ref=resolved.ref,
                login_identifier=resolved.login_identifier,
                created=False,
            )
        except IdentityNotFoundError:
            logger.info("Identity %s disappeared before password update; creating a new one", resolved.ref)
        except IdentityProviderError as exc:
            logger.error("Password update on identity %s failed: %s", resolved.ref, exc.message)
            raise InternalServiceError("Failed to update auth user.") from exc

    account, identifier = await _create_with_fallback(
        provider, resolved.canonical_identifier, password
    )
    logger.info("Created identity %s (%s)", account.ref, account.login_identifier or identifier)
    return ProvisionResult(
        ref=account.ref,
        login_identifier=(account.login_identifier or identifier).strip().lower(),
        created=True,
    )


async def revive_account(provider: IdentityProvider, ref: str) -> list[str]:
    """
    Clear disabled-account flags, best effort.

    Returns:
        Names of the flags that could not be cleared (empty on full success).
    """
    failed: list[str] = []
    for method_name, flag in REVIVAL_STEPS:
        try:
            await getattr(provider, method_name)(ref)
        except Exception as exc:
            logger.warning("Could not clear %s flag on identity %s: %s", flag, ref, exc)
            failed.append(flag)
    return failed
