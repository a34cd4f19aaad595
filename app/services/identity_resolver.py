"""
Identity resolver — login identifier derivation and live-account lookup.

The canonical login identifier is a pure function of (username, id): the
username is folded into [a-z0-9._-] with every other run of characters
collapsed to a single dot, and "user<id>" is used when nothing survives.

    "Jane Doe", 42  ->  jane.doe@local.tcc
    "!!!",      42  ->  user42@local.tcc
"""

import re
from dataclasses import dataclass

from app.config import settings
from app.exceptions import IdentityNotFoundError, IdentityProviderError, InternalServiceError
from app.logging_config import logger
from app.models.user import DirectoryUser
from app.services.identity_provider import IdentityProvider

_DISALLOWED_RUN = re.compile(r"[^a-z0-9._-]+")
_EDGE_DOTS = re.compile(r"^\.+|\.+$")


@dataclass(frozen=True)
class ResolvedIdentity:
    """
    Outcome of resolution.

    ref is None when a new account must be created. login_identifier is the
    live account's identifier when one was found, otherwise the canonical one.
    """

    ref: str | None
    login_identifier: str
    canonical_identifier: str


def normalize_login_local(text: str, fallback: str) -> str:
    local = _DISALLOWED_RUN.sub(".", text.strip().lower())
    local = _EDGE_DOTS.sub("", local)
    return local or fallback


def build_login_identifier(username: str | None, user_id: int, domain: str | None = None) -> str:
    local = normalize_login_local(username or "", f"user{user_id}")
    return f"{local}@{domain or settings.LOGIN_DOMAIN}"


async def resolve_identity(provider: IdentityProvider, target: DirectoryUser) -> ResolvedIdentity:
    """
    Decide whether the target already has a live provider account.

    A reference the provider reports as missing is treated as stale and
    dropped (in memory only); the binding is rewritten later once a new
    account exists.

    Raises:
        InternalServiceError: If the lookup fails for any other reason.
    """
    canonical = build_login_identifier(target.username, target.id)
    ref = (target.identity_ref or "").strip()
    if not ref:
        return ResolvedIdentity(ref=None, login_identifier=canonical, canonical_identifier=canonical)

    try:
        account = await provider.get_by_ref(ref)
    except IdentityNotFoundError:
        logger.info("Identity %s for user %s no longer exists; will provision a new one", ref, target.id)
        return ResolvedIdentity(ref=None, login_identifier=canonical, canonical_identifier=canonical)
    except IdentityProviderError as exc:
        logger.error("Lookup of identity %s for user %s failed: %s", ref, target.id, exc.message)
        raise InternalServiceError("Failed to load auth user by id.") from exc

    return ResolvedIdentity(
        ref=account.ref,
        login_identifier=account.login_identifier or canonical,
        canonical_identifier=canonical,
    )
