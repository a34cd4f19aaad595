"""
Identity provider capability and its HTTP implementation.

The rest of the service only depends on the IdentityProvider protocol:

  whoami(token)                       — resolve a caller's bearer token
  get_by_ref(ref)                     — load an account by reference
  update_password(ref, password)      — set a new password in place
  create(login_identifier, password)  — create a pre-confirmed account
  clear_soft_delete(ref)              — revival of disabled accounts
  clear_ban(ref)                      — revival of disabled accounts
  clear_external_login_only(ref)      — revival of disabled accounts

Failures are reported as IdentityProviderError subclasses so callers can
tell "not found" and "conflict" apart from everything else without
inspecting provider-specific payloads.

GoTrueIdentityProvider speaks the Supabase GoTrue admin API for accounts
and PostgREST (auth schema) for the revival flags. Each call opens a short
lived httpx.AsyncClient with a bounded timeout; no retries are attempted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from app.config import settings
from app.exceptions import (
    IdentityConflictError,
    IdentityNotFoundError,
    IdentityProviderError,
)

NOT_FOUND_MARKERS = ("not found", "does not exist")

CONFLICT_MARKERS = (
    "database error checking email",
    "already been registered",
    "already exists",
    "duplicate key",
)


@dataclass(frozen=True)
class IdentityAccount:
    """An identity provider account as seen by this service."""

    ref: str
    login_identifier: str | None = None


class IdentityProvider(Protocol):
    async def whoami(self, token: str) -> IdentityAccount: ...

    async def get_by_ref(self, ref: str) -> IdentityAccount: ...

    async def update_password(self, ref: str, password: str) -> None: ...

    async def create(self, login_identifier: str, password: str) -> IdentityAccount: ...

    async def clear_soft_delete(self, ref: str) -> None: ...

    async def clear_ban(self, ref: str) -> None: ...

    async def clear_external_login_only(self, ref: str) -> None: ...


def is_not_found_message(message: str) -> bool:
    text = (message or "").lower()
    return any(marker in text for marker in NOT_FOUND_MARKERS)


def is_conflict_message(message: str) -> bool:
    text = (message or "").lower()
    return any(marker in text for marker in CONFLICT_MARKERS)


def classify_provider_error(message: str, status_code: int | None = None) -> IdentityProviderError:
    """Map a provider failure onto the not-found / conflict / generic classes."""
    if is_conflict_message(message):
        return IdentityConflictError(message, status_code)
    if status_code == 404 or is_not_found_message(message):
        return IdentityNotFoundError(message, status_code)
    return IdentityProviderError(message, status_code)


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"Identity provider returned HTTP {resp.status_code}."
    if isinstance(body, dict):
        for key in ("msg", "message", "error_description", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return f"Identity provider returned HTTP {resp.status_code}."


def _account_from_payload(payload: Any) -> IdentityAccount:
    # Admin endpoints return the user object directly; some versions wrap it
    user = payload.get("user", payload) if isinstance(payload, dict) else None
    if not isinstance(user, dict) or not user.get("id"):
        raise IdentityProviderError("Identity provider returned no account.")
    email = user.get("email")
    return IdentityAccount(
        ref=str(user["id"]),
        login_identifier=str(email).strip().lower() if email else None,
    )


class GoTrueIdentityProvider:
    """
    IdentityProvider backed by a Supabase project.

    Args:
        base_url: Project URL, e.g. "https://abc.supabase.co".
        service_key: Service-role key used for every admin call.
        timeout: Per-call timeout in seconds.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        service_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.IDENTITY_PROVIDER_URL).rstrip("/")
        self._service_key = (service_key or settings.IDENTITY_PROVIDER_SERVICE_KEY).strip()
        self._timeout = float(timeout or settings.IDENTITY_PROVIDER_TIMEOUT_SECONDS)
        self._transport = transport

    def _headers(self, bearer: str | None = None) -> dict[str, str]:
        return {
            "apikey": self._service_key,
            "Authorization": f"Bearer {bearer or self._service_key}",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        json: Any = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                resp = await client.request(
                    method,
                    path,
                    headers=headers or self._headers(),
                    json=json,
                    params=params,
                )
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Identity provider unreachable: {exc}") from exc

        if resp.is_error:
            raise classify_provider_error(_error_message(resp), resp.status_code)
        return resp

    # --- Accounts ---------------------------------------------------------

    async def whoami(self, token: str) -> IdentityAccount:
        resp = await self._request("GET", "/auth/v1/user", headers=self._headers(token))
        return _account_from_payload(resp.json())

    async def get_by_ref(self, ref: str) -> IdentityAccount:
        resp = await self._request("GET", f"/auth/v1/admin/users/{ref}")
        return _account_from_payload(resp.json())

    async def update_password(self, ref: str, password: str) -> None:
        await self._request("PUT", f"/auth/v1/admin/users/{ref}", json={"password": password})

    async def create(self, login_identifier: str, password: str) -> IdentityAccount:
        resp = await self._request(
            "POST",
            "/auth/v1/admin/users",
            json={
                "email": login_identifier,
                "password": password,
                # Administrative provisioning: no verification step
                "email_confirm": True,
            },
        )
        return _account_from_payload(resp.json())

    # --- Revival flags ----------------------------------------------------

    async def _patch_auth_row(self, ref: str, values: dict[str, Any]) -> None:
        headers = {
            **self._headers(),
            "Content-Profile": "auth",
            "Prefer": "return=minimal",
        }
        await self._request(
            "PATCH",
            "/rest/v1/users",
            headers=headers,
            json=values,
            params={"id": f"eq.{ref}"},
        )

    async def clear_soft_delete(self, ref: str) -> None:
        await self._patch_auth_row(ref, {"deleted_at": None})

    async def clear_ban(self, ref: str) -> None:
        await self._patch_auth_row(ref, {"banned_until": None})

    async def clear_external_login_only(self, ref: str) -> None:
        await self._patch_auth_row(ref, {"is_sso_user": False})
