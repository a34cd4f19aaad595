"""
Tests for login identifier derivation and identity resolution.
"""

import pytest

from app.exceptions import IdentityProviderError, InternalServiceError
from app.models.user import DirectoryUser
from app.services.identity_resolver import (
    build_login_identifier,
    normalize_login_local,
    resolve_identity,
)


class TestLoginIdentifier:

    @pytest.mark.parametrize(
        "username, expected",
        [
            ("Jane Doe", "jane.doe@local.tcc"),
            ("  MARIA  ", "maria@local.tcc"),
            ("o'brien, sean", "o.brien.sean@local.tcc"),
            ("...dotted...", "dotted@local.tcc"),
            ("first_last-2024", "first_last-2024@local.tcc"),
            ("José Ñúñez", "jos.ez@local.tcc"),
            ("!!!", "user42@local.tcc"),
            ("", "user42@local.tcc"),
            (None, "user42@local.tcc"),
        ],
    )
    def test_canonical_identifier(self, username, expected):
        assert build_login_identifier(username, 42) == expected

    def test_is_deterministic(self):
        first = build_login_identifier("Jane Doe", 42)
        assert all(build_login_identifier("Jane Doe", 42) == first for _ in range(5))

    def test_custom_domain(self):
        assert build_login_identifier("Jane", 1, domain="school.example") == "jane@school.example"

    def test_normalize_keeps_inner_dots(self):
        assert normalize_login_local("a..b", "x") == "a..b"
        assert normalize_login_local("a  b", "x") == "a.b"


class TestResolveIdentity:

    async def test_unbound_user_needs_creation(self, provider):
        resolved = await resolve_identity(provider, DirectoryUser(id=42, username="Jane Doe"))
        assert resolved.ref is None
        assert resolved.login_identifier == "jane.doe@local.tcc"
        assert provider.calls == []

    async def test_live_reference(self, provider):
        ref = provider.add_account("old.name@local.tcc")
        resolved = await resolve_identity(
            provider, DirectoryUser(id=42, username="Jane Doe", identity_ref=ref)
        )
        assert resolved.ref == ref
        assert resolved.login_identifier == "old.name@local.tcc"
        assert resolved.canonical_identifier == "jane.doe@local.tcc"

    async def test_stale_reference_is_dropped(self, provider):
        resolved = await resolve_identity(
            provider, DirectoryUser(id=42, username="Jane Doe", identity_ref="gone")
        )
        assert resolved.ref is None
        assert resolved.login_identifier == "jane.doe@local.tcc"

    async def test_other_lookup_errors_propagate(self, provider):
        provider.failures["get_by_ref"] = IdentityProviderError("service unavailable", 503)
        with pytest.raises(InternalServiceError):
            await resolve_identity(
                provider, DirectoryUser(id=42, username="Jane Doe", identity_ref="some-ref")
            )
