"""
Test fixtures for the credential provisioning test suite.

This module provides shared fixtures used across all test files:

  - db_engine / db_session: Fresh in-memory SQLite directory for each test
  - provider: In-memory FakeIdentityProvider standing in for the real one
  - client: Async HTTP test client (unauthenticated)
  - admin_client: Test client whose bearer token belongs to an admin profile
  - add_user: Helper to insert directory rows

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) gives every test an isolated store.
  - get_db and get_identity_provider are overridden on the real app, so the
    application code runs exactly as it does in production.
  - The fake provider records every call, which lets tests assert that a
    rejected request never reached the provider or the store.
"""

import os

os.environ.setdefault("IDENTITY_PROVIDER_URL", "https://identity.test")
os.environ.setdefault("IDENTITY_PROVIDER_SERVICE_KEY", "test-service-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import uuid

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.database import Base, get_db
from app.dependencies import get_identity_provider
from app.exceptions import IdentityConflictError, IdentityNotFoundError, IdentityProviderError
from app.main import app
from app.models.user import DirectoryUser
from app.services.identity_provider import IdentityAccount


TEST_DATABASE_URL = "sqlite+aiosqlite://"

ADMIN_TOKEN = "admin-token"
ADMIN_REF = "admin-ref"


class FakeIdentityProvider:
    """
    In-memory identity provider implementing the IdentityProvider protocol.

    Attributes:
        accounts: ref -> {"email", "password", "deleted", "banned", "sso"}
        tokens: bearer token -> ref
        reserved: identifiers held by records invisible to the directory
            (creating with one of these raises a conflict)
        failures: method name -> exception raised on the next call
        calls: (method name, first argument) for every call made
    """

    def __init__(self):
        self.accounts: dict[str, dict] = {}
        self.tokens: dict[str, str] = {}
        self.reserved: set[str] = set()
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple[str, str]] = []

    def add_account(self, email: str, password: str = "OldPassword1", ref: str | None = None) -> str:
        ref = ref or str(uuid.uuid4())
        self.accounts[ref] = {
            "email": email,
            "password": password,
            "deleted": False,
            "banned": False,
            "sso": False,
        }
        return ref

    def _record(self, method: str, arg: str) -> None:
        self.calls.append((method, arg))
        if method in self.failures:
            raise self.failures.pop(method)

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    async def whoami(self, token: str) -> IdentityAccount:
        self._record("whoami", token)
        ref = self.tokens.get(token)
        if ref is None:
            raise IdentityProviderError("invalid JWT", 401)
        return IdentityAccount(ref=ref, login_identifier=self.accounts.get(ref, {}).get("email"))

    async def get_by_ref(self, ref: str) -> IdentityAccount:
        self._record("get_by_ref", ref)
        if ref not in self.accounts:
            raise IdentityNotFoundError("User not found", 404)
        return IdentityAccount(ref=ref, login_identifier=self.accounts[ref]["email"])

    async def update_password(self, ref: str, password: str) -> None:
        self._record("update_password", ref)
        if ref not in self.accounts:
            raise IdentityNotFoundError("User not found", 404)
        self.accounts[ref]["password"] = password

    async def create(self, login_identifier: str, password: str) -> IdentityAccount:
        self._record("create", login_identifier)
        taken = {account["email"] for account in self.accounts.values()}
        if login_identifier in self.reserved or login_identifier in taken:
            raise IdentityConflictError(
                "A user with this email address has already been registered", 422
            )
        ref = self.add_account(login_identifier, password)
        return IdentityAccount(ref=ref, login_identifier=login_identifier)

    async def clear_soft_delete(self, ref: str) -> None:
        self._record("clear_soft_delete", ref)
        self.accounts[ref]["deleted"] = False

    async def clear_ban(self, ref: str) -> None:
        self._record("clear_ban", ref)
        self.accounts[ref]["banned"] = False

    async def clear_external_login_only(self, ref: str) -> None:
        self._record("clear_external_login_only", ref)
        self.accounts[ref]["sso"] = False


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Provide an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def provider():
    return FakeIdentityProvider()


@pytest_asyncio.fixture
async def add_user(session_factory):
    """
    Insert a directory row and return it.

    Usage:
        user = await add_user(username="Jane Doe", role="teacher")
    """

    async def _add_user(**fields) -> DirectoryUser:
        async with session_factory() as session:
            user = DirectoryUser(**fields)
            session.add(user)
            await session.commit()
            return user

    return _add_user


@pytest_asyncio.fixture
async def load_user(session_factory):
    """Re-read a directory row in a fresh session."""

    async def _load_user(user_id: int) -> DirectoryUser | None:
        async with session_factory() as session:
            return await session.get(DirectoryUser, user_id)

    return _load_user


@pytest_asyncio.fixture
async def client(session_factory, provider):
    """
    Async HTTP test client with the test database and fake provider injected.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_provider] = lambda: provider

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin(add_user, provider):
    """An administrator profile bound to a provider account with a valid token."""
    provider.add_account("principal@local.tcc", ref=ADMIN_REF)
    provider.tokens[ADMIN_TOKEN] = ADMIN_REF
    return await add_user(username="principal", identity_ref=ADMIN_REF, roles='["admin"]')


@pytest_asyncio.fixture
async def admin_client(client, admin, provider):
    """
    Test client authenticated as an administrator.

    The provider's call log is cleared so tests only see calls made by the
    request under test.
    """
    client.headers["Authorization"] = f"Bearer {ADMIN_TOKEN}"
    provider.calls.clear()
    return client
