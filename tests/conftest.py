"""
tests/conftest.py -- Shared test fixtures for the authentication API.

This module provides:
  - hasher / codec: fast auth primitives (bcrypt cost 4, fixed test secret)
  - store: a fresh in-memory AccountStore per test
  - auth_service / account_service: services wired to that store
  - api_client: TestClient over the real app with a patched lifespan

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. A uuid in the name keeps every test's database separate.

The DEBUG env var must be set before any api/ import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.accounts import AccountService
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import AccountStore
from auth.tokens import TokenCodec
from core.config import get_settings

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256-signing"

# bcrypt's minimum cost; keeps the suite fast.
TEST_ROUNDS = 4


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_ROUNDS)


@pytest.fixture(scope="session")
def secret_key() -> str:
    return TEST_SECRET


@pytest.fixture(scope="session")
def codec(secret_key: str) -> TokenCodec:
    return TokenCodec(secret_key)


@pytest.fixture
def store() -> Generator[AccountStore, None, None]:
    s = AccountStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def auth_service(store: AccountStore, hasher: PasswordHasher, codec: TokenCodec) -> AuthService:
    return AuthService(store, hasher, codec)


@pytest.fixture
def account_service(store: AccountStore, hasher: PasswordHasher) -> AccountService:
    return AccountService(store, hasher)


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


def _patch_lifespan(store: AccountStore, hasher: PasswordHasher, codec: TokenCodec):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store and fast primitives into app.state so TestClient
    routes never touch the production database or pay full bcrypt cost.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = get_settings()
        app.state.account_store = store
        app.state.token_codec = codec
        app.state.auth_service = AuthService(store, hasher, codec)
        app.state.account_service = AccountService(store, hasher)
        yield

    return test_lifespan


@pytest.fixture
def api_client(hasher: PasswordHasher, codec: TokenCodec) -> Generator[tuple[TestClient, TokenCodec], None, None]:
    """Yield (client, codec) for API integration tests.

    The codec is the one the app verifies with, so tests can mint tokens
    (e.g. already-expired ones) that the app will accept as well-signed.
    """
    db_url = f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    store = AccountStore(db_url=db_url)

    app.router.lifespan_context = _patch_lifespan(store, hasher, codec)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, codec

    store.close()
