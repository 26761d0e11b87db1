"""
tests/conftest.py -- Shared test fixtures for CredGate.

This module provides:
  - unit fixtures: hasher, issuer, store, service, guard -- built explicitly
    with an isolated secret and bcrypt rounds=4 so tests stay fast
  - FakeClock: a settable clock for expiry tests
  - _patch_lifespan(): wires test components into app.state, bypassing the
    real startup
  - api_client: TestClient plus an administrator token for API tests

Design: API stores use named shared-memory SQLite URIs so each test module
gets its own database by name. TestClient runs sync route handlers in a
thread pool; UserStore pins in-memory URLs to StaticPool, so every worker
thread sees the same connection and schema.

SECRET_KEY and friends must be in the environment before api.main is
imported: it reads Settings at import time and refuses to start without a key.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: set before any api/ import -- api.main calls get_settings() at import.
TEST_SECRET = "test-secret-key-for-credgate-unit-tests-0123456789"
os.environ.setdefault("SECRET_KEY", TEST_SECRET)
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver"]')

import pytest
from fastapi.testclient import TestClient

from auth.guard import AccessGuard
from auth.hashing import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer

TEST_ROUNDS = 4
TEST_HORIZON = 3600


class FakeClock:
    """Callable clock for TokenIssuer; advance() moves time forward."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_ROUNDS)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def issuer(clock: FakeClock) -> TokenIssuer:
    return TokenIssuer(secret_key=TEST_SECRET, expire_seconds=TEST_HORIZON, clock=clock)


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def service(store: UserStore, hasher: PasswordHasher, issuer: TokenIssuer) -> AuthService:
    return AuthService(store=store, hasher=hasher, issuer=issuer)


@pytest.fixture
def guard(issuer: TokenIssuer) -> AccessGuard:
    return AccessGuard(issuer)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> UserStore:
    """Create an isolated named shared-memory SQLite store.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. 'api', 'health').
    """
    return UserStore(f"sqlite:///file:test_credgate_{db_suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(service: AuthService):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = service.store
        app.state.auth_service = service
        app.state.guard = AccessGuard(service.issuer)
        yield

    return test_lifespan


def _make_client(db_suffix: str) -> tuple[TestClient, AuthService]:
    from api.main import app

    store = _make_test_store(db_suffix)
    service = AuthService(
        store=store,
        hasher=PasswordHasher(rounds=TEST_ROUNDS),
        issuer=TokenIssuer(secret_key=TEST_SECRET, expire_seconds=TEST_HORIZON),
    )
    app.router.lifespan_context = _patch_lifespan(service)
    return TestClient(app, raise_server_exceptions=True), service


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, str, AuthService], None, None]:
    """Yield (client, admin_token, service) for API integration tests.

    An administrator is registered before the client starts; its token is
    used for administrator-only routes.
    """
    client, service = _make_client("api")
    admin = service.register("root@credgate.test", "Root", "rootpass123", "administrator")
    with client:
        yield client, admin.token, service
    service.store.close()


@pytest.fixture(scope="module")
def health_client() -> Generator[TestClient, None, None]:
    client, service = _make_client("health")
    with client:
        yield client
    service.store.close()
