"""
tests/conftest.py -- Shared test fixtures for the Connected Office tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for the user and office stores
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - office_store / user_store: fresh per-test stores for unit tests
  - api_client: TestClient plus an Admin token and a User token for integration tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

The DEBUG env var must be set before any auth/core import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
LOGIN_RATE_LIMIT is raised so the many logins across the suite never hit the
production limit; the limit itself is tested separately.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from uuid import uuid4

# CRITICAL: Set env before any auth/core import so get_settings() sees it.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app, wire_app_state
from auth.identity import IdentityProvider
from auth.models import Registration
from auth.security import SecurityService
from auth.store import UserStore
from office.store import OfficeStore

ADMIN = Registration(username="testadmin", password="Admin#pass1", email="admin@example.com", phone_number="555-0100")
USER = Registration(username="testuser", password="User#pass1", email="user@example.com", phone_number="555-0101")


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, OfficeStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    user_url = f"sqlite:///file:test_users_{db_suffix}?mode=memory&cache=shared&uri=true"
    office_url = f"sqlite:///file:test_office_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=user_url), OfficeStore(db_url=office_url)


def _patch_lifespan(user_store: UserStore, office_store: OfficeStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        wire_app_state(app, user_store, office_store)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Unit-test fixtures -- one fresh database per test
# ---------------------------------------------------------------------------


@pytest.fixture
def office_store() -> Generator[OfficeStore, None, None]:
    store = OfficeStore(f"sqlite:///file:unit_office_{uuid4().hex}?mode=memory&cache=shared&uri=true")
    yield store
    store.close()


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore(f"sqlite:///file:unit_users_{uuid4().hex}?mode=memory&cache=shared&uri=true")
    yield store
    store.close()


@pytest.fixture
def security(user_store: UserStore) -> SecurityService:
    return SecurityService(IdentityProvider(user_store), user_store)


# ---------------------------------------------------------------------------
# Module-scoped integration fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@dataclass
class ApiContext:
    client: TestClient
    admin_token: str
    user_token: str
    security: SecurityService
    admin_account: Registration = field(default_factory=lambda: ADMIN)
    user_account: Registration = field(default_factory=lambda: USER)

    def admin(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.admin_token}"}

    def user(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.user_token}"}


@pytest.fixture(scope="module")
def api_client(request) -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for API integration tests.

    An Admin and a User account are registered and logged in through the real
    SecurityService before the client starts, so both tokens are bound to open
    session rows and pass the session gate.
    """
    user_store, office_store = _make_test_stores(request.module.__name__.replace(".", "_"))
    security = SecurityService(IdentityProvider(user_store), user_store)

    security.register_admin(ADMIN)
    security.register_user(USER)
    admin_token = security.login(ADMIN.username, ADMIN.password).value.token
    user_token = security.login(USER.username, USER.password).value.token

    app.router.lifespan_context = _patch_lifespan(user_store, office_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(client=client, admin_token=admin_token, user_token=user_token, security=security)

    user_store.close()
    office_store.close()
