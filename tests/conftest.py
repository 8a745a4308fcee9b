"""
tests/conftest.py -- Shared test fixtures for the memdb API tests.

This module provides:
  - _patch_lifespan(): wires a test MemoryDB into app.state, bypassing real startup
  - api_client: module-scoped TestClient plus an admin JWT
  - fresh_client: function-scoped TestClient over an empty store, for tests
    that assert on exact ids

The environment variables must be set before any api/auth/core import:
DEBUG lets get_settings() auto-generate SECRET_KEY, RATE_LIMIT_ENABLED turns
slowapi off so repeated logins do not hit 429, and SEED_DEMO_DATA keeps the
real lifespan from inserting records if it ever runs.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SEED_DEMO_DATA", "false")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.tokens import create_access_token, hash_password
from memdb.models import User
from memdb.store import MemoryDB

ADMIN_USERNAME = "testadmin"
ADMIN_PASSWORD = "testpass123"


def _patch_lifespan(db: MemoryDB):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.db = db
        yield

    return test_lifespan


def _make_admin(db: MemoryDB) -> tuple[User, str]:
    admin = db.create_user(
        User(
            username=ADMIN_USERNAME,
            email="testadmin@example.com",
            full_name="Test Admin",
            hashed_password=hash_password(ADMIN_PASSWORD),
        )
    )
    token = create_access_token(user_id=admin.id, username=admin.username, expire_seconds=3600)
    return admin, token


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    One store per test module. The admin user is created before the client
    starts and the JWT is generated for use in Authorization headers.
    """
    db = MemoryDB()
    admin, token = _make_admin(db)
    app.router.lifespan_context = _patch_lifespan(db)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, admin.id


@pytest.fixture
def fresh_client() -> Generator[tuple[TestClient, dict[str, str], MemoryDB], None, None]:
    """Yield (client, auth_headers, db) over an empty product collection.

    The admin user occupies user id 1; the product counter is untouched.
    """
    db = MemoryDB()
    _admin, token = _make_admin(db)
    app.router.lifespan_context = _patch_lifespan(db)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, {"Authorization": f"Bearer {token}"}, db
