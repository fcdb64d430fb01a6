"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of portal.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite renders JSONB as TEXT; SQLAlchemy's JSON processors still
# serialize the values.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from portal.database.models import Base, User  # noqa: E402

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent)."""
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all portal tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in the rate limiter).
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


def create_user(engine: Engine, *, name: str, email: str | None = None,
                role: str = "user", is_active: bool = True, photo_url: str | None = None) -> int:
    """Insert a user row and return its id."""
    with Session(engine) as session:
        user = User(
            name=name,
            email=email or f"{name.lower().replace(' ', '.')}@cesurg.com",
            role=role,
            is_active=is_active,
            photo_url=photo_url,
        )
        session.add(user)
        session.commit()
        return user.id


def make_token(sub: int | str, *, is_admin: bool = False, name: str = "Fixture User",
               role: str | None = None) -> str:
    """Create a portal JWT.  Usable from fixtures and directly in tests."""
    import jwt

    from portal.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode(
        {
            "sub": str(sub),
            "name": name,
            "email": "fixture@cesurg.com",
            "role": role or ("admin" if is_admin else "user"),
            "is_admin": is_admin,
        },
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_id(db_engine) -> int:
    return create_user(db_engine, name="Admin Fixture", email="admin@cesurg.com", role="admin")


@pytest.fixture
def admin_token(admin_id) -> str:
    return make_token(admin_id, is_admin=True, name="Admin Fixture")


@pytest.fixture
def member_id(db_engine) -> int:
    return create_user(db_engine, name="Member Fixture", email="member@cesurg.com")


@pytest.fixture
def member_token(member_id) -> str:
    return make_token(member_id, name="Member Fixture")


@pytest.fixture
def client(db_engine, monkeypatch):
    """FastAPI TestClient bound to the in-memory database.

    ``raise_server_exceptions=False`` so unexpected errors surface as 500s.
    The rate limiter singleton is dropped so each test starts with an
    empty window.
    """
    from fastapi.testclient import TestClient

    from portal.api import rate_limit
    from portal.api.deps import get_engine
    from portal.api.main import app

    monkeypatch.setattr(rate_limit, "_limiter", None)
    app.dependency_overrides[get_engine] = lambda: db_engine
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()
