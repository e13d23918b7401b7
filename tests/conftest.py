"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of merit.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine, event  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite doesn't support JSONB natively, but SQLAlchemy's JSON type works.
# We register a custom type compiler so SQLite renders JSONB as TEXT.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402

from merit.database.models import Base  # noqa: E402

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent).

    Also maps BigInteger → INTEGER so autoincrement works on SQLite.
    """
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy import BigInteger
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    @compiles(BigInteger, "sqlite")
    def _compile_bigint_as_integer(type_, compiler, **kw):
        return "INTEGER"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Merit tables.

    JSONB columns are transparently mapped to TEXT for SQLite compatibility.
    Uses StaticPool so the TestClient's worker threads share the same
    in-memory database.

    pysqlite defers BEGIN until the first DML statement, so a SAVEPOINT
    issued first would open (and its RELEASE commit) the outer transaction.
    The hooks below hand transaction control back to SQLAlchemy so a failed
    cascade rolls back everything it wrote.
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_conn, connection_record):
        dbapi_conn.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    return engine


# ---------------------------------------------------------------------------
# Domain builders
# ---------------------------------------------------------------------------
def make_org(engine: Engine, name: str = "Acme", federation_id: str | None = None) -> int:
    from merit.services import catalog_service

    org = catalog_service.create_organization(
        engine, name=name, federation_id=federation_id or f"fed-{name.lower()}"
    )
    return org.id


def make_user(
    engine: Engine,
    org_id: int,
    employee_id: str,
    *,
    name: str | None = None,
    surname: str = "Tester",
    manager: str | None = None,
    role: str | None = None,
) -> int:
    from merit.services import user_service

    user = user_service.register_user(
        engine,
        org_id,
        employee_id=employee_id,
        name=name or employee_id.title(),
        surname=surname,
        manager_employee_id=manager,
        role=role,
    )
    return user.id


def make_action_type(
    engine: Engine,
    org_id: int,
    name: str,
    points: int = 10,
    *,
    methods: tuple[str, ...] = ("UI", "IMPORT"),
    reporters: tuple[str, ...] = ("SELF", "PEER", "MANAGER"),
    approval: bool = True,
) -> int:
    from merit.services import catalog_service

    at = catalog_service.create_action_type(
        engine,
        org_id,
        name=name,
        points=points,
        capture_methods=list(methods),
        allowed_reporters=list(reporters),
        requires_manager_approval=approval,
    )
    return at.id


def make_ranks(engine: Engine, org_id: int, ladder: dict[str, int]) -> dict[str, int]:
    from merit.services import catalog_service

    return {
        name: catalog_service.create_rank(
            engine, org_id, name=name, points_threshold=threshold
        ).id
        for name, threshold in ladder.items()
    }


@pytest.fixture
def org(db_engine: Engine) -> int:
    """An organization with a three-step rank ladder."""
    org_id = make_org(db_engine)
    make_ranks(db_engine, org_id, {"Cadet": 0, "Ensign": 100, "Lieutenant": 300})
    return org_id


@pytest.fixture
def team(db_engine: Engine, org: int) -> dict[str, int]:
    """A manager with two direct reports and one org admin."""
    return {
        "boss": make_user(db_engine, org, "boss"),
        "alice": make_user(db_engine, org, "alice", manager="boss"),
        "bob": make_user(db_engine, org, "bob", manager="boss"),
        "admin": make_user(db_engine, org, "admin", role="ADMIN"),
    }


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------
def make_token(user_id: int | str, *, is_admin: bool = False) -> str:
    """Create a bearer JWT.  Usable from any test module."""
    from merit.api.auth import issue_token

    return issue_token(user_id, is_admin=is_admin)


def auth(user_id: int | str, *, is_admin: bool = False) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, is_admin=is_admin)}"}


@pytest.fixture
def admin_token():
    """A platform-operator JWT (no user row needed)."""
    return make_token("0", is_admin=True)


@pytest.fixture
def client(db_engine: Engine):
    """A FastAPI TestClient wired to the in-memory engine."""
    from fastapi.testclient import TestClient

    from merit.api.deps import get_engine
    from merit.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
