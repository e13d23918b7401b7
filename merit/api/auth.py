"""
merit.api.auth — Token issuance & session endpoints
====================================================

Merit does not run its own login flow; an upstream identity provider (or
an operator script) mints tokens with :func:`issue_token`.  The endpoints
here expose who the caller is and stamp ``last_login`` for activity feeds.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
from fastapi import APIRouter

from merit.api.deps import JWT_ALGORITHM, JWT_SECRET, CurrentIdentity, EngineDep
from merit.services import user_service

router = APIRouter(prefix="/auth", tags=["auth"])

TOKEN_TTL_HOURS = 12


def issue_token(user_id: int | str, *, is_admin: bool = False, hours: int = TOKEN_TTL_HOURS) -> str:
    """Mint a bearer token for *user_id*."""
    payload = {
        "sub": str(user_id),
        "is_admin": is_admin,
        "exp": datetime.now(UTC) + timedelta(hours=hours),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


@router.get("/me")
def me(identity: CurrentIdentity):
    """Return the caller's identity as resolved from the token."""
    return {
        "user_id": identity.user_id,
        "organization_id": identity.organization_id,
        "role": identity.role,
        "is_platform_admin": identity.is_platform_admin,
    }


@router.post("/session")
def start_session(identity: CurrentIdentity, engine: EngineDep):
    """Record a login; returns the previous login time for "since last visit" feeds."""
    previous = user_service.record_login(engine, identity.user_id)
    return {
        "user_id": identity.user_id,
        "previous_login": previous.isoformat() if previous else None,
    }
