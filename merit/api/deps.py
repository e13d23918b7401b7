"""
merit.api.deps — FastAPI dependency injection
==============================================

Engine / config singletons and the caller's identity.

The bearer token is an HS256 JWT whose ``sub`` is the Merit user id.  The
user row (organization, role) is looked up on every request so role
changes take effect immediately.  A truthy ``is_admin`` claim marks a
platform operator who may manage organizations across tenants.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from merit.config import MeritConfig, default_config, load_config
from merit.database.engine import create_db_engine
from merit.database.models import User, UserRole

_WEAK_SECRETS = frozenset({
    "merit-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> MeritConfig:
    path = os.getenv("MERIT_CONFIG", "config.yaml")
    if not os.path.exists(path):
        return default_config()
    return load_config(path)


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Identity:
    """The authenticated caller."""

    user_id: int
    organization_id: int
    role: str
    is_platform_admin: bool = False

    @property
    def is_org_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def can_administer(self, organization_id: int) -> bool:
        return self.is_platform_admin or (
            self.is_org_admin and self.organization_id == organization_id
        )


def _decode(authorization: str | None) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")


def get_current_identity(
    authorization: Annotated[str | None, Header()] = None,
    engine: Engine = Depends(get_engine),
) -> Identity:
    """Validate the JWT and resolve the caller's user row.  401 if invalid."""
    payload = _decode(authorization)
    try:
        user_id = int(payload.get("sub", ""))
    except (TypeError, ValueError):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid subject")
    with Session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Unknown user")
        return Identity(
            user_id=user.id,
            organization_id=user.organization_id,
            role=user.role,
            is_platform_admin=bool(payload.get("is_admin")),
        )


def get_platform_admin(
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Require the platform-operator claim.  Needs no user row."""
    payload = _decode(authorization)
    if not payload.get("is_admin"):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not admin")
    return payload


def require_org_admin(identity: Identity, organization_id: int) -> None:
    if not identity.can_administer(organization_id):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Organization admin required")


def require_same_org(identity: Identity, organization_id: int) -> None:
    if not identity.is_platform_admin and identity.organization_id != organization_id:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not a member of this organization")


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
EngineDep = Annotated[Engine, Depends(get_engine)]
ConfigDep = Annotated[MeritConfig, Depends(get_config)]
