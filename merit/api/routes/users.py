"""
merit.api.routes.users — User registration, profiles & dashboards
==================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, UploadFile, status
from pydantic import BaseModel, Field

from merit.api.deps import CurrentIdentity, EngineDep, require_org_admin, require_same_org
from merit.database.engine import run_db
from merit.services import user_service
from merit.services.csv_import import read_rows
from merit.services.user_service import user_to_dict

router = APIRouter(tags=["users"])


class UserCreate(BaseModel):
    employee_id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=120)
    surname: str = ""
    manager_employee_id: str | None = None
    role: str | None = None


class ProfileUpdate(BaseModel):
    name: str | None = None
    surname: str | None = None
    manager_employee_id: str | None = None
    role: str | None = None


def _require_access(identity, engine, user_id: int) -> None:
    if identity.is_platform_admin:
        return
    if not user_service.can_access_user(engine, identity.user_id, user_id):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not allowed to view this user")


# ---------------------------------------------------------------------------
# Self
# ---------------------------------------------------------------------------
@router.get("/users/me")
def my_profile(identity: CurrentIdentity, engine: EngineDep):
    return user_to_dict(user_service.get_user(engine, identity.user_id))


@router.get("/users/me/dashboard")
def my_dashboard(identity: CurrentIdentity, engine: EngineDep):
    return user_service.dashboard(engine, identity.user_id)


@router.get("/users/me/reports")
def my_reports(identity: CurrentIdentity, engine: EngineDep):
    """The caller's direct reports."""
    return [user_to_dict(u) for u in user_service.direct_reports(engine, identity.user_id)]


# ---------------------------------------------------------------------------
# Organization members
# ---------------------------------------------------------------------------
@router.post("/organizations/{org_id}/users", status_code=201)
def register_user(org_id: int, body: UserCreate, identity: CurrentIdentity, engine: EngineDep):
    require_org_admin(identity, org_id)
    user = user_service.register_user(engine, org_id, **body.model_dump())
    return user_to_dict(user)


@router.get("/organizations/{org_id}/users")
def list_users(
    org_id: int,
    identity: CurrentIdentity,
    engine: EngineDep,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=200),
):
    require_same_org(identity, org_id)
    users = user_service.list_users(engine, org_id, page=page, page_size=page_size)
    return {
        "items": [user_to_dict(u) for u in users],
        "total": user_service.count_users(engine, org_id),
        "page": page,
        "page_size": page_size,
    }


@router.post("/organizations/{org_id}/users/import")
async def import_users(
    org_id: int, file: UploadFile, identity: CurrentIdentity, engine: EngineDep
):
    """Bulk-register users from CSV: employee_id,name,surname,manager_employee_id[,role]."""
    require_org_admin(identity, org_id)
    content = await file.read()
    try:
        rows = read_rows(content)
    except UnicodeDecodeError:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "CSV must be UTF-8 encoded")
    result = await run_db(user_service.import_users, engine, org_id, rows)
    return result.to_dict()


# ---------------------------------------------------------------------------
# Single user
# ---------------------------------------------------------------------------
@router.get("/users/{user_id}")
def get_user(user_id: int, identity: CurrentIdentity, engine: EngineDep):
    _require_access(identity, engine, user_id)
    return user_to_dict(user_service.get_user(engine, user_id))


@router.patch("/users/{user_id}")
def update_user(
    user_id: int, body: ProfileUpdate, identity: CurrentIdentity, engine: EngineDep
):
    """Edit a profile.  Roles and managers are admin-only; send ``""`` to clear the manager."""
    target_org = user_service.organization_of(engine, user_id)
    is_admin = identity.can_administer(target_org)
    if not is_admin and identity.user_id != user_id:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not allowed to edit this user")

    changes = body.model_dump(exclude_unset=True)
    if not is_admin and ({"role", "manager_employee_id"} & changes.keys()):
        raise HTTPException(
            status.HTTP_403_FORBIDDEN, "Only an organization admin can change role or manager"
        )
    user = user_service.update_profile(engine, user_id, **changes)
    return user_to_dict(user)


@router.get("/users/{user_id}/rank")
def user_rank(user_id: int, identity: CurrentIdentity, engine: EngineDep):
    _require_access(identity, engine, user_id)
    return user_service.rank_info(engine, user_id)


@router.get("/users/{user_id}/dashboard")
def user_dashboard(user_id: int, identity: CurrentIdentity, engine: EngineDep):
    _require_access(identity, engine, user_id)
    return user_service.dashboard(engine, user_id)


@router.get("/users/{user_id}/reports")
def user_reports(user_id: int, identity: CurrentIdentity, engine: EngineDep):
    _require_access(identity, engine, user_id)
    return [user_to_dict(u) for u in user_service.direct_reports(engine, user_id)]
