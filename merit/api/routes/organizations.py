"""
merit.api.routes.organizations — Organizations & catalog admin endpoints
=========================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from merit.api.deps import (
    ConfigDep,
    CurrentIdentity,
    EngineDep,
    get_platform_admin,
    require_org_admin,
    require_same_org,
)
from merit.services import catalog_service
from merit.services.catalog_service import (
    action_type_to_dict,
    mission_type_to_dict,
    organization_to_dict,
    rank_to_dict,
)

router = APIRouter(prefix="/organizations", tags=["organizations"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class OrganizationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    federation_id: str = Field(min_length=1, max_length=120)
    description: str | None = None


class OrganizationUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None


class ActionTypeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str | None = None
    points: int
    category: str | None = None
    capture_methods: list[str] = Field(default_factory=lambda: ["UI"])
    allowed_reporters: list[str] = Field(default_factory=lambda: ["SELF"])
    requires_manager_approval: bool = True


class ActionTypeUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    points: int | None = None
    category: str | None = None
    capture_methods: list[str] | None = None
    allowed_reporters: list[str] | None = None
    requires_manager_approval: bool | None = None
    active: bool | None = None


class MissionTypeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str | None = None
    badge: str | None = None
    bonus_points: int = 0
    category: str | None = None
    required_action_type_ids: list[int]


class MissionTypeUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    badge: str | None = None
    bonus_points: int | None = None
    category: str | None = None
    required_action_type_ids: list[int] | None = None
    active: bool | None = None


class RankCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str | None = None
    points_threshold: int
    insignia: str | None = None
    display_order: int | None = None


class RankUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    points_threshold: int | None = None
    insignia: str | None = None
    display_order: int | None = None
    active: bool | None = None


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------
@router.post("", status_code=201)
def create_organization(
    body: OrganizationCreate,
    engine: EngineDep,
    admin: dict = Depends(get_platform_admin),
):
    org = catalog_service.create_organization(
        engine,
        name=body.name,
        federation_id=body.federation_id,
        description=body.description,
    )
    return organization_to_dict(org)


@router.get("")
def list_organizations(engine: EngineDep, admin: dict = Depends(get_platform_admin)):
    return [organization_to_dict(o) for o in catalog_service.list_organizations(engine)]


@router.get("/{org_id}")
def get_organization(org_id: int, identity: CurrentIdentity, engine: EngineDep):
    require_same_org(identity, org_id)
    return organization_to_dict(catalog_service.get_organization(engine, org_id))


@router.patch("/{org_id}")
def update_organization(
    org_id: int, body: OrganizationUpdate, identity: CurrentIdentity, engine: EngineDep
):
    require_org_admin(identity, org_id)
    changes = body.model_dump(exclude_none=True)
    org = catalog_service.update_organization(
        engine, org_id, actor_id=identity.user_id, **changes
    )
    return organization_to_dict(org)


@router.delete("/{org_id}")
def deactivate_organization(
    org_id: int, engine: EngineDep, admin: dict = Depends(get_platform_admin)
):
    return organization_to_dict(catalog_service.deactivate_organization(engine, org_id))


# ---------------------------------------------------------------------------
# Action types
# ---------------------------------------------------------------------------
@router.get("/{org_id}/action-types")
def list_action_types(
    org_id: int,
    identity: CurrentIdentity,
    engine: EngineDep,
    include_inactive: bool = False,
    capture_method: str | None = Query(default=None),
):
    require_same_org(identity, org_id)
    if include_inactive:
        require_org_admin(identity, org_id)
    rows = catalog_service.list_action_types(
        engine, org_id, include_inactive=include_inactive, capture_method=capture_method
    )
    return [action_type_to_dict(at) for at in rows]


@router.post("/{org_id}/action-types", status_code=201)
def create_action_type(
    org_id: int,
    body: ActionTypeCreate,
    identity: CurrentIdentity,
    engine: EngineDep,
    cfg: ConfigDep,
):
    require_org_admin(identity, org_id)
    at = catalog_service.create_action_type(
        engine, org_id, actor_id=identity.user_id, config=cfg, **body.model_dump()
    )
    return action_type_to_dict(at)


@router.patch("/{org_id}/action-types/{action_type_id}")
def update_action_type(
    org_id: int,
    action_type_id: int,
    body: ActionTypeUpdate,
    identity: CurrentIdentity,
    engine: EngineDep,
    cfg: ConfigDep,
):
    require_org_admin(identity, org_id)
    at = catalog_service.update_action_type(
        engine, org_id, action_type_id,
        actor_id=identity.user_id, config=cfg, **body.model_dump(exclude_none=True),
    )
    return action_type_to_dict(at)


@router.delete("/{org_id}/action-types/{action_type_id}")
def delete_action_type(
    org_id: int, action_type_id: int, identity: CurrentIdentity, engine: EngineDep
):
    require_org_admin(identity, org_id)
    at = catalog_service.delete_action_type(
        engine, org_id, action_type_id, actor_id=identity.user_id
    )
    return action_type_to_dict(at)


# ---------------------------------------------------------------------------
# Mission types
# ---------------------------------------------------------------------------
@router.get("/{org_id}/mission-types")
def list_mission_types(
    org_id: int, identity: CurrentIdentity, engine: EngineDep, include_inactive: bool = False
):
    require_same_org(identity, org_id)
    if include_inactive:
        require_org_admin(identity, org_id)
    rows = catalog_service.list_mission_types(engine, org_id, include_inactive=include_inactive)
    return [mission_type_to_dict(m) for m in rows]


@router.post("/{org_id}/mission-types", status_code=201)
def create_mission_type(
    org_id: int,
    body: MissionTypeCreate,
    identity: CurrentIdentity,
    engine: EngineDep,
    cfg: ConfigDep,
):
    require_org_admin(identity, org_id)
    mission = catalog_service.create_mission_type(
        engine, org_id, actor_id=identity.user_id, config=cfg, **body.model_dump()
    )
    return mission_type_to_dict(mission)


@router.patch("/{org_id}/mission-types/{mission_id}")
def update_mission_type(
    org_id: int,
    mission_id: int,
    body: MissionTypeUpdate,
    identity: CurrentIdentity,
    engine: EngineDep,
    cfg: ConfigDep,
):
    require_org_admin(identity, org_id)
    mission = catalog_service.update_mission_type(
        engine, org_id, mission_id,
        actor_id=identity.user_id, config=cfg, **body.model_dump(exclude_none=True),
    )
    return mission_type_to_dict(mission)


@router.delete("/{org_id}/mission-types/{mission_id}")
def delete_mission_type(
    org_id: int, mission_id: int, identity: CurrentIdentity, engine: EngineDep
):
    require_org_admin(identity, org_id)
    mission = catalog_service.delete_mission_type(
        engine, org_id, mission_id, actor_id=identity.user_id
    )
    return mission_type_to_dict(mission)


# ---------------------------------------------------------------------------
# Ranks
# ---------------------------------------------------------------------------
@router.get("/{org_id}/ranks")
def list_ranks(
    org_id: int, identity: CurrentIdentity, engine: EngineDep, include_inactive: bool = False
):
    require_same_org(identity, org_id)
    if include_inactive:
        require_org_admin(identity, org_id)
    rows = catalog_service.list_available_ranks(engine, org_id, include_inactive=include_inactive)
    return [rank_to_dict(r) for r in rows]


@router.get("/{org_id}/ranks/eligible")
def eligible_rank(
    org_id: int,
    identity: CurrentIdentity,
    engine: EngineDep,
    points: int = Query(ge=0),
):
    """The rank a user with *points* would hold, and the one after it."""
    require_same_org(identity, org_id)
    current = catalog_service.get_eligible_rank(engine, org_id, points)
    upcoming = catalog_service.get_next_rank(engine, org_id, points)
    return {
        "points": points,
        "eligible": rank_to_dict(current) if current else None,
        "next": rank_to_dict(upcoming) if upcoming else None,
    }


@router.post("/{org_id}/ranks", status_code=201)
def create_rank(org_id: int, body: RankCreate, identity: CurrentIdentity, engine: EngineDep):
    require_org_admin(identity, org_id)
    rank = catalog_service.create_rank(
        engine, org_id, actor_id=identity.user_id, **body.model_dump()
    )
    return rank_to_dict(rank)


@router.patch("/{org_id}/ranks/{rank_id}")
def update_rank(
    org_id: int, rank_id: int, body: RankUpdate, identity: CurrentIdentity, engine: EngineDep
):
    require_org_admin(identity, org_id)
    rank = catalog_service.update_rank(
        engine, org_id, rank_id, actor_id=identity.user_id, **body.model_dump(exclude_none=True)
    )
    return rank_to_dict(rank)


@router.delete("/{org_id}/ranks/{rank_id}")
def delete_rank(org_id: int, rank_id: int, identity: CurrentIdentity, engine: EngineDep):
    require_org_admin(identity, org_id)
    return rank_to_dict(
        catalog_service.delete_rank(engine, org_id, rank_id, actor_id=identity.user_id)
    )
