"""
merit.api.routes.missions — Mission progress & badges
======================================================
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from merit.api.deps import CurrentIdentity, EngineDep
from merit.services import mission_service, user_service

router = APIRouter(tags=["missions"])


def _target(identity, engine, user_id: int | None) -> int:
    if user_id is None or user_id == identity.user_id:
        return identity.user_id
    if not identity.is_platform_admin and not user_service.can_access_user(
        engine, identity.user_id, user_id
    ):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not allowed to view this user")
    return user_id


@router.get("/missions/progress")
def my_progress(identity: CurrentIdentity, engine: EngineDep):
    return mission_service.mission_progress(engine, identity.user_id)


@router.get("/missions/badges")
def my_badges(identity: CurrentIdentity, engine: EngineDep):
    return mission_service.earned_badges(engine, identity.user_id)


@router.get("/missions/{mission_id}")
def my_mission(mission_id: int, identity: CurrentIdentity, engine: EngineDep):
    return mission_service.mission_detail(engine, identity.user_id, mission_id)


@router.get("/users/{user_id}/missions")
def user_progress(user_id: int, identity: CurrentIdentity, engine: EngineDep):
    return mission_service.mission_progress(engine, _target(identity, engine, user_id))


@router.get("/users/{user_id}/badges")
def user_badges(user_id: int, identity: CurrentIdentity, engine: EngineDep):
    return mission_service.earned_badges(engine, _target(identity, engine, user_id))
