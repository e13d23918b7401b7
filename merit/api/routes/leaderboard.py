"""
merit.api.routes.leaderboard — Leaderboard views
=================================================

Any member of an organization may read its leaderboards.
"""

from __future__ import annotations

from fastapi import APIRouter, Query

from merit.api.deps import ConfigDep, CurrentIdentity, EngineDep, require_same_org
from merit.services import leaderboard_service

router = APIRouter(prefix="/organizations/{org_id}/leaderboard", tags=["leaderboard"])


@router.get("")
def all_time(
    org_id: int,
    identity: CurrentIdentity,
    engine: EngineDep,
    cfg: ConfigDep,
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1, le=200),
):
    require_same_org(identity, org_id)
    return leaderboard_service.leaderboard(
        engine, org_id, page=page, page_size=page_size or cfg.leaderboard_page_size
    )


@router.get("/monthly")
def monthly(
    org_id: int,
    identity: CurrentIdentity,
    engine: EngineDep,
    cfg: ConfigDep,
    year: int = Query(ge=2000, le=9999),
    month: int = Query(ge=1, le=12),
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1, le=200),
):
    require_same_org(identity, org_id)
    return leaderboard_service.monthly_leaderboard(
        engine, org_id, year, month,
        page=page, page_size=page_size or cfg.leaderboard_page_size,
    )


@router.get("/me")
def my_position(org_id: int, identity: CurrentIdentity, engine: EngineDep, cfg: ConfigDep):
    require_same_org(identity, org_id)
    return leaderboard_service.user_position(
        engine, org_id, identity.user_id, window=cfg.nearby_window
    )


@router.get("/users/{user_id}")
def user_position(
    org_id: int, user_id: int, identity: CurrentIdentity, engine: EngineDep, cfg: ConfigDep
):
    require_same_org(identity, org_id)
    return leaderboard_service.user_position(engine, org_id, user_id, window=cfg.nearby_window)


@router.get("/statistics")
def statistics(org_id: int, identity: CurrentIdentity, engine: EngineDep):
    require_same_org(identity, org_id)
    return leaderboard_service.statistics(engine, org_id)


@router.get("/ranks")
def rank_statistics(org_id: int, identity: CurrentIdentity, engine: EngineDep):
    require_same_org(identity, org_id)
    return leaderboard_service.rank_statistics(engine, org_id)
