"""
merit.api.routes.events — Activity feeds & event search
========================================================
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query

from merit.api.deps import CurrentIdentity, EngineDep, require_org_admin, require_same_org
from merit.services import event_service

router = APIRouter(tags=["events"])


@router.get("/events/me")
def my_events(
    identity: CurrentIdentity,
    engine: EngineDep,
    since: datetime | None = None,
    limit: int = Query(default=50, ge=1, le=500),
):
    return event_service.user_events(engine, identity.user_id, since=since, limit=limit)


@router.get("/events/feed")
def my_feed(
    identity: CurrentIdentity,
    engine: EngineDep,
    limit: int = Query(default=50, ge=1, le=500),
):
    """What happened to the caller since their previous login."""
    return event_service.feed_since_last_login(engine, identity.user_id, limit=limit)


@router.get("/organizations/{org_id}/events")
def organization_feed(
    org_id: int,
    identity: CurrentIdentity,
    engine: EngineDep,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=200),
):
    require_same_org(identity, org_id)
    return event_service.organization_events(engine, org_id, page=page, page_size=page_size)


@router.get("/organizations/{org_id}/events/search")
def search(
    org_id: int,
    identity: CurrentIdentity,
    engine: EngineDep,
    event_type: str | None = None,
    user_id: int | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=200),
):
    require_org_admin(identity, org_id)
    return event_service.search_events(
        engine, org_id,
        event_type=event_type, user_id=user_id, since=since, until=until,
        page=page, page_size=page_size,
    )


@router.get("/organizations/{org_id}/events/statistics")
def statistics(org_id: int, identity: CurrentIdentity, engine: EngineDep):
    require_org_admin(identity, org_id)
    return event_service.event_statistics(engine, org_id)
