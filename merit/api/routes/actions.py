"""
merit.api.routes.actions — Action capture, approval & import endpoints
=======================================================================
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, HTTPException, Query, UploadFile, status
from pydantic import BaseModel, Field

from merit.api.deps import (
    ConfigDep,
    CurrentIdentity,
    EngineDep,
    require_org_admin,
    require_same_org,
)
from merit.database.engine import run_db
from merit.services import action_service, user_service
from merit.services.csv_import import read_rows

router = APIRouter(tags=["actions"])


class ActionCapture(BaseModel):
    action_type_id: int
    action_date: date
    user_id: int | None = None
    evidence: str | None = None
    notes: str | None = None


class ApprovalBody(BaseModel):
    notes: str | None = None


class RejectionBody(BaseModel):
    reason: str = Field(min_length=1)


@router.post("/organizations/{org_id}/actions", status_code=201)
def capture_action(
    org_id: int, body: ActionCapture, identity: CurrentIdentity, engine: EngineDep
):
    """Capture an action for yourself, or for ``user_id`` as a peer or manager."""
    require_same_org(identity, org_id)
    action = action_service.capture_action(
        engine,
        org_id,
        user_id=body.user_id or identity.user_id,
        action_type_id=body.action_type_id,
        action_date=body.action_date,
        reporter_id=identity.user_id,
        evidence=body.evidence,
        notes=body.notes,
    )
    return action_service.action_to_dict(action)


@router.post("/organizations/{org_id}/actions/import")
async def import_actions(
    org_id: int,
    file: UploadFile,
    identity: CurrentIdentity,
    engine: EngineDep,
    cfg: ConfigDep,
):
    """Bulk-import approved actions: employee_id,action_type,action_date[,evidence][,notes]."""
    require_org_admin(identity, org_id)
    content = await file.read()
    try:
        rows = read_rows(content)
    except UnicodeDecodeError:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "CSV must be UTF-8 encoded")
    result = await run_db(action_service.import_actions, engine, org_id, rows, config=cfg)
    return result.to_dict()


@router.get("/organizations/{org_id}/actions/statistics")
def organization_action_statistics(org_id: int, identity: CurrentIdentity, engine: EngineDep):
    require_org_admin(identity, org_id)
    return action_service.action_statistics(engine, org_id)


@router.get("/actions/pending")
def pending_approvals(identity: CurrentIdentity, engine: EngineDep):
    """Pending actions awaiting the caller's decision as direct manager."""
    return action_service.pending_approvals(engine, identity.user_id)


@router.get("/actions/history")
def my_history(
    identity: CurrentIdentity,
    engine: EngineDep,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
):
    return action_service.action_history(
        engine, identity.user_id, page=page, page_size=page_size
    )


@router.get("/actions/statistics")
def my_statistics(identity: CurrentIdentity, engine: EngineDep):
    return action_service.action_statistics(
        engine, identity.organization_id, user_id=identity.user_id
    )


@router.get("/users/{user_id}/actions")
def user_history(
    user_id: int,
    identity: CurrentIdentity,
    engine: EngineDep,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
):
    if not identity.is_platform_admin and not user_service.can_access_user(
        engine, identity.user_id, user_id
    ):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not allowed to view this user")
    return action_service.action_history(engine, user_id, page=page, page_size=page_size)


@router.get("/actions/{action_id}")
def get_action(action_id: int, identity: CurrentIdentity, engine: EngineDep):
    action = action_service.get_action(engine, action_id)
    if not identity.is_platform_admin and not user_service.can_access_user(
        engine, identity.user_id, action["user_id"]
    ):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not allowed to view this action")
    return action


@router.post("/actions/{action_id}/approve")
def approve_action(
    action_id: int, identity: CurrentIdentity, engine: EngineDep, body: ApprovalBody | None = None
):
    action = action_service.approve_action(
        engine, action_id, identity.user_id, notes=body.notes if body else None
    )
    return action_service.action_to_dict(action)


@router.post("/actions/{action_id}/reject")
def reject_action(
    action_id: int, body: RejectionBody, identity: CurrentIdentity, engine: EngineDep
):
    action = action_service.reject_action(engine, action_id, identity.user_id, body.reason)
    return action_service.action_to_dict(action)
