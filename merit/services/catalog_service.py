"""
merit.services.catalog_service — Organizations & Configuration Store
=====================================================================

Admin CRUD for organizations and their catalogs: action types, mission
types and rank configurations.

Every catalog mutation:

* locks the organization row (``SELECT … FOR UPDATE``) and touches it, so
  its ``version`` counter increments and concurrent editors of the same
  organization are serialized;
* checks name (and, for ranks, threshold) uniqueness against *all*
  entries, active or not;
* appends a ``CONFIGURATION_CHANGED`` event carrying before/after
  snapshots of the row and the acting admin's id.

Deletes are soft: the entry is deactivated and stays referenced by
historical actions and progress rows.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from merit.config import MeritConfig, default_config
from merit.constants import MSG_CONFIGURATION_CHANGED
from merit.database.engine import commit_or_conflict
from merit.database.models import (
    Action,
    ActionStatus,
    ActionType,
    CaptureMethod,
    EventType,
    MissionType,
    Organization,
    RankConfiguration,
    ReporterType,
)
from merit.engine.ranks import eligible_rank, next_rank
from merit.errors import ConflictError, NotFoundError, ValidationError
from merit.services.event_service import record_event

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

_FROZEN_KEYS = ("id", "organization_id", "created_at", "updated_at")


# ---------------------------------------------------------------------------
# Snapshot + audit helpers
# ---------------------------------------------------------------------------
def _row_to_dict(obj: Any) -> dict | None:
    """Convert a catalog row to a JSON-serializable dict."""
    if obj is None:
        return None
    result = {}
    for col in obj.__table__.columns:
        val = getattr(obj, col.key, None)
        if isinstance(val, (datetime, date)):
            val = val.isoformat()
        result[col.name] = val
    if isinstance(obj, MissionType):
        result["required_action_type_ids"] = sorted(obj.required_action_type_ids)
    return result


def _lock_organization(session: Session, organization_id: int) -> Organization:
    org = session.scalars(
        select(Organization).where(Organization.id == organization_id).with_for_update()
    ).first()
    if org is None:
        raise NotFoundError(f"Organization not found: {organization_id}")
    return org


def _log_change(
    session: Session,
    org: Organization,
    *,
    entity: str,
    operation: str,
    target: Any,
    before: dict | None,
    actor_id: int | None,
) -> None:
    """Touch the organization row and append CONFIGURATION_CHANGED."""
    org.updated_at = datetime.now(UTC)
    session.flush()
    after = _row_to_dict(target) if operation != "DELETE" else None
    record_event(
        session,
        organization_id=org.id,
        event_type=EventType.CONFIGURATION_CHANGED,
        message=MSG_CONFIGURATION_CHANGED % (operation.title(), entity, target.name),
        payload={
            "entity": entity,
            "operation": operation,
            "target_id": target.id,
            "actor_id": actor_id,
            "organization_version": org.version,
            "before": before,
            "after": after,
        },
    )
    logger.info(
        "Catalog %s %s id=%s in org %d by actor %s",
        operation, entity, target.id, org.id, actor_id,
    )


def _finish(session: Session, row: Any) -> Any:
    """Commit, refresh and detach *row* for the caller."""
    commit_or_conflict(session)
    session.refresh(row)
    session.expunge(row)
    return row


def _apply(row: Any, changes: dict[str, Any]) -> None:
    for key, value in changes.items():
        if key in _FROZEN_KEYS or not hasattr(row, key):
            continue
        setattr(row, key, value)


def _require_text(value: str | None, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    return str(value).strip()


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------
def create_organization(
    engine: Engine,
    *,
    name: str,
    federation_id: str,
    description: str | None = None,
    actor_id: int | None = None,
) -> Organization:
    """Create a new organization with an empty catalog.

    Raises
    ------
    ConflictError
        If the name or federation id is already taken.
    """
    name = _require_text(name, "Organization name")
    federation_id = _require_text(federation_id, "Federation id")
    with Session(engine, expire_on_commit=False) as session:
        if session.scalar(select(Organization.id).where(Organization.name == name)):
            raise ConflictError(f"Organization name already exists: {name}")
        if session.scalar(
            select(Organization.id).where(Organization.federation_id == federation_id)
        ):
            raise ConflictError(f"Federation id already exists: {federation_id}")

        org = Organization(name=name, federation_id=federation_id, description=description)
        session.add(org)
        session.flush()
        _log_change(
            session, org, entity="Organization", operation="CREATE",
            target=org, before=None, actor_id=actor_id,
        )
        return _finish(session, org)


def get_organization(engine: Engine, organization_id: int) -> Organization:
    with Session(engine, expire_on_commit=False) as session:
        org = session.get(Organization, organization_id)
        if org is None:
            raise NotFoundError(f"Organization not found: {organization_id}")
        session.expunge(org)
        return org


def list_organizations(engine: Engine, *, include_inactive: bool = False) -> list[Organization]:
    with Session(engine, expire_on_commit=False) as session:
        stmt = select(Organization).order_by(Organization.name)
        if not include_inactive:
            stmt = stmt.where(Organization.active.is_(True))
        rows = list(session.scalars(stmt).all())
        session.expunge_all()
        return rows


def update_organization(
    engine: Engine,
    organization_id: int,
    *,
    actor_id: int | None = None,
    **changes: Any,
) -> Organization:
    """Update an organization's name, description or active flag."""
    allowed = {k: v for k, v in changes.items() if k in ("name", "description", "active")}
    with Session(engine, expire_on_commit=False) as session:
        org = _lock_organization(session, organization_id)
        before = _row_to_dict(org)
        if "name" in allowed:
            allowed["name"] = _require_text(allowed["name"], "Organization name")
            clash = session.scalar(
                select(Organization.id).where(
                    Organization.name == allowed["name"], Organization.id != org.id
                )
            )
            if clash:
                raise ConflictError(f"Organization name already exists: {allowed['name']}")
        _apply(org, allowed)
        _log_change(
            session, org, entity="Organization", operation="UPDATE",
            target=org, before=before, actor_id=actor_id,
        )
        return _finish(session, org)


def deactivate_organization(
    engine: Engine, organization_id: int, *, actor_id: int | None = None
) -> Organization:
    return update_organization(engine, organization_id, actor_id=actor_id, active=False)


# ---------------------------------------------------------------------------
# Action types
# ---------------------------------------------------------------------------
def _clean_enum_list(values: Iterable[str] | None, enum_cls: type, field: str) -> list[str]:
    cleaned: list[str] = []
    for raw in values or []:
        value = str(raw).upper()
        if value not in enum_cls.__members__:
            raise ValidationError(f"Unknown {field}: {raw}")
        if value not in cleaned:
            cleaned.append(value)
    if not cleaned:
        raise ValidationError(f"At least one {field} is required")
    return cleaned


def _validate_action_type(fields: dict[str, Any], config: MeritConfig) -> dict[str, Any]:
    out = dict(fields)
    if "name" in out:
        out["name"] = _require_text(out["name"], "Action type name")
    if "points" in out:
        points = out["points"]
        if isinstance(points, bool) or not isinstance(points, int):
            raise ValidationError("Points must be an integer")
        if not 1 <= points <= config.max_action_points:
            raise ValidationError(
                f"Points must be between 1 and {config.max_action_points}"
            )
    if "capture_methods" in out:
        # Reporter SYSTEM is implied by IMPORT and never configured directly.
        out["capture_methods"] = _clean_enum_list(
            out["capture_methods"], CaptureMethod, "capture method"
        )
    if "allowed_reporters" in out:
        reporters = _clean_enum_list(out["allowed_reporters"], ReporterType, "reporter type")
        if ReporterType.SYSTEM in reporters:
            raise ValidationError("SYSTEM is not a configurable reporter type")
        out["allowed_reporters"] = reporters
    return out


def _action_type_name_taken(
    session: Session, organization_id: int, name: str, exclude_id: int | None = None
) -> bool:
    stmt = select(ActionType.id).where(
        ActionType.organization_id == organization_id,
        func.lower(ActionType.name) == name.lower(),
    )
    if exclude_id is not None:
        stmt = stmt.where(ActionType.id != exclude_id)
    return session.scalar(stmt) is not None


def get_action_type(session: Session, organization_id: int, action_type_id: int) -> ActionType:
    """Load an action type (active or not) belonging to the organization."""
    action_type = session.get(ActionType, action_type_id)
    if action_type is None or action_type.organization_id != organization_id:
        raise NotFoundError(f"Action type not found: {action_type_id}")
    return action_type


def get_action_type_by_name(session: Session, organization_id: int, name: str) -> ActionType:
    """Case-insensitive lookup by name; prefers an active entry."""
    rows = session.scalars(
        select(ActionType)
        .where(
            ActionType.organization_id == organization_id,
            func.lower(ActionType.name) == (name or "").strip().lower(),
        )
        .order_by(ActionType.active.desc(), ActionType.id)
    ).all()
    if not rows:
        raise NotFoundError(f"Action type not found: {name}")
    return rows[0]


def create_action_type(
    engine: Engine,
    organization_id: int,
    *,
    name: str,
    points: int,
    capture_methods: Iterable[str],
    allowed_reporters: Iterable[str],
    description: str | None = None,
    category: str | None = None,
    requires_manager_approval: bool = True,
    actor_id: int | None = None,
    config: MeritConfig | None = None,
) -> ActionType:
    """Add an action type to the organization's catalog."""
    config = config or default_config()
    fields = _validate_action_type(
        {
            "name": name,
            "points": points,
            "capture_methods": list(capture_methods or []),
            "allowed_reporters": list(allowed_reporters or []),
        },
        config,
    )
    with Session(engine, expire_on_commit=False) as session:
        org = _lock_organization(session, organization_id)
        if _action_type_name_taken(session, org.id, fields["name"]):
            raise ConflictError(f"Action type name already exists: {fields['name']}")
        action_type = ActionType(
            organization_id=org.id,
            description=description,
            category=category,
            requires_manager_approval=requires_manager_approval,
            active=True,
            **fields,
        )
        session.add(action_type)
        session.flush()
        _log_change(
            session, org, entity="ActionType", operation="CREATE",
            target=action_type, before=None, actor_id=actor_id,
        )
        return _finish(session, action_type)


def update_action_type(
    engine: Engine,
    organization_id: int,
    action_type_id: int,
    *,
    actor_id: int | None = None,
    config: MeritConfig | None = None,
    **changes: Any,
) -> ActionType:
    """Apply *changes* to an action type.

    Raises
    ------
    ConflictError
        On a name clash, or when changing ``points`` after approved actions
        already reference the type.
    """
    config = config or default_config()
    changes = _validate_action_type(
        {k: v for k, v in changes.items() if v is not None}, config
    )
    with Session(engine, expire_on_commit=False) as session:
        org = _lock_organization(session, organization_id)
        action_type = get_action_type(session, org.id, action_type_id)
        before = _row_to_dict(action_type)

        if "name" in changes and _action_type_name_taken(
            session, org.id, changes["name"], exclude_id=action_type.id
        ):
            raise ConflictError(f"Action type name already exists: {changes['name']}")
        if "points" in changes and changes["points"] != action_type.points:
            referenced = session.scalar(
                select(Action.id).where(
                    Action.action_type_id == action_type.id,
                    Action.status == ActionStatus.APPROVED,
                ).limit(1)
            )
            if referenced is not None:
                raise ConflictError(
                    "Points cannot change once approved actions reference "
                    f"action type: {action_type.id}"
                )

        _apply(action_type, changes)
        _log_change(
            session, org, entity="ActionType", operation="UPDATE",
            target=action_type, before=before, actor_id=actor_id,
        )
        return _finish(session, action_type)


def delete_action_type(
    engine: Engine, organization_id: int, action_type_id: int, *, actor_id: int | None = None
) -> ActionType:
    """Soft-delete: the type stops being offered for capture."""
    with Session(engine, expire_on_commit=False) as session:
        org = _lock_organization(session, organization_id)
        action_type = get_action_type(session, org.id, action_type_id)
        before = _row_to_dict(action_type)
        action_type.active = False
        _log_change(
            session, org, entity="ActionType", operation="DELETE",
            target=action_type, before=before, actor_id=actor_id,
        )
        return _finish(session, action_type)


def list_action_types(
    engine: Engine,
    organization_id: int,
    *,
    include_inactive: bool = False,
    capture_method: str | None = None,
) -> list[ActionType]:
    """Catalog listing, optionally limited to one capture method."""
    with Session(engine, expire_on_commit=False) as session:
        if session.get(Organization, organization_id) is None:
            raise NotFoundError(f"Organization not found: {organization_id}")
        stmt = (
            select(ActionType)
            .where(ActionType.organization_id == organization_id)
            .order_by(ActionType.category, ActionType.name)
        )
        if not include_inactive:
            stmt = stmt.where(ActionType.active.is_(True))
        rows = list(session.scalars(stmt).all())
        session.expunge_all()
    if capture_method is not None:
        rows = [r for r in rows if r.supports(capture_method)]
    return rows


# ---------------------------------------------------------------------------
# Mission types
# ---------------------------------------------------------------------------
def _validate_mission(fields: dict[str, Any], config: MeritConfig) -> dict[str, Any]:
    out = dict(fields)
    if "name" in out:
        out["name"] = _require_text(out["name"], "Mission type name")
    if "bonus_points" in out:
        bonus = out["bonus_points"]
        if isinstance(bonus, bool) or not isinstance(bonus, int):
            raise ValidationError("Bonus points must be an integer")
        if not 0 <= bonus <= config.max_bonus_points:
            raise ValidationError(
                f"Bonus points must be between 0 and {config.max_bonus_points}"
            )
    if "required_action_type_ids" in out:
        ids = {int(i) for i in out["required_action_type_ids"] or []}
        if not ids:
            raise ValidationError("A mission needs at least one required action type")
        out["required_action_type_ids"] = ids
    return out


def _resolve_required(
    session: Session, organization_id: int, ids: set[int]
) -> list[ActionType]:
    found = session.scalars(
        select(ActionType).where(
            ActionType.organization_id == organization_id, ActionType.id.in_(ids)
        )
    ).all()
    missing = ids - {at.id for at in found}
    if missing:
        raise ValidationError(
            "Unknown required action types: " + ", ".join(str(i) for i in sorted(missing))
        )
    return sorted(found, key=lambda at: at.id)


def _mission_name_taken(
    session: Session, organization_id: int, name: str, exclude_id: int | None = None
) -> bool:
    stmt = select(MissionType.id).where(
        MissionType.organization_id == organization_id,
        func.lower(MissionType.name) == name.lower(),
    )
    if exclude_id is not None:
        stmt = stmt.where(MissionType.id != exclude_id)
    return session.scalar(stmt) is not None


def get_mission_type(session: Session, organization_id: int, mission_id: int) -> MissionType:
    mission = session.get(MissionType, mission_id)
    if mission is None or mission.organization_id != organization_id:
        raise NotFoundError(f"Mission type not found: {mission_id}")
    return mission


def create_mission_type(
    engine: Engine,
    organization_id: int,
    *,
    name: str,
    required_action_type_ids: Iterable[int],
    bonus_points: int = 0,
    badge: str | None = None,
    description: str | None = None,
    category: str | None = None,
    actor_id: int | None = None,
    config: MeritConfig | None = None,
) -> MissionType:
    """Add a mission type bundling existing action types."""
    config = config or default_config()
    fields = _validate_mission(
        {
            "name": name,
            "bonus_points": bonus_points,
            "required_action_type_ids": list(required_action_type_ids or []),
        },
        config,
    )
    with Session(engine, expire_on_commit=False) as session:
        org = _lock_organization(session, organization_id)
        if _mission_name_taken(session, org.id, fields["name"]):
            raise ConflictError(f"Mission type name already exists: {fields['name']}")
        mission = MissionType(
            organization_id=org.id,
            name=fields["name"],
            bonus_points=fields["bonus_points"],
            badge=badge,
            description=description,
            category=category,
            active=True,
        )
        mission.required_action_types = _resolve_required(
            session, org.id, fields["required_action_type_ids"]
        )
        session.add(mission)
        session.flush()
        _log_change(
            session, org, entity="MissionType", operation="CREATE",
            target=mission, before=None, actor_id=actor_id,
        )
        return _finish(session, mission)


def update_mission_type(
    engine: Engine,
    organization_id: int,
    mission_id: int,
    *,
    actor_id: int | None = None,
    config: MeritConfig | None = None,
    **changes: Any,
) -> MissionType:
    """Apply *changes*; existing progress rows are kept as they are."""
    config = config or default_config()
    changes = _validate_mission({k: v for k, v in changes.items() if v is not None}, config)
    with Session(engine, expire_on_commit=False) as session:
        org = _lock_organization(session, organization_id)
        mission = get_mission_type(session, org.id, mission_id)
        before = _row_to_dict(mission)

        if "name" in changes and _mission_name_taken(
            session, org.id, changes["name"], exclude_id=mission.id
        ):
            raise ConflictError(f"Mission type name already exists: {changes['name']}")
        required = changes.pop("required_action_type_ids", None)
        if required is not None:
            mission.required_action_types = _resolve_required(session, org.id, required)
        _apply(mission, changes)
        _log_change(
            session, org, entity="MissionType", operation="UPDATE",
            target=mission, before=before, actor_id=actor_id,
        )
        return _finish(session, mission)


def delete_mission_type(
    engine: Engine, organization_id: int, mission_id: int, *, actor_id: int | None = None
) -> MissionType:
    with Session(engine, expire_on_commit=False) as session:
        org = _lock_organization(session, organization_id)
        mission = get_mission_type(session, org.id, mission_id)
        before = _row_to_dict(mission)
        mission.active = False
        _log_change(
            session, org, entity="MissionType", operation="DELETE",
            target=mission, before=before, actor_id=actor_id,
        )
        return _finish(session, mission)


def list_mission_types(
    engine: Engine, organization_id: int, *, include_inactive: bool = False
) -> list[MissionType]:
    with Session(engine, expire_on_commit=False) as session:
        stmt = (
            select(MissionType)
            .where(MissionType.organization_id == organization_id)
            .order_by(MissionType.name)
        )
        if not include_inactive:
            stmt = stmt.where(MissionType.active.is_(True))
        rows = list(session.scalars(stmt).all())
        session.expunge_all()
        return rows


# ---------------------------------------------------------------------------
# Rank configurations
# ---------------------------------------------------------------------------
def _validate_rank(fields: dict[str, Any]) -> dict[str, Any]:
    out = dict(fields)
    if "name" in out:
        out["name"] = _require_text(out["name"], "Rank name")
    if "points_threshold" in out:
        threshold = out["points_threshold"]
        if isinstance(threshold, bool) or not isinstance(threshold, int):
            raise ValidationError("Points threshold must be an integer")
        if threshold < 0:
            raise ValidationError("Points threshold cannot be negative")
    return out


def _check_rank_clash(
    session: Session,
    organization_id: int,
    *,
    name: str | None,
    threshold: int | None,
    exclude_id: int | None = None,
) -> None:
    base = [RankConfiguration.organization_id == organization_id]
    if exclude_id is not None:
        base.append(RankConfiguration.id != exclude_id)
    if name is not None and session.scalar(
        select(RankConfiguration.id).where(
            *base, func.lower(RankConfiguration.name) == name.lower()
        )
    ):
        raise ConflictError(f"Rank name already exists: {name}")
    if threshold is not None and session.scalar(
        select(RankConfiguration.id).where(
            *base, RankConfiguration.points_threshold == threshold
        )
    ):
        raise ConflictError(f"Rank threshold already exists: {threshold}")


def get_rank(session: Session, organization_id: int, rank_id: int) -> RankConfiguration:
    rank = session.get(RankConfiguration, rank_id)
    if rank is None or rank.organization_id != organization_id:
        raise NotFoundError(f"Rank not found: {rank_id}")
    return rank


def create_rank(
    engine: Engine,
    organization_id: int,
    *,
    name: str,
    points_threshold: int,
    insignia: str | None = None,
    description: str | None = None,
    display_order: int | None = None,
    actor_id: int | None = None,
) -> RankConfiguration:
    """Add a rank.  Existing users are re-ranked on their next award."""
    fields = _validate_rank({"name": name, "points_threshold": points_threshold})
    with Session(engine, expire_on_commit=False) as session:
        org = _lock_organization(session, organization_id)
        _check_rank_clash(
            session, org.id, name=fields["name"], threshold=fields["points_threshold"]
        )
        if display_order is None:
            display_order = (
                session.scalar(
                    select(func.max(RankConfiguration.display_order)).where(
                        RankConfiguration.organization_id == org.id
                    )
                ) or 0
            ) + 1
        rank = RankConfiguration(
            organization_id=org.id,
            insignia=insignia,
            description=description,
            display_order=display_order,
            active=True,
            **fields,
        )
        session.add(rank)
        session.flush()
        _log_change(
            session, org, entity="RankConfiguration", operation="CREATE",
            target=rank, before=None, actor_id=actor_id,
        )
        return _finish(session, rank)


def update_rank(
    engine: Engine,
    organization_id: int,
    rank_id: int,
    *,
    actor_id: int | None = None,
    **changes: Any,
) -> RankConfiguration:
    changes = _validate_rank({k: v for k, v in changes.items() if v is not None})
    with Session(engine, expire_on_commit=False) as session:
        org = _lock_organization(session, organization_id)
        rank = get_rank(session, org.id, rank_id)
        before = _row_to_dict(rank)
        _check_rank_clash(
            session,
            org.id,
            name=changes.get("name"),
            threshold=changes.get("points_threshold"),
            exclude_id=rank.id,
        )
        _apply(rank, changes)
        _log_change(
            session, org, entity="RankConfiguration", operation="UPDATE",
            target=rank, before=before, actor_id=actor_id,
        )
        return _finish(session, rank)


def delete_rank(
    engine: Engine, organization_id: int, rank_id: int, *, actor_id: int | None = None
) -> RankConfiguration:
    """Soft-delete; holders keep the rank until their next promotion."""
    with Session(engine, expire_on_commit=False) as session:
        org = _lock_organization(session, organization_id)
        rank = get_rank(session, org.id, rank_id)
        before = _row_to_dict(rank)
        rank.active = False
        _log_change(
            session, org, entity="RankConfiguration", operation="DELETE",
            target=rank, before=before, actor_id=actor_id,
        )
        return _finish(session, rank)


def list_available_ranks(
    engine: Engine, organization_id: int, *, include_inactive: bool = False
) -> list[RankConfiguration]:
    """Ranks sorted by display order."""
    with Session(engine, expire_on_commit=False) as session:
        stmt = (
            select(RankConfiguration)
            .where(RankConfiguration.organization_id == organization_id)
            .order_by(RankConfiguration.display_order, RankConfiguration.points_threshold)
        )
        if not include_inactive:
            stmt = stmt.where(RankConfiguration.active.is_(True))
        rows = list(session.scalars(stmt).all())
        session.expunge_all()
        return rows


def get_eligible_rank(engine: Engine, organization_id: int, points: int) -> RankConfiguration | None:
    return eligible_rank(
        list_available_ranks(engine, organization_id, include_inactive=True), points
    )


def get_next_rank(engine: Engine, organization_id: int, points: int) -> RankConfiguration | None:
    return next_rank(
        list_available_ranks(engine, organization_id, include_inactive=True), points
    )


# ---------------------------------------------------------------------------
# Serialization (shared by routes)
# ---------------------------------------------------------------------------
def action_type_to_dict(at: ActionType) -> dict:
    return {
        "id": at.id,
        "organization_id": at.organization_id,
        "name": at.name,
        "description": at.description,
        "points": at.points,
        "category": at.category,
        "capture_methods": list(at.capture_methods or []),
        "allowed_reporters": list(at.allowed_reporters or []),
        "requires_manager_approval": at.requires_manager_approval,
        "active": at.active,
    }


def mission_type_to_dict(m: MissionType) -> dict:
    return {
        "id": m.id,
        "organization_id": m.organization_id,
        "name": m.name,
        "description": m.description,
        "badge": m.badge,
        "bonus_points": m.bonus_points,
        "category": m.category,
        "required_action_type_ids": sorted(m.required_action_type_ids),
        "active": m.active,
    }


def rank_to_dict(r: RankConfiguration) -> dict:
    return {
        "id": r.id,
        "organization_id": r.organization_id,
        "name": r.name,
        "description": r.description,
        "points_threshold": r.points_threshold,
        "insignia": r.insignia,
        "display_order": r.display_order,
        "active": r.active,
    }


def organization_to_dict(o: Organization) -> dict:
    return {
        "id": o.id,
        "name": o.name,
        "federation_id": o.federation_id,
        "description": o.description,
        "active": o.active,
        "version": o.version,
    }
