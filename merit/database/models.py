"""
merit.database.models — SQLAlchemy 2.0 Data Models
===================================================

Tables:
- organizations        — Tenants; version counter serializes catalog edits
- action_types         — Behaviours worth points (per organization)
- mission_types        — Bundles of action types unlocking a badge + bonus
- mission_requirements — Association: mission type ↔ required action types
- rank_configurations  — Point thresholds conferring a title
- users                — Employees with running point totals
- mission_progress     — Per-user, per-mission completed action-type sets
- actions              — Captured actions and their approval state
- events               — Append-only activity journal
"""

from __future__ import annotations

import enum
from datetime import UTC, date, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates

from merit.constants import full_name as join_name
from merit.errors import ValidationError


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Merit ORM models."""


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class CaptureMethod(enum.StrEnum):
    """How an action entered the system."""
    UI = "UI"
    IMPORT = "IMPORT"


class ReporterType(enum.StrEnum):
    """Relationship between the reporter and the beneficiary."""
    SELF = "SELF"
    PEER = "PEER"
    MANAGER = "MANAGER"
    SYSTEM = "SYSTEM"


class ActionStatus(enum.StrEnum):
    """Approval workflow states.  APPROVED and REJECTED are terminal."""
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class UserRole(enum.StrEnum):
    USER = "USER"
    ADMIN = "ADMIN"


class EventType(enum.StrEnum):
    """Everything the event log records."""
    USER_REGISTERED = "USER_REGISTERED"
    ACTION_CAPTURED = "ACTION_CAPTURED"
    ACTION_APPROVED = "ACTION_APPROVED"
    ACTION_REJECTED = "ACTION_REJECTED"
    POINTS_AWARDED = "POINTS_AWARDED"
    RANK_PROMOTED = "RANK_PROMOTED"
    MISSION_COMPLETED = "MISSION_COMPLETED"
    CONFIGURATION_CHANGED = "CONFIGURATION_CHANGED"


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------
class Organization(Base):
    """A tenant.  Every catalog edit touches this row, bumping ``version``."""
    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    federation_id: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    action_types: Mapped[list[ActionType]] = relationship(
        back_populates="organization", cascade="all, delete-orphan"
    )
    mission_types: Mapped[list[MissionType]] = relationship(
        back_populates="organization", cascade="all, delete-orphan"
    )
    ranks: Mapped[list[RankConfiguration]] = relationship(
        back_populates="organization", cascade="all, delete-orphan"
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Organization id={self.id} name={self.name!r} v={self.version}>"


# ---------------------------------------------------------------------------
# Action types — behaviours worth points
# ---------------------------------------------------------------------------
class ActionType(Base):
    __tablename__ = "action_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str | None] = mapped_column(String(60), default=None)
    capture_methods: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    allowed_reporters: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    requires_manager_approval: Mapped[bool] = mapped_column(Boolean, default=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    organization: Mapped[Organization] = relationship(back_populates="action_types")

    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_action_types_org_name"),
    )

    def supports(self, method: CaptureMethod | str) -> bool:
        return str(method) in (self.capture_methods or [])

    def allows_reporter(self, reporter_type: ReporterType | str) -> bool:
        return str(reporter_type) in (self.allowed_reporters or [])

    def __repr__(self) -> str:
        return f"<ActionType id={self.id} name={self.name!r} pts={self.points}>"


# ---------------------------------------------------------------------------
# Mission types — bundles of action types
# ---------------------------------------------------------------------------
mission_requirements = Table(
    "mission_requirements",
    Base.metadata,
    Column(
        "mission_type_id",
        Integer,
        ForeignKey("mission_types.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "action_type_id",
        Integer,
        ForeignKey("action_types.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class MissionType(Base):
    __tablename__ = "mission_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    badge: Mapped[str | None] = mapped_column(String(60), default=None)
    bonus_points: Mapped[int] = mapped_column(Integer, default=0)
    category: Mapped[str | None] = mapped_column(String(60), default=None)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    organization: Mapped[Organization] = relationship(back_populates="mission_types")
    required_action_types: Mapped[list[ActionType]] = relationship(
        secondary=mission_requirements, lazy="selectin"
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_mission_types_org_name"),
    )

    @property
    def required_action_type_ids(self) -> set[int]:
        return {at.id for at in self.required_action_types}

    def __repr__(self) -> str:
        return f"<MissionType id={self.id} name={self.name!r} badge={self.badge!r}>"


# ---------------------------------------------------------------------------
# Rank configurations — point thresholds
# ---------------------------------------------------------------------------
class RankConfiguration(Base):
    __tablename__ = "rank_configurations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    points_threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    insignia: Mapped[str | None] = mapped_column(String(60), default=None)
    display_order: Mapped[int] = mapped_column(Integer, default=0)  # Display only
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    organization: Mapped[Organization] = relationship(back_populates="ranks")

    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_ranks_org_name"),
        UniqueConstraint(
            "organization_id", "points_threshold", name="uq_ranks_org_threshold"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<RankConfiguration id={self.id} name={self.name!r} "
            f"threshold={self.points_threshold}>"
        )


# ---------------------------------------------------------------------------
# Users — one row per employee
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    employee_id: Mapped[str] = mapped_column(String(60), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    surname: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    manager_employee_id: Mapped[str | None] = mapped_column(String(60), default=None)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.USER)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_rank_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("rank_configurations.id", ondelete="SET NULL"), default=None
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_login: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    current_rank: Mapped[RankConfiguration | None] = relationship()
    mission_progress: Mapped[list[MissionProgress]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "employee_id", name="uq_users_org_employee"),
        Index("ix_users_org_points", "organization_id", "total_points"),
    )
    __mapper_args__ = {"version_id_col": version}

    @validates("total_points")
    def _validate_total_points(self, key: str, value: int) -> int:
        current = self.__dict__.get("total_points")
        if value is None or value < 0:
            raise ValidationError("total_points cannot be negative")
        if current is not None and value < current:
            raise ValidationError(
                f"total_points cannot decrease ({current} -> {value})"
            )
        return value

    @property
    def full_name(self) -> str:
        return join_name(self.name, self.surname)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"<User id={self.id} emp={self.employee_id!r} pts={self.total_points}>"


# ---------------------------------------------------------------------------
# Mission progress — per user + mission type
# ---------------------------------------------------------------------------
class MissionProgress(Base):
    """Completed action-type ids grow monotonically; ``completed`` is sticky.

    ``completed_action_type_ids`` is a plain JSONB list, so callers must
    assign a new list rather than mutate in place.
    """
    __tablename__ = "mission_progress"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    mission_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("mission_types.id", ondelete="CASCADE"), primary_key=True
    )
    completed_action_type_ids: Mapped[list] = mapped_column(
        JSONB, nullable=False, default=list
    )
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    user: Mapped[User] = relationship(back_populates="mission_progress")

    def __repr__(self) -> str:
        return (
            f"<MissionProgress user={self.user_id} mission={self.mission_type_id} "
            f"done={self.completed}>"
        )


# ---------------------------------------------------------------------------
# Actions — captured behaviour instances
# ---------------------------------------------------------------------------
class Action(Base):
    __tablename__ = "actions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    action_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("action_types.id"), nullable=False
    )
    action_date: Mapped[date] = mapped_column(Date, nullable=False)
    capture_method: Mapped[str] = mapped_column(String(20), nullable=False)
    reporter_id: Mapped[str] = mapped_column(String(64), nullable=False)
    reporter_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ActionStatus.PENDING_APPROVAL
    )
    evidence: Mapped[str | None] = mapped_column(Text, default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)
    approver_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), default=None
    )  # Reviewer for both approval and rejection
    approval_notes: Mapped[str | None] = mapped_column(Text, default=None)
    rejection_reason: Mapped[str | None] = mapped_column(Text, default=None)
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    action_type: Mapped[ActionType] = relationship()

    __table_args__ = (
        UniqueConstraint(
            "organization_id", "user_id", "action_type_id", "action_date",
            name="uq_actions_org_user_type_date",
        ),
        Index("ix_actions_org_status", "organization_id", "status"),
        Index("ix_actions_user_date", "user_id", "action_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Action id={self.id} user={self.user_id} type={self.action_type_id} "
            f"date={self.action_date} status={self.status}>"
        )


# ---------------------------------------------------------------------------
# Events — append-only activity journal
# ---------------------------------------------------------------------------
class Event(Base):
    """Never read back to drive domain logic; consumers are feeds and reports."""
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), default=None
    )  # NULL for organization-level configuration events
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    payload: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_events_org_ts", "organization_id", "timestamp"),
        Index("ix_events_user_ts", "user_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<Event id={self.id} type={self.event_type} user={self.user_id}>"
