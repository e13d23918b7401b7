"""Initial Merit schema

Revision ID: 5c2e9b7a41d0
Revises:
Create Date: 2026-10-19 09:12:31.480215

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5c2e9b7a41d0'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create the catalog, user, workflow and event tables."""

    # --- organizations ---
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), nullable=False, unique=True),
        sa.Column("federation_id", sa.String(120), nullable=False, unique=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("active", sa.Boolean, server_default=sa.true()),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        *_timestamps(),
    )

    # --- catalog ---
    op.create_table(
        "action_types",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "organization_id",
            sa.Integer,
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("points", sa.Integer, nullable=False),
        sa.Column("category", sa.String(60), nullable=True),
        sa.Column("capture_methods", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("allowed_reporters", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("requires_manager_approval", sa.Boolean, server_default=sa.true()),
        sa.Column("active", sa.Boolean, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("organization_id", "name", name="uq_action_types_org_name"),
    )

    op.create_table(
        "mission_types",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "organization_id",
            sa.Integer,
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("badge", sa.String(60), nullable=True),
        sa.Column("bonus_points", sa.Integer, server_default="0"),
        sa.Column("category", sa.String(60), nullable=True),
        sa.Column("active", sa.Boolean, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("organization_id", "name", name="uq_mission_types_org_name"),
    )

    op.create_table(
        "mission_requirements",
        sa.Column(
            "mission_type_id",
            sa.Integer,
            sa.ForeignKey("mission_types.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "action_type_id",
            sa.Integer,
            sa.ForeignKey("action_types.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "rank_configurations",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "organization_id",
            sa.Integer,
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("points_threshold", sa.Integer, nullable=False),
        sa.Column("insignia", sa.String(60), nullable=True),
        sa.Column("display_order", sa.Integer, server_default="0"),
        sa.Column("active", sa.Boolean, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("organization_id", "name", name="uq_ranks_org_name"),
        sa.UniqueConstraint(
            "organization_id", "points_threshold", name="uq_ranks_org_threshold"
        ),
    )

    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "organization_id",
            sa.Integer,
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("employee_id", sa.String(60), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("surname", sa.String(100), nullable=False, server_default=""),
        sa.Column("manager_employee_id", sa.String(60), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="USER"),
        sa.Column("total_points", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "current_rank_id",
            sa.Integer,
            sa.ForeignKey("rank_configurations.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("organization_id", "employee_id", name="uq_users_org_employee"),
    )
    op.create_index("ix_users_org_points", "users", ["organization_id", "total_points"])

    op.create_table(
        "mission_progress",
        sa.Column(
            "user_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "mission_type_id",
            sa.Integer,
            sa.ForeignKey("mission_types.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "completed_action_type_ids", postgresql.JSONB, nullable=False, server_default="[]"
        ),
        sa.Column("completed", sa.Boolean, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )

    # --- workflow ---
    op.create_table(
        "actions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "organization_id",
            sa.Integer,
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "action_type_id", sa.Integer, sa.ForeignKey("action_types.id"), nullable=False
        ),
        sa.Column("action_date", sa.Date, nullable=False),
        sa.Column("capture_method", sa.String(20), nullable=False),
        sa.Column("reporter_id", sa.String(64), nullable=False),
        sa.Column("reporter_type", sa.String(20), nullable=False),
        sa.Column(
            "status", sa.String(20), nullable=False, server_default="PENDING_APPROVAL"
        ),
        sa.Column("evidence", sa.Text, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("approver_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("approval_notes", sa.Text, nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "organization_id", "user_id", "action_type_id", "action_date",
            name="uq_actions_org_user_type_date",
        ),
    )
    op.create_index("ix_actions_org_status", "actions", ["organization_id", "status"])
    op.create_index("ix_actions_user_date", "actions", ["user_id", "action_date"])

    # --- events ---
    op.create_table(
        "events",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "organization_id",
            sa.Integer,
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("event_type", sa.String(40), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("payload", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_events_org_ts", "events", ["organization_id", "timestamp"])
    op.create_index("ix_events_user_ts", "events", ["user_id", "timestamp"])


def downgrade() -> None:
    op.drop_index("ix_events_user_ts", table_name="events")
    op.drop_index("ix_events_org_ts", table_name="events")
    op.drop_table("events")
    op.drop_index("ix_actions_user_date", table_name="actions")
    op.drop_index("ix_actions_org_status", table_name="actions")
    op.drop_table("actions")
    op.drop_table("mission_progress")
    op.drop_index("ix_users_org_points", table_name="users")
    op.drop_table("users")
    op.drop_table("rank_configurations")
    op.drop_table("mission_requirements")
    op.drop_table("mission_types")
    op.drop_table("action_types")
    op.drop_table("organizations")
