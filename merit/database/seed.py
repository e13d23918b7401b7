"""
merit.database.seed — Default Catalog Seeder
=============================================

A starter organization so a fresh install is immediately usable: a rank
ladder, a handful of action types and two missions built from them.

Idempotent: keyed by the organization's federation id, the seed is skipped
entirely once that organization exists.  Admin edits are never overwritten.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select

from merit.database.engine import get_session
from merit.database.models import ActionType, MissionType, Organization, RankConfiguration

logger = logging.getLogger(__name__)

DEFAULT_FEDERATION_ID = "merit-default"


# ---------------------------------------------------------------------------
# Default catalog
# ---------------------------------------------------------------------------
DEFAULT_RANKS: list[tuple[str, int, str, str]] = [
    ("Associate", 0, "⭐", "Everyone starts here"),
    ("Contributor", 100, "⭐⭐", "Regularly goes beyond the job description"),
    ("Specialist", 300, "⭐⭐⭐", "A recognised go-to person"),
    ("Expert", 700, "\U0001f31f", "Raises the bar for the whole team"),
    ("Leader", 1500, "\U0001f3c6", "Shapes how the organization works"),
]
"""``(name, points_threshold, insignia, description)``"""

DEFAULT_ACTION_TYPES: list[dict] = [
    {
        "name": "Peer Mentoring",
        "points": 25,
        "category": "People",
        "description": "Spent dedicated time coaching a colleague",
        "capture_methods": ["UI"],
        "allowed_reporters": ["SELF", "PEER", "MANAGER"],
        "requires_manager_approval": True,
    },
    {
        "name": "Knowledge Sharing Session",
        "points": 40,
        "category": "People",
        "description": "Ran a talk, workshop or brown-bag session",
        "capture_methods": ["UI", "IMPORT"],
        "allowed_reporters": ["SELF", "MANAGER"],
        "requires_manager_approval": True,
    },
    {
        "name": "Process Improvement",
        "points": 60,
        "category": "Delivery",
        "description": "Shipped a measurable improvement to a team process",
        "capture_methods": ["UI"],
        "allowed_reporters": ["SELF", "PEER", "MANAGER"],
        "requires_manager_approval": True,
    },
    {
        "name": "Customer Kudos",
        "points": 30,
        "category": "Customer",
        "description": "Received written praise from a customer",
        "capture_methods": ["UI", "IMPORT"],
        "allowed_reporters": ["PEER", "MANAGER"],
        "requires_manager_approval": False,
    },
    {
        "name": "Training Completed",
        "points": 20,
        "category": "Growth",
        "description": "Finished an accredited training course",
        "capture_methods": ["IMPORT"],
        "allowed_reporters": ["MANAGER"],
        "requires_manager_approval": False,
    },
]

DEFAULT_MISSIONS: list[dict] = [
    {
        "name": "Community Builder",
        "badge": "community-builder",
        "bonus_points": 50,
        "category": "People",
        "description": "Mentor a colleague and share your knowledge",
        "requires": ["Peer Mentoring", "Knowledge Sharing Session"],
    },
    {
        "name": "Continuous Improver",
        "badge": "continuous-improver",
        "bonus_points": 75,
        "category": "Growth",
        "description": "Improve a process and keep learning",
        "requires": ["Process Improvement", "Training Completed"],
    },
]


# ---------------------------------------------------------------------------
# Seeder
# ---------------------------------------------------------------------------
def seed_default_catalog(engine: Engine, *, name: str = "Merit Demo") -> int | None:
    """Create the default organization and catalog if it doesn't exist yet.

    Returns the new organization id, or ``None`` when already seeded.
    """
    with get_session(engine) as session:
        existing = session.scalar(
            select(Organization.id).where(
                Organization.federation_id == DEFAULT_FEDERATION_ID
            )
        )
        if existing is not None:
            return None

        org = Organization(
            name=name,
            federation_id=DEFAULT_FEDERATION_ID,
            description="Starter organization created on first startup",
        )
        session.add(org)
        session.flush()

        for order, (rank_name, threshold, insignia, desc) in enumerate(DEFAULT_RANKS, 1):
            session.add(RankConfiguration(
                organization_id=org.id,
                name=rank_name,
                points_threshold=threshold,
                insignia=insignia,
                description=desc,
                display_order=order,
            ))

        by_name: dict[str, ActionType] = {}
        for entry in DEFAULT_ACTION_TYPES:
            action_type = ActionType(organization_id=org.id, **entry)
            session.add(action_type)
            by_name[entry["name"]] = action_type
        session.flush()

        for entry in DEFAULT_MISSIONS:
            fields = {k: v for k, v in entry.items() if k != "requires"}
            mission = MissionType(organization_id=org.id, **fields)
            mission.required_action_types = [by_name[n] for n in entry["requires"]]
            session.add(mission)

        org_id = org.id

    logger.info(
        "Seeded default catalog: %d ranks, %d action types, %d missions.",
        len(DEFAULT_RANKS), len(DEFAULT_ACTION_TYPES), len(DEFAULT_MISSIONS),
    )
    return org_id
