"""
Merit — An Employee Incentive Engine
=====================================
Organizations define the behaviours they want to reward (action types),
bundles of behaviours that unlock a badge (missions) and point thresholds
that confer a title (ranks).  Employees capture actions, managers approve
them, and approved actions feed points, promotions and mission progress.
A leaderboard ranks everyone in an organization by accumulated points.

Package layout::

    merit/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Shared enums for capture / reporting
    ├── errors.py          # Domain error taxonomy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # All ORM models
    │   └── seed.py        # Default catalog seeder
    ├── engine/
    │   ├── ranks.py       # Rank eligibility (pure)
    │   ├── missions.py    # Mission progress rules (pure)
    │   ├── workflow.py    # Action state machine (pure)
    │   └── leaderboard.py # Positions, windows, statistics (pure)
    ├── services/
    │   ├── catalog_service.py     # Organizations, action/mission/rank CRUD
    │   ├── user_service.py        # User registry, hierarchy, CSV import
    │   ├── action_service.py      # Capture → approve/reject, CSV import
    │   ├── points_service.py      # award_points + rank promotion
    │   ├── mission_service.py     # Mission progress tracker
    │   ├── leaderboard_service.py # Leaderboard queries
    │   ├── event_service.py       # Append-only event log
    │   └── csv_import.py          # CSV row parsing
    └── api/
        ├── main.py        # FastAPI app + error mapping
        ├── deps.py        # Engine / config / identity dependencies
        └── routes/        # REST endpoints
"""

__version__ = "0.1.0"
