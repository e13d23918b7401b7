"""
merit.constants — Shared Constants & Helpers
=============================================

Single source of truth for event message templates and small presentation
helpers.  Import from here instead of duplicating strings across services.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Event message templates (rendered into Event.message)
# ---------------------------------------------------------------------------
MSG_USER_REGISTERED = "Welcome aboard, %s!"
MSG_ACTION_CAPTURED = "Action captured: %s"
MSG_ACTION_APPROVED = "Action approved: %s"
MSG_ACTION_REJECTED = "Action rejected: %s"
MSG_POINTS_AWARDED = "Awarded %d points - %s"
MSG_RANK_PROMOTED = "Promoted to rank: %s %s"
MSG_MISSION_COMPLETED = "Mission '%s' completed! Earned badge: %s (+%d bonus points)"
MSG_CONFIGURATION_CHANGED = "%s %s: %s"

# Reason strings passed to award_points
REASON_ACTION_APPROVED = "Action approved: %s"
REASON_MISSION_COMPLETED = "Mission completed: %s"

# ---------------------------------------------------------------------------
# Time windows for statistics
# ---------------------------------------------------------------------------
WEEK_DAYS = 7
MONTH_DAYS = 30
FEED_FALLBACK_DAYS = 7  # Feed window when the user has never logged in

# Podium markers for the top three leaderboard positions
RANK_BADGES: list[str] = ["\U0001f947", "\U0001f948", "\U0001f949"]  # 🥇🥈🥉


def podium_badge(position: int) -> str | None:
    """Return the medal for positions 1–3, otherwise ``None``."""
    if 1 <= position <= len(RANK_BADGES):
        return RANK_BADGES[position - 1]
    return None


def full_name(name: str | None, surname: str | None) -> str:
    """Join first and last name, tolerating either being blank."""
    return " ".join(part for part in (name, surname) if part).strip()
