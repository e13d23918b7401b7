"""
merit.engine.ranks — Rank Eligibility
======================================

Pure functions over rank configurations.  No DB I/O.

Eligibility is decided by ``points_threshold`` alone; ``display_order`` is
presentation only.  Inactive ranks are never eligible and never "next".
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol


class RankLike(Protocol):
    id: int
    name: str
    insignia: str | None
    points_threshold: int
    active: bool


def eligible_rank(ranks: Iterable[RankLike], points: int) -> RankLike | None:
    """Highest-threshold active rank with ``threshold <= points``."""
    best = None
    for rank in ranks:
        if not rank.active or rank.points_threshold > points:
            continue
        if best is None or rank.points_threshold > best.points_threshold:
            best = rank
    return best


def next_rank(ranks: Iterable[RankLike], points: int) -> RankLike | None:
    """Lowest-threshold active rank with ``threshold > points``."""
    best = None
    for rank in ranks:
        if not rank.active or rank.points_threshold <= points:
            continue
        if best is None or rank.points_threshold < best.points_threshold:
            best = rank
    return best


def promotion_target(
    current: RankLike | None,
    ranks: Iterable[RankLike],
    points: int,
) -> RankLike | None:
    """Return the rank the user should move to, or ``None`` to stay put.

    Ranks are sticky: a user whose current rank has a threshold at or above
    the eligible one (possible after thresholds are edited or the rank is
    deactivated) keeps it.  Promotion only ever moves up.
    """
    target = eligible_rank(ranks, points)
    if target is None:
        return None
    if current is not None and current.id == target.id:
        return None
    if current is not None and current.points_threshold >= target.points_threshold:
        return None
    return target


# ---------------------------------------------------------------------------
# Rank info (current + next + distance)
# ---------------------------------------------------------------------------
@dataclass
class RankProgress:
    """Where a user stands relative to the rank ladder."""

    current_points: int
    current_rank_id: int | None = None
    current_rank_name: str | None = None
    current_rank_insignia: str | None = None
    current_rank_threshold: int | None = None
    next_rank_id: int | None = None
    next_rank_name: str | None = None
    next_rank_insignia: str | None = None
    next_rank_threshold: int | None = None
    points_to_next_rank: int | None = None


def rank_progress(
    current: RankLike | None,
    ranks: Iterable[RankLike],
    points: int,
) -> RankProgress:
    ranks = list(ranks)
    info = RankProgress(current_points=points)
    if current is not None:
        info.current_rank_id = current.id
        info.current_rank_name = current.name
        info.current_rank_insignia = current.insignia
        info.current_rank_threshold = current.points_threshold
    upcoming = next_rank(ranks, points)
    if upcoming is not None:
        info.next_rank_id = upcoming.id
        info.next_rank_name = upcoming.name
        info.next_rank_insignia = upcoming.insignia
        info.next_rank_threshold = upcoming.points_threshold
        info.points_to_next_rank = upcoming.points_threshold - points
    return info


def rank_distribution(
    ranks: Iterable[RankLike], holder_counts: dict[int, int]
) -> list[dict]:
    """Per active rank, how many users currently hold it (threshold order)."""
    active = sorted(
        (r for r in ranks if r.active), key=lambda r: r.points_threshold
    )
    return [
        {
            "rank_id": r.id,
            "rank_name": r.name,
            "insignia": r.insignia,
            "points_threshold": r.points_threshold,
            "user_count": holder_counts.get(r.id, 0),
        }
        for r in active
    ]
