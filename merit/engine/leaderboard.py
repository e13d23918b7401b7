"""
merit.engine.leaderboard — Ranking Arithmetic
==============================================

Pure helpers behind the leaderboard queries.  No DB I/O.

Ordering is ``total_points`` descending, ties broken by user id ascending.
Positions follow competition ranking: a user's position is one plus the
number of users with strictly more points, so tied users share a position.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from merit.errors import ValidationError


def page_offset(page: int, page_size: int) -> int:
    """Row offset for a 1-based *page*."""
    if page < 1:
        raise ValidationError("page must be at least 1")
    if page_size < 1:
        raise ValidationError("page_size must be at least 1")
    return (page - 1) * page_size


def position_for(strictly_greater: int) -> int:
    """One plus the number of users with strictly more points."""
    return strictly_greater + 1


def competition_positions(
    points_desc: Sequence[int], offset: int = 0, first_position: int | None = None
) -> list[int]:
    """Positions for a sorted slice starting at global index *offset*.

    A row tied with the row before it shares that row's position; any other
    row at global index *g* has exactly *g* users above it.  The first row's
    predecessor lies outside the slice, so its position is passed in as
    *first_position* (defaults to ``offset + 1``, i.e. no tie across the
    slice boundary).
    """
    positions: list[int] = []
    for idx, pts in enumerate(points_desc):
        if idx == 0:
            positions.append(first_position if first_position is not None else offset + 1)
        elif pts == points_desc[idx - 1]:
            positions.append(positions[-1])
        else:
            positions.append(offset + idx + 1)
    return positions


def nearby_window(index: int, total: int, window: int) -> tuple[int, int]:
    """``[start, stop)`` indices of the rows within *window* of *index*."""
    if window < 0:
        raise ValidationError("window must not be negative")
    start = max(0, index - window)
    stop = min(total, index + window + 1)
    return start, stop


@dataclass
class LeaderboardStatistics:
    total_users: int = 0
    active_users: int = 0
    average_points: float = 0.0
    top_scorer_name: str | None = None
    top_scorer_points: int | None = None


def summarize(
    points: Sequence[int],
    top_scorer_name: str | None = None,
    top_scorer_points: int | None = None,
) -> LeaderboardStatistics:
    """Aggregate statistics for one organization's point totals."""
    total = len(points)
    if total == 0:
        return LeaderboardStatistics()
    return LeaderboardStatistics(
        total_users=total,
        active_users=sum(1 for p in points if p > 0),
        average_points=sum(points) / total,
        top_scorer_name=top_scorer_name,
        top_scorer_points=top_scorer_points,
    )
