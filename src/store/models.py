"""Records owned by the data store and referenced by the timer core."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class WorkItem:
    """A ticket the user times focus sessions against."""
    id: str
    name: str
    story_points: int
    allocated_time_minutes: int
    time_spent: float = 0.0
    completed: bool = False
    created_at: str = ""
    completed_at: Optional[str] = None


@dataclass(frozen=True)
class UserProgression:
    name: str = ""
    xp: int = 0
    level: int = 1


@dataclass(frozen=True)
class Stats:
    """Aggregate totals; the pending fields are derived from the ticket list."""
    total_tickets_solved: int = 0
    total_time_taken: float = 0.0
    total_overtime: float = 0.0
    total_story_points: int = 0
    total_tickets_pending: int = 0
    total_story_points_pending: int = 0
