"""Completion settlement: time spent, XP reward or penalty, and level-ups."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Optional

from store import ProgressionStore, Stats, UserProgression, WorkItem, WorkItemStore

from .errors import (
    SettlementError,
    SettlementPersistenceError,
    TicketAlreadyCompletedError,
)


@dataclass(frozen=True)
class XPRules:
    """Scoring constants; all must be positive."""
    base_xp_per_story_point: int = 10
    early_completion_bonus_percent: int = 20
    xp_level_threshold_multiplier: int = 100

    def __post_init__(self) -> None:
        for name in (
            "base_xp_per_story_point",
            "early_completion_bonus_percent",
            "xp_level_threshold_multiplier",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be greater than zero")

    @classmethod
    def from_settings(cls, settings) -> "XPRules":
        return cls(
            base_xp_per_story_point=settings.base_xp_per_story_point,
            early_completion_bonus_percent=settings.early_completion_bonus_percent,
            xp_level_threshold_multiplier=settings.xp_level_threshold_multiplier,
        )


@dataclass(frozen=True)
class XPOutcome:
    base_xp: int
    overtime_minutes: float
    penalty_percent: int
    penalty: int
    bonus: int
    xp_earned: int

    @property
    def is_overtime(self) -> bool:
        return self.overtime_minutes > 0


@dataclass(frozen=True)
class SettlementResult:
    """Everything settlement computed and wrote for one completed ticket."""
    ticket: WorkItem
    user: UserProgression
    stats: Stats
    xp: XPOutcome
    level_before: int

    @property
    def levels_gained(self) -> int:
        return self.user.level - self.level_before


def round_time_spent(minutes: float) -> float:
    """Round to one decimal place, halves away from zero."""
    return float(Decimal(str(minutes)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def compute_xp(
    *,
    story_points: int,
    allocated_time_minutes: int,
    time_spent: float,
    rules: XPRules,
) -> XPOutcome:
    """Score a completion; every division floors."""
    if allocated_time_minutes <= 0:
        raise SettlementError("allocated_time_minutes must be greater than zero")

    # time_spent carries one decimal, so tenths of a minute keep this exact.
    spent_tenths = int(Decimal(str(time_spent)).scaleb(1).to_integral_value(ROUND_HALF_UP))
    overtime_tenths = max(0, spent_tenths - allocated_time_minutes * 10)
    overtime_minutes = overtime_tenths / 10

    base_xp = story_points * rules.base_xp_per_story_point
    if overtime_tenths > 0:
        penalty_percent = min(100, (overtime_tenths * 10) // allocated_time_minutes)
        penalty = (base_xp * penalty_percent) // 100
        return XPOutcome(
            base_xp=base_xp,
            overtime_minutes=overtime_minutes,
            penalty_percent=penalty_percent,
            penalty=penalty,
            bonus=0,
            xp_earned=max(0, base_xp - penalty),
        )

    bonus = (base_xp * rules.early_completion_bonus_percent) // 100
    return XPOutcome(
        base_xp=base_xp,
        overtime_minutes=0.0,
        penalty_percent=0,
        penalty=0,
        bonus=bonus,
        xp_earned=base_xp + bonus,
    )


def apply_level_ups(*, xp: int, level: int, threshold_multiplier: int) -> int:
    """Advance the level until xp is below level * threshold_multiplier."""
    if threshold_multiplier <= 0:
        raise ValueError("threshold_multiplier must be greater than zero")
    while xp >= level * threshold_multiplier:
        level += 1
    return level


class CompletionSettlement:
    """Applies a finished session to the ticket, user progression, and stats.

    Validation happens before anything is computed or written. Once writing
    starts every record is written even if an earlier write fails, so the
    in-memory state is either fully settled or untouched; write failures are
    then raised together as `SettlementPersistenceError`.
    """

    def __init__(
        self,
        *,
        tickets: WorkItemStore,
        progression: ProgressionStore,
        rules: XPRules,
        now_fn: Optional[Callable[[], datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._tickets = tickets
        self._progression = progression
        self._rules = rules
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))
        self._logger = logger or logging.getLogger("settlement")

    def settle(self, ticket_id: str, accumulated_work_seconds: float) -> SettlementResult:
        ticket = self._tickets.get_ticket(ticket_id)
        if ticket.completed:
            raise TicketAlreadyCompletedError(f"Ticket already completed: {ticket_id}")
        if accumulated_work_seconds < 0:
            self._logger.warning(
                "Negative session time %.3fs for ticket=%s; treating as zero",
                accumulated_work_seconds,
                ticket_id,
            )
            accumulated_work_seconds = 0.0

        time_spent = round_time_spent(ticket.time_spent + accumulated_work_seconds / 60.0)
        outcome = compute_xp(
            story_points=ticket.story_points,
            allocated_time_minutes=ticket.allocated_time_minutes,
            time_spent=time_spent,
            rules=self._rules,
        )

        user = self._progression.get_user()
        xp_total = user.xp + outcome.xp_earned
        level = apply_level_ups(
            xp=xp_total,
            level=user.level,
            threshold_multiplier=self._rules.xp_level_threshold_multiplier,
        )
        settled_user = replace(user, xp=xp_total, level=level)

        completed_at = self._now_fn().isoformat()
        settled_ticket = replace(
            ticket,
            time_spent=time_spent,
            completed=True,
            completed_at=completed_at,
        )

        stats = self._tickets.get_stats()
        settled_stats = replace(
            stats,
            total_tickets_solved=stats.total_tickets_solved + 1,
            total_time_taken=round(stats.total_time_taken + time_spent, 1),
            total_story_points=stats.total_story_points + ticket.story_points,
            total_overtime=round(stats.total_overtime + outcome.overtime_minutes, 1),
            total_tickets_pending=max(0, stats.total_tickets_pending - 1),
            total_story_points_pending=max(
                0, stats.total_story_points_pending - ticket.story_points
            ),
        )

        result = SettlementResult(
            ticket=settled_ticket,
            user=settled_user,
            stats=settled_stats,
            xp=outcome,
            level_before=user.level,
        )
        self._persist(result)

        self._logger.info(
            "Ticket %s settled: time_spent=%.1fmin overtime=%.1fmin xp=+%d total_xp=%d level=%d",
            ticket_id,
            time_spent,
            outcome.overtime_minutes,
            outcome.xp_earned,
            settled_user.xp,
            settled_user.level,
        )
        if result.levels_gained:
            self._logger.info(
                "Level up: %d -> %d",
                result.level_before,
                settled_user.level,
            )
        return result

    def _persist(self, result: SettlementResult) -> None:
        ticket = result.ticket
        writes: tuple[tuple[str, Callable[[], object]], ...] = (
            (
                "ticket",
                lambda: self._tickets.record_completion(
                    ticket.id,
                    ticket.time_spent,
                    ticket.completed_at or "",
                ),
            ),
            ("user", lambda: self._progression.save_user(result.user)),
            ("stats", lambda: self._tickets.save_stats(result.stats)),
        )

        failures: list[tuple[str, Exception]] = []
        for name, write in writes:
            try:
                write()
            except Exception as error:
                self._logger.error("Failed to persist %s for ticket=%s: %s", name, ticket.id, error)
                failures.append((name, error))

        if failures:
            detail = "; ".join(f"{name}: {error}" for name, error in failures)
            raise SettlementPersistenceError(
                f"Settlement for ticket {ticket.id} was not fully saved ({detail})",
                result=result,
            ) from failures[0][1]
