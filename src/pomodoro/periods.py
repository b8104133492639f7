"""Drift-free work/break period state machine driven by monotonic readings."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Literal, Optional

from .constants import KIND_LONG_BREAK, KIND_SHORT_BREAK, KIND_WORK

PeriodKind = Literal["work", "short_break", "long_break"]


@dataclass(frozen=True)
class Period:
    """Immutable view of one period at a given clock reading."""
    kind: PeriodKind
    duration_seconds: int
    elapsed_seconds: int

    @property
    def remaining_seconds(self) -> int:
        return max(0, self.duration_seconds - self.elapsed_seconds)


@dataclass(frozen=True)
class PeriodTransition:
    """Emitted exactly once when a period ends, naturally or by skip."""
    finished: Period
    next_kind: PeriodKind
    completed_work_periods: int
    skipped: bool = False


class PeriodEngine:
    """Converts clock readings into period progress and boundary crossings.

    Elapsed time is always computed as ``now - started_at`` from a captured
    start timestamp and never by counting polls, so slow or missed polls cannot
    introduce drift. Pausing freezes the elapsed value; resuming rebases
    ``started_at`` to ``now - frozen_elapsed`` so progress continues without a
    jump. Elapsed time never decreases within a period, even if the clock
    reports an earlier reading than before.
    """

    def __init__(
        self,
        *,
        work_seconds: int,
        short_break_seconds: int,
        long_break_seconds: int,
        periods_before_long_break: int,
        logger: Optional[logging.Logger] = None,
    ):
        durations = {
            KIND_WORK: int(work_seconds),
            KIND_SHORT_BREAK: int(short_break_seconds),
            KIND_LONG_BREAK: int(long_break_seconds),
        }
        for kind, seconds in durations.items():
            if seconds <= 0:
                raise ValueError(f"{kind} duration must be greater than zero")
        if periods_before_long_break <= 0:
            raise ValueError("periods_before_long_break must be greater than zero")

        self._durations: dict[str, int] = durations
        self._periods_before_long_break = int(periods_before_long_break)
        self._logger = logger or logging.getLogger("pomodoro")

        self._kind: PeriodKind = KIND_WORK
        self._started_at: Optional[float] = None
        self._frozen_elapsed: Optional[float] = None
        self._high_water_elapsed: float = 0.0
        self._completed_work_periods = 0
        self._completed_work_seconds: float = 0.0

    @classmethod
    def from_settings(
        cls,
        settings,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> "PeriodEngine":
        return cls(
            work_seconds=settings.work_duration_seconds,
            short_break_seconds=settings.short_break_duration_seconds,
            long_break_seconds=settings.long_break_duration_seconds,
            periods_before_long_break=settings.periods_before_long_break,
            logger=logger,
        )

    @property
    def kind(self) -> PeriodKind:
        return self._kind

    @property
    def is_started(self) -> bool:
        return self._started_at is not None

    @property
    def is_paused(self) -> bool:
        return self._frozen_elapsed is not None

    @property
    def completed_work_periods(self) -> int:
        return self._completed_work_periods

    @property
    def periods_before_long_break(self) -> int:
        return self._periods_before_long_break

    def duration_for(self, kind: str) -> int:
        return self._durations[kind]

    def start(self, now: float) -> Period:
        self._kind = KIND_WORK
        self._started_at = now
        self._frozen_elapsed = None
        self._high_water_elapsed = 0.0
        self._completed_work_periods = 0
        self._completed_work_seconds = 0.0
        self._logger.info(
            "Work period started: duration=%ss",
            self._durations[KIND_WORK],
        )
        return self.snapshot(now)

    def snapshot(self, now: float) -> Period:
        duration = self._durations[self._kind]
        elapsed = min(self._elapsed(now), float(duration))
        return Period(
            kind=self._kind,
            duration_seconds=duration,
            elapsed_seconds=int(math.floor(elapsed)),
        )

    def accumulated_work_seconds(self, now: float) -> float:
        """Completed work durations plus in-progress work elapsed time."""
        total = self._completed_work_seconds
        if self._kind == KIND_WORK:
            total += min(self._elapsed(now), float(self._durations[KIND_WORK]))
        return total

    def poll(self, now: float) -> Optional[PeriodTransition]:
        """Return a transition if the current period has run out, else None."""
        if self._started_at is None or self._frozen_elapsed is not None:
            return None

        duration = self._durations[self._kind]
        if self._elapsed(now) < duration:
            return None
        return self._finish(now, credited_seconds=float(duration), skipped=False)

    def pause(self, now: float) -> bool:
        if self._started_at is None or self._frozen_elapsed is not None:
            return False
        duration = float(self._durations[self._kind])
        self._frozen_elapsed = min(self._elapsed(now), duration)
        self._logger.info(
            "Period paused: kind=%s elapsed=%.1fs",
            self._kind,
            self._frozen_elapsed,
        )
        return True

    def resume(self, now: float) -> bool:
        frozen = self._frozen_elapsed
        if self._started_at is None or frozen is None:
            return False
        self._started_at = now - frozen
        self._high_water_elapsed = frozen
        self._frozen_elapsed = None
        self._logger.info("Period resumed: kind=%s elapsed=%.1fs", self._kind, frozen)
        return True

    def skip(self, now: float) -> Optional[PeriodTransition]:
        """End the current period now, crediting only the time already accrued."""
        if self._started_at is None:
            return None
        duration = float(self._durations[self._kind])
        credited = min(self._elapsed(now), duration)
        return self._finish(now, credited_seconds=credited, skipped=True)

    def _elapsed(self, now: float) -> float:
        if self._started_at is None:
            return 0.0
        if self._frozen_elapsed is not None:
            return self._frozen_elapsed

        elapsed = now - self._started_at
        if elapsed < self._high_water_elapsed:
            self._logger.debug(
                "Clock reading went backwards; clamping elapsed at %.3fs",
                self._high_water_elapsed,
            )
            return self._high_water_elapsed
        self._high_water_elapsed = elapsed
        return elapsed

    def _finish(
        self,
        now: float,
        *,
        credited_seconds: float,
        skipped: bool,
    ) -> PeriodTransition:
        finished = Period(
            kind=self._kind,
            duration_seconds=self._durations[self._kind],
            elapsed_seconds=int(math.floor(credited_seconds)),
        )

        if self._kind == KIND_WORK:
            self._completed_work_periods += 1
            self._completed_work_seconds += credited_seconds
            if self._completed_work_periods % self._periods_before_long_break == 0:
                next_kind: PeriodKind = KIND_LONG_BREAK
            else:
                next_kind = KIND_SHORT_BREAK
        else:
            next_kind = KIND_WORK

        self._kind = next_kind
        self._started_at = now
        self._high_water_elapsed = 0.0
        if self._frozen_elapsed is not None:
            # A paused skip lands in the next period still paused.
            self._frozen_elapsed = 0.0

        self._logger.info(
            "Period %s: kind=%s credited=%.1fs next=%s work_periods=%d",
            "skipped" if skipped else "finished",
            finished.kind,
            credited_seconds,
            next_kind,
            self._completed_work_periods,
        )
        return PeriodTransition(
            finished=finished,
            next_kind=next_kind,
            completed_work_periods=self._completed_work_periods,
            skipped=skipped,
        )
