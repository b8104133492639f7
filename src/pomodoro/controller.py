"""Single-writer timer controller that owns one focus session."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Any, Callable, Optional, Protocol

from .constants import (
    ACTION_START,
    ACTION_TICK,
    ACTION_TRANSITION,
    COMMAND_ABORT,
    COMMAND_COMPLETE,
    COMMAND_PAUSE,
    COMMAND_QUIT,
    COMMAND_RESUME,
    COMMAND_SKIP,
    COMMAND_TOGGLE_PAUSE,
    KIND_WORK,
    REASON_ALREADY_PAUSED,
    REASON_COMPLETED,
    REASON_NOT_PAUSED,
    REASON_PAUSED,
    REASON_PERIOD_ELAPSED,
    REASON_QUIT,
    REASON_RESUMED,
    REASON_SESSION_ENDED,
    REASON_SKIPPED,
    REASON_STARTED,
    REASON_TICK,
    REASON_UNSUPPORTED_COMMAND,
    SESSION_COMPLETED,
    SESSION_QUIT,
    SESSION_RUNNING,
    SUPPORTED_COMMANDS,
)
from .periods import PeriodEngine, PeriodTransition


class TicketLike(Protocol):
    """Subset of a work item the controller needs for overtime display."""
    id: str
    time_spent: float
    allocated_time_minutes: int


@dataclass(frozen=True)
class OvertimeInfo:
    """Allocation progress of the ticket including the running session."""
    is_overtime: bool
    remaining_seconds: int
    overtime_seconds: int


@dataclass(frozen=True)
class RenderFrame:
    """Value object handed to render sinks once per render tick."""
    period_kind: str
    remaining_seconds: int
    duration_seconds: int
    paused: bool
    completed_work_periods: int
    overtime: Optional[OvertimeInfo] = None


@dataclass(frozen=True)
class TimerUpdate:
    """Result envelope for a command, a render tick, or a period transition."""
    action: str
    accepted: bool
    reason: str
    frame: RenderFrame
    transition: Optional[PeriodTransition] = None


@dataclass(frozen=True)
class SessionOutcome:
    """How a session ended and what settlement produced, if it ran."""
    status: str
    ticket_id: str
    accumulated_work_seconds: float
    completed_work_periods: int
    settlement: Optional[Any] = None


class RenderSink(Protocol):
    def publish(self, update: TimerUpdate) -> None:
        ...


Settle = Callable[[float], Any]


class TimerController:
    """Owns pause state and command dispatch for one session.

    All session state is mutated only by the thread that calls `run` (or
    `start`/`step`/`apply` directly). Other threads hand commands over with
    `submit`, which only enqueues. Pending commands are always applied before
    the next clock poll, so a command queued before a boundary crossing is
    honoured first.
    """

    def __init__(
        self,
        *,
        engine: PeriodEngine,
        ticket: TicketLike,
        settle: Settle,
        sink: Optional[RenderSink] = None,
        clock: Callable[[], float] = time.monotonic,
        poll_interval_seconds: float = 0.1,
        render_interval_seconds: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ):
        if poll_interval_seconds <= 0 or render_interval_seconds <= 0:
            raise ValueError("poll and render intervals must be greater than zero")

        self._engine = engine
        self._ticket = ticket
        self._settle = settle
        self._sink = sink
        self._clock = clock
        self._poll_interval = float(poll_interval_seconds)
        self._render_interval = float(render_interval_seconds)
        self._logger = logger or logging.getLogger("pomodoro")

        self._commands: Queue[str] = Queue()
        self._status = SESSION_RUNNING
        self._outcome: Optional[SessionOutcome] = None
        self._last_now: Optional[float] = None
        self._last_render_at: Optional[float] = None
        self._last_frame: Optional[RenderFrame] = None

    @property
    def status(self) -> str:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status == SESSION_RUNNING

    @property
    def outcome(self) -> Optional[SessionOutcome]:
        return self._outcome

    def submit(self, command: str) -> None:
        """Thread-safe hand-off of a command token to the owning thread."""
        self._commands.put(command)

    def start(self) -> TimerUpdate:
        """Start the first work period.

        Later clock failures reuse the last reading, but there is nothing to
        reuse yet here: a failing first read propagates before any timer
        state exists.
        """
        now = self._now()
        self._engine.start(now)
        self._logger.info("Focus session started: ticket=%s", self._ticket.id)
        return self._publish(ACTION_START, True, REASON_STARTED, now)

    def run(self) -> SessionOutcome:
        """Drive the session until complete or quit and return its outcome."""
        if not self._engine.is_started:
            self.start()

        while self.is_running:
            try:
                command = self._commands.get(timeout=self._poll_interval)
            except Empty:
                command = None
            if command is not None:
                self.apply(command)
            self.step()

        if self._outcome is None:
            raise RuntimeError("session ended without an outcome")
        return self._outcome

    def step(self) -> bool:
        """Apply queued commands, then poll the clock once."""
        while self.is_running:
            try:
                command = self._commands.get_nowait()
            except Empty:
                break
            self.apply(command)

        if self.is_running:
            self.poll()
        return self.is_running

    def poll(self) -> Optional[TimerUpdate]:
        if not self.is_running:
            return None
        if not self._engine.is_started:
            return self.start()

        now = self._now()
        transition = self._engine.poll(now)
        if transition is not None:
            return self._publish(
                ACTION_TRANSITION,
                True,
                REASON_PERIOD_ELAPSED,
                now,
                transition=transition,
            )

        if (
            self._last_render_at is not None
            and now - self._last_render_at < self._render_interval
        ):
            return None
        return self._publish(ACTION_TICK, True, REASON_TICK, now)

    def apply(self, command: str) -> TimerUpdate:
        token = (command or "").strip().lower()
        if self.is_running and not self._engine.is_started:
            self.start()
        now = self._now()

        if not self.is_running:
            self._logger.warning(
                "Ignoring %r: session already %s",
                token,
                self._status,
            )
            return self._result(token, False, REASON_SESSION_ENDED, now)

        if token not in SUPPORTED_COMMANDS:
            self._logger.debug("Ignoring unsupported command %r", command)
            return self._result(token, False, REASON_UNSUPPORTED_COMMAND, now)

        if token == COMMAND_TOGGLE_PAUSE:
            token = COMMAND_RESUME if self._engine.is_paused else COMMAND_PAUSE

        if token == COMMAND_PAUSE:
            if not self._engine.pause(now):
                return self._result(token, False, REASON_ALREADY_PAUSED, now)
            return self._publish(token, True, REASON_PAUSED, now)

        if token == COMMAND_RESUME:
            if not self._engine.resume(now):
                return self._result(token, False, REASON_NOT_PAUSED, now)
            return self._publish(token, True, REASON_RESUMED, now)

        if token == COMMAND_SKIP:
            transition = self._engine.skip(now)
            return self._publish(token, True, REASON_SKIPPED, now, transition=transition)

        if token == COMMAND_COMPLETE:
            return self._complete(now)

        if token in (COMMAND_QUIT, COMMAND_ABORT):
            return self._quit(token, now)

        return self._result(token, False, REASON_UNSUPPORTED_COMMAND, now)

    def _complete(self, now: float) -> TimerUpdate:
        accumulated = self._engine.accumulated_work_seconds(now)
        update = self._end(COMMAND_COMPLETE, SESSION_COMPLETED, REASON_COMPLETED, now)
        self._logger.info(
            "Settling ticket=%s with %.1fs of work",
            self._ticket.id,
            accumulated,
        )
        settlement = self._settle(accumulated)
        self._outcome = SessionOutcome(
            status=SESSION_COMPLETED,
            ticket_id=self._ticket.id,
            accumulated_work_seconds=accumulated,
            completed_work_periods=self._engine.completed_work_periods,
            settlement=settlement,
        )
        return update

    def _quit(self, command: str, now: float) -> TimerUpdate:
        return self._end(command, SESSION_QUIT, REASON_QUIT, now)

    def _end(self, command: str, status: str, reason: str, now: float) -> TimerUpdate:
        frame = self._frame(now)
        self._status = status
        self._outcome = SessionOutcome(
            status=status,
            ticket_id=self._ticket.id,
            accumulated_work_seconds=self._engine.accumulated_work_seconds(now),
            completed_work_periods=self._engine.completed_work_periods,
        )
        self._logger.info("Focus session ended: ticket=%s status=%s", self._ticket.id, status)
        update = TimerUpdate(action=command, accepted=True, reason=reason, frame=frame)
        self._emit(update)
        return update

    def _publish(
        self,
        action: str,
        accepted: bool,
        reason: str,
        now: float,
        *,
        transition: Optional[PeriodTransition] = None,
    ) -> TimerUpdate:
        update = TimerUpdate(
            action=action,
            accepted=accepted,
            reason=reason,
            frame=self._frame(now),
            transition=transition,
        )
        self._last_render_at = now
        self._emit(update)
        return update

    def _result(self, action: str, accepted: bool, reason: str, now: float) -> TimerUpdate:
        if not self.is_running and self._last_frame is not None:
            frame = self._last_frame
        else:
            frame = self._frame(now)
        return TimerUpdate(action=action, accepted=accepted, reason=reason, frame=frame)

    def _emit(self, update: TimerUpdate) -> None:
        if self._sink is not None:
            self._sink.publish(update)

    def _frame(self, now: float) -> RenderFrame:
        period = self._engine.snapshot(now)
        overtime = None
        if period.kind == KIND_WORK:
            overtime = self._overtime_info(now)
        frame = RenderFrame(
            period_kind=period.kind,
            remaining_seconds=period.remaining_seconds,
            duration_seconds=period.duration_seconds,
            paused=self._engine.is_paused,
            completed_work_periods=self._engine.completed_work_periods,
            overtime=overtime,
        )
        self._last_frame = frame
        return frame

    def _overtime_info(self, now: float) -> OvertimeInfo:
        spent_seconds = (
            float(self._ticket.time_spent) * 60.0
            + self._engine.accumulated_work_seconds(now)
        )
        allocated_seconds = float(self._ticket.allocated_time_minutes) * 60.0
        balance = allocated_seconds - spent_seconds
        return OvertimeInfo(
            is_overtime=balance < 0,
            remaining_seconds=int(max(0.0, balance)),
            overtime_seconds=int(max(0.0, -balance)),
        )

    def _now(self) -> float:
        try:
            now = float(self._clock())
        except Exception as error:
            self._logger.warning("Clock read failed, reusing last reading: %s", error)
            if self._last_now is None:
                raise
            return self._last_now

        if self._last_now is not None and now < self._last_now:
            self._logger.warning(
                "Clock went backwards by %.3fs; holding last reading",
                self._last_now - now,
            )
            return self._last_now
        self._last_now = now
        return now
