"""Status and summary text builders for focus sessions."""

from __future__ import annotations

from pomodoro import PeriodTransition, RenderFrame
from pomodoro.constants import KIND_LONG_BREAK, KIND_SHORT_BREAK, KIND_WORK

_PERIOD_LABELS = {
    KIND_WORK: "WORK",
    KIND_SHORT_BREAK: "SHORT BREAK",
    KIND_LONG_BREAK: "LONG BREAK",
}

KEY_HELP = "[p] pause/resume  [s] skip  [c] complete  [q] quit"


def format_duration(seconds: int) -> str:
    """Format a duration in seconds as `MM:SS`."""
    minutes, remainder = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{remainder:02d}"


def period_label(kind: str) -> str:
    return _PERIOD_LABELS.get(kind, kind.upper())


def status_line(frame: RenderFrame) -> str:
    """One-line status for the running period."""
    parts = [f"{period_label(frame.period_kind)} {format_duration(frame.remaining_seconds)}"]
    if frame.overtime is not None:
        if frame.overtime.is_overtime:
            parts.append(f"OVERTIME {format_duration(frame.overtime.overtime_seconds)}")
        else:
            parts.append(
                f"allocation left {format_duration(frame.overtime.remaining_seconds)}"
            )
    parts.append(f"pomodoros {frame.completed_work_periods}")
    if frame.paused:
        parts.append("PAUSED")
    return " | ".join(parts)


def transition_message(transition: PeriodTransition, next_duration_seconds: int) -> str:
    minutes = next_duration_seconds // 60
    length = f"{minutes} min" if minutes else f"{next_duration_seconds} s"
    if transition.finished.kind == KIND_WORK:
        verb = "skipped" if transition.skipped else "completed"
        if transition.next_kind == KIND_LONG_BREAK:
            follow_up = f"Long break ({length}) - relax!"
        else:
            follow_up = f"Short break ({length}) - take a breath!"
        return f"Work period {verb} (#{transition.completed_work_periods}). {follow_up}"
    return f"Break over. Starting a new {length} work period!"


def settlement_lines(result) -> list[str]:
    """Human readable summary of a `SettlementResult`."""
    ticket = result.ticket
    outcome = result.xp
    lines = [
        f"Ticket completed: {ticket.name}",
        f"Time spent: {ticket.time_spent:.1f} min (allocated {ticket.allocated_time_minutes} min)",
    ]
    if outcome.is_overtime:
        lines.append(f"Overtime: {outcome.overtime_minutes:.1f} min")
        lines.append(
            f"Overtime penalty: -{outcome.penalty} XP ({outcome.penalty_percent}% penalty)"
        )
    else:
        under = ticket.allocated_time_minutes - ticket.time_spent
        lines.append(f"Completed {under:.1f} min under allocated time!")
        lines.append(f"Early completion bonus: +{outcome.bonus} XP")
    lines.append(f"XP earned: {outcome.xp_earned}. Total XP: {result.user.xp}")
    if result.levels_gained:
        lines.append(f"LEVEL UP! You are now level {result.user.level}!")
    return lines
