"""Serialization of timer updates into websocket events, plus sticky replay."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from typing import Any, Callable

from contracts.ui_protocol import STICKY_EVENT_ORDER, STICKY_EVENT_TYPES


def make_event(
    event_type: str,
    *,
    now_fn: Callable[[], datetime] | None = None,
    **payload: Any,
) -> str:
    """Serialize an event payload with type and timestamp for websocket delivery."""
    now = now_fn() if now_fn is not None else datetime.now(timezone.utc)
    return json.dumps(
        {
            "type": event_type,
            "timestamp": now.isoformat(),
            **payload,
        }
    )


def timer_update_payload(update: Any) -> dict[str, Any]:
    """Flatten a `TimerUpdate` into the `pomodoro` event body."""
    frame = update.frame
    payload: dict[str, Any] = {
        "action": update.action,
        "accepted": update.accepted,
        "reason": update.reason,
        "period_kind": frame.period_kind,
        "remaining_seconds": frame.remaining_seconds,
        "duration_seconds": frame.duration_seconds,
        "paused": frame.paused,
        "completed_work_periods": frame.completed_work_periods,
    }
    if frame.overtime is not None:
        payload["overtime"] = {
            "is_overtime": frame.overtime.is_overtime,
            "remaining_seconds": frame.overtime.remaining_seconds,
            "overtime_seconds": frame.overtime.overtime_seconds,
        }
    transition = getattr(update, "transition", None)
    if transition is not None:
        payload["transition"] = {
            "finished_kind": transition.finished.kind,
            "credited_seconds": transition.finished.elapsed_seconds,
            "next_kind": transition.next_kind,
            "skipped": transition.skipped,
        }
    return payload


def settlement_payload(result: Any) -> dict[str, Any]:
    """Flatten a `SettlementResult` into the `settlement` event body."""
    return {
        "ticket_id": result.ticket.id,
        "ticket_name": result.ticket.name,
        "time_spent": result.ticket.time_spent,
        "allocated_time_minutes": result.ticket.allocated_time_minutes,
        "overtime_minutes": result.xp.overtime_minutes,
        "base_xp": result.xp.base_xp,
        "penalty": result.xp.penalty,
        "bonus": result.xp.bonus,
        "xp_earned": result.xp.xp_earned,
        "xp": result.user.xp,
        "level": result.user.level,
        "levels_gained": result.levels_gained,
    }


class StickyEventStore:
    """Thread-safe cache of the latest sticky events replayed to new clients."""
    def __init__(self):
        self._events: dict[str, str] = {}
        self._lock = threading.Lock()

    def remember(self, event_type: str, message: str) -> None:
        if event_type not in STICKY_EVENT_TYPES:
            return
        with self._lock:
            self._events[event_type] = message

    def snapshot(self) -> list[str]:
        with self._lock:
            return [self._events[key] for key in STICKY_EVENT_ORDER if key in self._events]
