"""Live update websocket event constants."""

from __future__ import annotations

# Websocket event types
EVENT_HELLO = "hello"
EVENT_SESSION = "session"
EVENT_POMODORO = "pomodoro"
EVENT_SETTLEMENT = "settlement"
EVENT_ERROR = "error"

# Session lifecycle states carried by EVENT_SESSION
STATE_IDLE = "idle"
STATE_FOCUSING = "focusing"
STATE_COMPLETED = "completed"
STATE_QUIT = "quit"

STICKY_EVENT_TYPES: frozenset[str] = frozenset(
    {
        EVENT_SESSION,
        EVENT_POMODORO,
        EVENT_SETTLEMENT,
        EVENT_ERROR,
    }
)

STICKY_EVENT_ORDER: tuple[str, ...] = (
    EVENT_SESSION,
    EVENT_POMODORO,
    EVENT_SETTLEMENT,
    EVENT_ERROR,
)
