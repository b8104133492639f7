"""Period kinds, command, action, and reason constants used by the timer core."""

from __future__ import annotations

KIND_WORK = "work"
KIND_SHORT_BREAK = "short_break"
KIND_LONG_BREAK = "long_break"

BREAK_KINDS: frozenset[str] = frozenset({KIND_SHORT_BREAK, KIND_LONG_BREAK})
PERIOD_KINDS: tuple[str, ...] = (KIND_WORK, KIND_SHORT_BREAK, KIND_LONG_BREAK)

COMMAND_PAUSE = "pause"
COMMAND_RESUME = "resume"
COMMAND_TOGGLE_PAUSE = "toggle_pause"
COMMAND_SKIP = "skip"
COMMAND_COMPLETE = "complete"
COMMAND_QUIT = "quit"
COMMAND_ABORT = "abort"

SUPPORTED_COMMANDS: frozenset[str] = frozenset(
    {
        COMMAND_PAUSE,
        COMMAND_RESUME,
        COMMAND_TOGGLE_PAUSE,
        COMMAND_SKIP,
        COMMAND_COMPLETE,
        COMMAND_QUIT,
        COMMAND_ABORT,
    }
)

ACTION_START = "start"
ACTION_TICK = "tick"
ACTION_TRANSITION = "transition"

SESSION_RUNNING = "running"
SESSION_COMPLETED = "completed"
SESSION_QUIT = "quit"

REASON_STARTED = "started"
REASON_PAUSED = "paused"
REASON_RESUMED = "resumed"
REASON_SKIPPED = "skipped"
REASON_COMPLETED = "completed"
REASON_QUIT = "quit"
REASON_TICK = "tick"
REASON_PERIOD_ELAPSED = "period_elapsed"
REASON_ALREADY_PAUSED = "already_paused"
REASON_NOT_PAUSED = "not_paused"
REASON_SESSION_ENDED = "session_ended"
REASON_UNSUPPORTED_COMMAND = "unsupported_command"
