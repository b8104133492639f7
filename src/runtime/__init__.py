"""Runtime exports."""

from .keyboard import KeyboardListener, TerminalKeyReader
from .render import FanoutRenderSink, TerminalRenderSink
from .session import FocusSession, FocusSessionDependencies
from .ui import RuntimeUIPublisher

__all__ = [
    "FanoutRenderSink",
    "FocusSession",
    "FocusSessionDependencies",
    "KeyboardListener",
    "RuntimeUIPublisher",
    "TerminalKeyReader",
    "TerminalRenderSink",
]
