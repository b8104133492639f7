from __future__ import annotations

from typing import Any, Optional, Protocol

from contracts.ui_protocol import (
    EVENT_ERROR,
    EVENT_POMODORO,
    EVENT_SESSION,
    EVENT_SETTLEMENT,
)
from pomodoro import TimerUpdate
from server.events import settlement_payload, timer_update_payload


class EventPublisher(Protocol):
    def publish(self, event_type: str, **payload: Any) -> None:
        ...


class RuntimeUIPublisher:
    """Forwards one session's updates to the live feed, if one is running.

    Also acts as a render sink, so the controller can publish to the feed the
    same way it publishes to the terminal.
    """

    def __init__(self, ui_server: Optional[EventPublisher], *, ticket_id: str = ""):
        self._ui_server = ui_server
        self._ticket_id = ticket_id

    def publish(self, update: TimerUpdate) -> None:
        self._send(EVENT_POMODORO, **timer_update_payload(update))

    def publish_state(self, state: str, *, message: Optional[str] = None) -> None:
        payload: dict[str, Any] = {"state": state}
        if message:
            payload["message"] = message
        self._send(EVENT_SESSION, **payload)

    def publish_settlement(self, result: Any) -> None:
        self._send(EVENT_SETTLEMENT, **settlement_payload(result))

    def publish_error(self, message: str) -> None:
        self._send(EVENT_ERROR, message=message)

    def _send(self, event_type: str, **payload: Any) -> None:
        if self._ui_server is None:
            return
        payload.setdefault("ticket_id", self._ticket_id)
        self._ui_server.publish(event_type, **payload)
