"""Focus session wiring: timer controller, keyboard input, and render sinks."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from app_config import AppConfig
from contracts.ui_protocol import STATE_COMPLETED, STATE_FOCUSING, STATE_QUIT
from pomodoro import PeriodEngine, RenderSink, SessionOutcome, TimerController
from pomodoro.constants import COMMAND_QUIT, SESSION_COMPLETED
from settlement import (
    CompletionSettlement,
    SettlementError,
    SettlementPersistenceError,
    TicketAlreadyCompletedError,
    XPRules,
)
from store import ProgressionStore, WorkItemStore

from .keyboard import KeyboardListener, KeyReader
from .render import FanoutRenderSink
from .ui import RuntimeUIPublisher


@dataclass(frozen=True)
class FocusSessionDependencies:
    """Dependencies required to run one focus session."""
    logger: logging.Logger
    app_config: AppConfig
    tickets: WorkItemStore
    progression: ProgressionStore
    ui: RuntimeUIPublisher
    render_sinks: tuple[RenderSink, ...] = ()
    key_reader: Optional[KeyReader] = None
    clock: Callable[[], float] = time.monotonic


class FocusSession:
    """One timer run against one ticket, from selection to complete or quit."""

    def __init__(self, ticket_id: str, dependencies: FocusSessionDependencies):
        deps = dependencies
        ticket = deps.tickets.get_ticket(ticket_id)
        if ticket.completed:
            raise TicketAlreadyCompletedError(f"Ticket already completed: {ticket_id}")

        self._ticket = ticket
        self._logger = deps.logger
        self._ui = deps.ui

        pomodoro_settings = deps.app_config.pomodoro
        engine = PeriodEngine.from_settings(
            pomodoro_settings,
            logger=logging.getLogger("pomodoro"),
        )
        settlement = CompletionSettlement(
            tickets=deps.tickets,
            progression=deps.progression,
            rules=XPRules.from_settings(deps.app_config.xp),
            logger=logging.getLogger("settlement"),
        )
        self._controller = TimerController(
            engine=engine,
            ticket=ticket,
            settle=lambda seconds: settlement.settle(ticket.id, seconds),
            sink=FanoutRenderSink(
                (*deps.render_sinks, deps.ui),
                logger=logging.getLogger("runtime.render"),
            ),
            clock=deps.clock,
            poll_interval_seconds=pomodoro_settings.poll_interval_seconds,
            render_interval_seconds=pomodoro_settings.render_interval_seconds,
            logger=logging.getLogger("pomodoro"),
        )
        self._keyboard = KeyboardListener(
            self._controller.submit,
            reader=deps.key_reader,
            read_timeout_seconds=pomodoro_settings.poll_interval_seconds,
            logger=logging.getLogger("runtime.keyboard"),
        )

    @property
    def controller(self) -> TimerController:
        return self._controller

    @property
    def keyboard(self) -> KeyboardListener:
        return self._keyboard

    def run(self) -> SessionOutcome:
        self._ui.publish_state(
            STATE_FOCUSING,
            message=f"Focusing on {self._ticket.name}",
        )
        self._keyboard.start()
        try:
            outcome = self._controller.run()
        except KeyboardInterrupt:
            outcome = self._interrupted()
        except SettlementError as error:
            self._ui.publish_error(str(error))
            raise
        finally:
            self._keyboard.stop()

        if outcome.settlement is not None:
            self._ui.publish_settlement(outcome.settlement)
        self._ui.publish_state(
            STATE_COMPLETED if outcome.status == SESSION_COMPLETED else STATE_QUIT
        )
        return outcome

    def _interrupted(self) -> SessionOutcome:
        if self._controller.is_running:
            self._logger.info("Interrupted; ending session without settlement.")
            self._controller.apply(COMMAND_QUIT)
            return self._controller.outcome

        outcome = self._controller.outcome
        if outcome is not None and (
            outcome.status != SESSION_COMPLETED or outcome.settlement is not None
        ):
            return outcome

        # Completed but not settled: stopped somewhere inside the store writes.
        error = SettlementPersistenceError(
            f"Settlement for ticket {self._ticket.id} was interrupted; "
            "records may be partially saved"
        )
        self._logger.error("%s", error)
        self._ui.publish_error(str(error))
        raise error
