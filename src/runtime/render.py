"""Render sinks that turn timer updates into terminal output."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

import click

from pomodoro import RenderSink, TimerUpdate
from pomodoro.constants import (
    ACTION_START,
    ACTION_TRANSITION,
    COMMAND_ABORT,
    COMMAND_COMPLETE,
    COMMAND_QUIT,
    COMMAND_SKIP,
    KIND_LONG_BREAK,
    KIND_SHORT_BREAK,
    KIND_WORK,
)

from .messages import KEY_HELP, status_line, transition_message

_KIND_COLORS = {
    KIND_WORK: "red",
    KIND_SHORT_BREAK: "cyan",
    KIND_LONG_BREAK: "blue",
}


class TerminalRenderSink:
    """Keeps a single status line up to date and prints period changes."""

    def __init__(
        self,
        ticket_name: str,
        *,
        echo: Callable[..., None] = click.echo,
        color: Optional[bool] = None,
    ):
        self._ticket_name = ticket_name
        self._echo = echo
        self._color = color
        self._line_open = False

    def publish(self, update: TimerUpdate) -> None:
        if not update.accepted:
            return

        if update.action == ACTION_START:
            self._print(click.style(f"Pomodoro for: {self._ticket_name}", bold=True, fg="magenta"))
            self._print(click.style(KEY_HELP, fg="yellow"))

        if update.transition is not None and update.action in (ACTION_TRANSITION, COMMAND_SKIP):
            next_duration = update.frame.duration_seconds
            self._print(
                click.style(
                    transition_message(update.transition, next_duration),
                    fg="green",
                )
            )

        if update.action in (COMMAND_COMPLETE, COMMAND_QUIT, COMMAND_ABORT):
            self._close_line()
            return

        line = click.style(
            status_line(update.frame),
            fg=_KIND_COLORS.get(update.frame.period_kind),
            bold=update.frame.paused,
        )
        self._echo(f"\r\x1b[2K{line}", nl=False, color=self._color)
        self._line_open = True

    def _print(self, text: str) -> None:
        self._close_line()
        self._echo(text, color=self._color)

    def _close_line(self) -> None:
        if self._line_open:
            self._echo("", color=self._color)
            self._line_open = False


class FanoutRenderSink:
    """Publishes each update to several sinks; one failing sink does not stop the rest."""

    def __init__(
        self,
        sinks: Iterable[RenderSink],
        *,
        logger: Optional[logging.Logger] = None,
    ):
        self._sinks = list(sinks)
        self._logger = logger or logging.getLogger("runtime.render")

    def publish(self, update: TimerUpdate) -> None:
        for sink in self._sinks:
            try:
                sink.publish(update)
            except Exception as error:
                self._logger.error(
                    "Render sink %s failed: %s",
                    type(sink).__name__,
                    error,
                )
