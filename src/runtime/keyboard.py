"""Background keyboard listener that turns keypresses into timer commands."""

from __future__ import annotations

import codecs
import logging
import os
import select
import sys
import threading
from typing import Callable, Optional, Protocol, TextIO

from pomodoro.constants import (
    COMMAND_COMPLETE,
    COMMAND_QUIT,
    COMMAND_SKIP,
    COMMAND_TOGGLE_PAUSE,
)

KEY_COMMANDS: dict[str, str] = {
    "p": COMMAND_TOGGLE_PAUSE,
    "s": COMMAND_SKIP,
    "c": COMMAND_COMPLETE,
    "q": COMMAND_QUIT,
}

# Returned by readers once the input stream is exhausted.
END_OF_INPUT = ""


def command_for_key(key: str) -> Optional[str]:
    return KEY_COMMANDS.get(key.strip().lower()) if key else None


class KeyReader(Protocol):
    """Blocking single-key source with a timeout so readers can be stopped."""
    def __enter__(self) -> "KeyReader":
        ...

    def __exit__(self, *exc_info) -> None:
        ...

    def read_key(self, timeout_seconds: float) -> Optional[str]:
        ...


class TerminalKeyReader:
    """Reads single keypresses from stdin, in cbreak mode when it is a TTY."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream or sys.stdin
        self._fd = self._stream.fileno()
        self._saved_attrs = None
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def __enter__(self) -> "TerminalKeyReader":
        if os.isatty(self._fd):
            import termios
            import tty

            self._saved_attrs = termios.tcgetattr(self._fd)
            tty.setcbreak(self._fd)
        return self

    def __exit__(self, *exc_info) -> None:
        if self._saved_attrs is not None:
            import termios

            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved_attrs)
            self._saved_attrs = None

    def read_key(self, timeout_seconds: float) -> Optional[str]:
        ready, _, _ = select.select([self._fd], [], [], timeout_seconds)
        if not ready:
            return None
        data = os.read(self._fd, 1)
        if not data:
            return END_OF_INPUT
        # Multibyte keys arrive one byte per read; hold partial sequences.
        key = self._decoder.decode(data)
        return key or None


class KeyboardListener:
    """Forwards recognised keys to `submit` from a daemon thread."""

    def __init__(
        self,
        submit: Callable[[str], None],
        *,
        reader: Optional[KeyReader] = None,
        read_timeout_seconds: float = 0.1,
        logger: Optional[logging.Logger] = None,
    ):
        self._submit = submit
        self._reader = reader
        self._read_timeout = read_timeout_seconds
        self._logger = logger or logging.getLogger("runtime.keyboard")
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            self._logger.warning("Keyboard listener is already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="keyboard-listener",
        )
        self._thread.start()

    def stop(self, timeout_seconds: float = 1.0) -> None:
        self._stop_event.set()
        if self._thread is None:
            return
        self._thread.join(timeout=timeout_seconds)
        if self._thread.is_alive():
            self._logger.error(
                "Keyboard listener did not stop within %.1fs",
                timeout_seconds,
            )
        self._thread = None

    def _run(self) -> None:
        reader = self._reader or TerminalKeyReader()
        try:
            with reader:
                while not self._stop_event.is_set():
                    key = reader.read_key(self._read_timeout)
                    if key is None:
                        continue
                    if key == END_OF_INPUT:
                        self._logger.info("Input closed; keyboard listener stopping")
                        return
                    command = command_for_key(key)
                    if command is None:
                        self._logger.debug("Ignoring key %r", key)
                        continue
                    self._submit(command)
        except Exception as error:
            self._logger.error("Keyboard listener failed: %s", error, exc_info=True)
