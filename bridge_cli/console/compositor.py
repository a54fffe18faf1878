"""Serialized terminal output that never tears the input prompt."""

from __future__ import annotations

import logging
import sys
import threading
from datetime import datetime
from typing import Callable, Optional, TextIO

from bridge_cli.console.theme import CLEAR_LINE, DIM, PROMPT, RED, YELLOW, paint


def _wall_clock() -> str:
    return datetime.now().strftime("%H:%M:%S")


class OutputCompositor:
    """The only writer of the terminal.

    Every write goes through :meth:`_emit`, which erases the prompt line,
    writes the text on its own line and, for reprompting writes, redraws the
    prompt when one is active. With ``manage_prompt=False`` the erase/redraw
    steps are left to whoever owns the prompt (prompt_toolkit's patched
    stdout) and only the text is written.
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        *,
        prompt: str = PROMPT,
        manage_prompt: bool = True,
        color: bool = True,
        clock: Callable[[], str] = _wall_clock,
    ) -> None:
        self._stream = stream
        self.prompt = prompt
        self.manage_prompt = manage_prompt
        self.color = color
        self._clock = clock
        self._lock = threading.RLock()
        self._prompt_active = False

    @property
    def stream(self) -> TextIO:
        # Resolved per write so a stdout patched after construction is honoured.
        return self._stream if self._stream is not None else sys.stdout

    @property
    def prompt_active(self) -> bool:
        return self._prompt_active

    def begin_prompt(self) -> None:
        """Mark the prompt as shown; draws it when the compositor owns it."""

        with self._lock:
            self._prompt_active = True
            if self.manage_prompt:
                self._write(self.prompt)

    def end_prompt(self) -> None:
        with self._lock:
            self._prompt_active = False

    def log(self, prefix: str, message: str, *, style: str = "", reprompt: bool = True) -> None:
        """Write ``HH:MM:SS prefix message`` above the prompt."""

        timestamp = paint(self._clock(), DIM, color=self.color)
        label = paint(prefix, style, color=self.color) if prefix else ""
        line = " ".join(part for part in (timestamp, label, message) if part)
        self._emit(line, reprompt=reprompt)

    def info(self, message: str, *, reprompt: bool = True) -> None:
        self.log("•", message, style=DIM, reprompt=reprompt)

    def warn(self, message: str, *, reprompt: bool = True) -> None:
        self.log("!", message, style=YELLOW, reprompt=reprompt)

    def error(self, message: str, *, reprompt: bool = True) -> None:
        self.log("✗", message, style=RED, reprompt=reprompt)

    def block(self, text: str, *, reprompt: bool = True) -> None:
        """Write multi-line text (help, status) without a timestamp."""

        self._emit(text, reprompt=reprompt)

    def _emit(self, text: str, *, reprompt: bool) -> None:
        with self._lock:
            parts = []
            if self.manage_prompt:
                parts.append(CLEAR_LINE)
            parts.append(text)
            parts.append("\n")
            if reprompt and self.manage_prompt and self._prompt_active:
                parts.append(self.prompt)
            self._write("".join(parts))

    def _write(self, data: str) -> None:
        stream = self.stream
        stream.write(data)
        stream.flush()


class CompositorLogHandler(logging.Handler):
    """Routes log records through the compositor so they respect the prompt."""

    def __init__(self, compositor: OutputCompositor, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._compositor = compositor

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            style = RED if record.levelno >= logging.ERROR else YELLOW if record.levelno >= logging.WARNING else DIM
            self._compositor.log("[log]", message, style=style)
        except Exception:  # noqa: BLE001
            self.handleError(record)
