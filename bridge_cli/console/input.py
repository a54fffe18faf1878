"""Line sources feeding the input loop."""

from __future__ import annotations

import asyncio
import sys
from abc import ABC, abstractmethod
from typing import Optional, TextIO

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import ANSI


class LineSource(ABC):
    """Produces one line of operator input per call.

    Raises ``EOFError`` when input is exhausted and ``KeyboardInterrupt`` when
    the operator aborts the current line.
    """

    #: Whether the source renders the prompt itself.
    draws_prompt: bool = False

    @abstractmethod
    async def read_line(self, prompt: str) -> str:
        ...


class PromptToolkitLineSource(LineSource):
    """Interactive TTY input via ``PromptSession.prompt_async``.

    Use together with ``prompt_toolkit.patch_stdout`` so other output is
    printed above the prompt.
    """

    draws_prompt = True

    def __init__(self, session: Optional[PromptSession[str]] = None) -> None:
        self._session = session

    async def read_line(self, prompt: str) -> str:
        if self._session is None:
            self._session = PromptSession()
        return await self._session.prompt_async(ANSI(prompt))


class StreamLineSource(LineSource):
    """Reads lines from a plain stream (pipes, redirected stdin)."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream

    async def read_line(self, prompt: str) -> str:
        stream = self._stream if self._stream is not None else sys.stdin
        line = await asyncio.to_thread(stream.readline)
        if not line:
            raise EOFError
        return line.rstrip("\r\n")


def default_line_source(stream: Optional[TextIO] = None) -> LineSource:
    stream = stream if stream is not None else sys.stdin
    if stream.isatty():
        return PromptToolkitLineSource()
    return StreamLineSource(stream)
