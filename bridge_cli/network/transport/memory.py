"""In-memory transport for offline runs and tests."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional, Union

from bridge_cli.network.transport.base import BaseTransport, TransportClosed, TransportError

LOGGER = logging.getLogger(__name__)

_Inbound = Union[str, bytes, BaseException]


class MemoryTransport(BaseTransport):
    """Transport whose server side is driven from Python.

    ``push`` queues a frame for ``receive``; ``drop`` makes the pending (or next)
    ``receive`` fail as if the peer went away; ``connect_error`` makes ``connect``
    fail. Everything the client sends lands in ``sent``.
    """

    def __init__(self, settings=None, *, connect_error: Optional[BaseException] = None) -> None:
        self._settings = settings
        self._connect_error = connect_error
        self._inbox: asyncio.Queue[_Inbound] = asyncio.Queue()
        self.sent: list[str] = []
        self.connected = False
        self.closed = False

    async def connect(self) -> None:
        LOGGER.debug("Memory transport connect()")
        if self._connect_error is not None:
            raise self._connect_error
        if self.closed:
            raise TransportError("Memory transport already closed")
        self.connected = True

    async def send(self, text: str) -> None:
        if self.closed or not self.connected:
            raise TransportClosed("Memory transport not connected")
        LOGGER.debug("Memory transport send(): %s", text)
        self.sent.append(text)

    async def receive(self) -> str | bytes:
        item = await self._inbox.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        if self.closed:
            return
        LOGGER.debug("Memory transport close()")
        self.closed = True
        self._inbox.put_nowait(TransportClosed("Memory transport closed"))

    # Server-side controls

    def push(self, frame: Union[str, bytes, dict[str, Any]]) -> None:
        if isinstance(frame, dict):
            frame = json.dumps(frame)
        self._inbox.put_nowait(frame)

    def drop(self, exc: Optional[BaseException] = None) -> None:
        self._inbox.put_nowait(exc or TransportClosed("Connection closed by peer"))

    def sent_frames(self) -> list[dict[str, Any]]:
        return [json.loads(text) for text in self.sent]
