"""WebSocket transport implementation."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from bridge_cli.config import ClientSettings
from bridge_cli.network.transport.base import BaseTransport, TransportClosed, TransportError

LOGGER = logging.getLogger(__name__)


class WebSocketTransport(BaseTransport):
    """WebSocket-based bridge transport."""

    def __init__(self, settings: ClientSettings) -> None:
        self._settings = settings
        self._ws: Optional[Any] = None

    @property
    def url(self) -> str:
        return self._settings.server_url

    async def connect(self) -> None:
        LOGGER.info("Connecting to bridge WebSocket at %s", self.url)
        try:
            self._ws = await websockets.connect(
                self.url,
                open_timeout=self._settings.connect_timeout_seconds,
            )
        except (OSError, asyncio.TimeoutError, InvalidHandshake, InvalidURI) as exc:
            raise TransportError(f"Cannot connect to {self.url}: {exc}") from exc

    async def send(self, text: str) -> None:
        if not self._ws:
            raise TransportClosed("WebSocket transport not connected")
        LOGGER.debug("WebSocket send: %s", text)
        try:
            await self._ws.send(text)
        except ConnectionClosed as exc:
            raise TransportClosed(f"WebSocket closed ({exc})") from exc

    async def receive(self) -> str | bytes:
        if not self._ws:
            raise TransportClosed("WebSocket transport not connected")
        try:
            raw = await self._ws.recv()
        except ConnectionClosed as exc:
            raise TransportClosed(f"WebSocket closed ({exc})") from exc
        LOGGER.debug("WebSocket receive: %s", raw)
        return raw

    async def close(self) -> None:
        if self._ws:
            LOGGER.info("Closing WebSocket transport")
            ws, self._ws = self._ws, None
            await ws.close()
