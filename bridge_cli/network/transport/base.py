"""Transport abstractions for the bridge connection."""

from __future__ import annotations

from abc import ABC, abstractmethod


class TransportError(RuntimeError):
    """Raised when the transport cannot connect, send or receive."""


class TransportClosed(TransportError):
    """Raised by ``receive``/``send`` once the peer or the client closed the transport."""


class BaseTransport(ABC):
    """Message-oriented, full-duplex transport carrying JSON text frames."""

    @abstractmethod
    async def connect(self) -> None:
        ...

    @abstractmethod
    async def send(self, text: str) -> None:
        ...

    @abstractmethod
    async def receive(self) -> str | bytes:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...
