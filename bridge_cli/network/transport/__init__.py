"""Transport implementations for the bridge connection."""

from .base import BaseTransport, TransportClosed, TransportError
from .memory import MemoryTransport
from .websocket import WebSocketTransport

__all__ = ["BaseTransport", "TransportClosed", "TransportError", "MemoryTransport", "WebSocketTransport"]
