"""Network stack (transport/connection/supervisor) for the bridge client."""

from bridge_cli.network.backoff import BackoffPolicy
from bridge_cli.network.completion import CompletionGate
from bridge_cli.network.connection import Connection, ConnectionState
from bridge_cli.network.state import SupervisorEvent, SupervisorState
from bridge_cli.network.supervisor import ConnectAttemptFailed, ConnectionSupervisor, SupervisorStopped
from bridge_cli.network.transport.base import BaseTransport
from bridge_cli.network.transport.memory import MemoryTransport
from bridge_cli.network.transport.websocket import WebSocketTransport

__all__ = [
    "BackoffPolicy",
    "CompletionGate",
    "Connection",
    "ConnectionState",
    "SupervisorEvent",
    "SupervisorState",
    "ConnectAttemptFailed",
    "ConnectionSupervisor",
    "SupervisorStopped",
    "BaseTransport",
    "MemoryTransport",
    "WebSocketTransport",
]
