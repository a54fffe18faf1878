"""Per-attempt connection record owned by the supervisor."""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Optional

from bridge_cli.network.completion import CompletionGate
from bridge_cli.network.transport.base import BaseTransport


class ConnectionState(enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


_ALLOWED = {
    ConnectionState.IDLE: {ConnectionState.CONNECTING, ConnectionState.CLOSING, ConnectionState.CLOSED},
    ConnectionState.CONNECTING: {ConnectionState.OPEN, ConnectionState.CLOSING, ConnectionState.CLOSED},
    ConnectionState.OPEN: {ConnectionState.CLOSING, ConnectionState.CLOSED},
    ConnectionState.CLOSING: {ConnectionState.CLOSED},
    ConnectionState.CLOSED: set(),
}


@dataclass
class Connection:
    """One transport instance and the outcome of its connection attempt."""

    serial: int
    transport: BaseTransport
    gate: CompletionGate[Optional[str]]
    state: ConnectionState = ConnectionState.IDLE
    session_id: Optional[str] = None
    acknowledged: bool = False
    reader_task: Optional[asyncio.Task[None]] = field(default=None, repr=False)
    keepalive_task: Optional[asyncio.Task[None]] = field(default=None, repr=False)

    @property
    def retired(self) -> bool:
        """True once closing has begun; a retired connection never reports again."""
        return self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED)

    def transition(self, next_state: ConnectionState) -> None:
        """Move to ``next_state``; re-entering the current state is a no-op."""

        if next_state is self.state:
            return
        if next_state not in _ALLOWED[self.state]:
            raise ValueError(f"Invalid connection transition {self.state.value} → {next_state.value}")
        self.state = next_state

    def cancel_tasks(self) -> None:
        """Cancel background tasks except the one currently running."""

        current = asyncio.current_task()
        for task in (self.reader_task, self.keepalive_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
