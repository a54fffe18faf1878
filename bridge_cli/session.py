"""Client-side view of the bridge conversation."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional


def new_thread_id() -> str:
    return f"cli-{int(time.time() * 1000)}"


@dataclass
class ChatSession:
    """Correlates the client-owned thread with the server-assigned session.

    The thread id survives reconnects; the session id is replaced on every
    ``connected`` frame.
    """

    thread_id: str = field(default_factory=new_thread_id)
    session_id: Optional[str] = None
    domains: List[str] = field(default_factory=list)
    monitor: bool = False
    pending_request: bool = False
    connect_count: int = 0
    connected_at: Optional[datetime] = None

    @property
    def has_connected(self) -> bool:
        return self.connect_count > 0

    def new_thread(self) -> str:
        previous = self.thread_id
        thread_id = new_thread_id()
        if thread_id == previous:
            thread_id = f"{thread_id}-1"
        self.thread_id = thread_id
        self.pending_request = False
        return thread_id

    def record_connected(self, session_id: str, domains: List[str]) -> bool:
        """Store the new server session; returns ``True`` on the first connect."""

        first = not self.has_connected
        self.session_id = session_id
        self.domains = list(domains)
        self.connect_count += 1
        self.connected_at = datetime.now(tz=timezone.utc)
        return first

    def toggle_monitor(self) -> bool:
        self.monitor = not self.monitor
        return self.monitor
