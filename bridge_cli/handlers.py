"""Frame handlers and connection notices rendered through the compositor."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from bridge_protocol import (
    AgentDescriptor,
    AgentInfoFrame,
    AgentProgressFrame,
    BridgeFrame,
    CommandFrame,
    ConnectedFrame,
    ErrorFrame,
    FrameDecodeError,
    PongFrame,
    ResponseFrame,
    SendFrame,
    UnknownFrame,
    next_frame_id,
)
from bridge_protocol.codec import RawFrame

from bridge_cli.console.compositor import OutputCompositor
from bridge_cli.console.theme import BLUE, CYAN, DIM, GRAY, GREEN, MAGENTA, RED, YELLOW, paint
from bridge_cli.dispatch import FrameDispatcher
from bridge_cli.session import ChatSession

if TYPE_CHECKING:
    from bridge_cli.network.supervisor import ConnectionSupervisor

LOGGER = logging.getLogger(__name__)

CONNECTION_ECHO = "Connected to Mesh Bridge"
TOOL_PREVIEW_LIMIT = 5
MONITOR_PREVIEW_CHARS = 200


def monitor_command(session: ChatSession, domain: str) -> CommandFrame:
    return CommandFrame(
        id=next_frame_id("cmd"),
        domain=domain,
        command="monitor",
        args=["on" if session.monitor else "off"],
        chat_id=session.thread_id,
    )


def summarize_tools(agent: AgentDescriptor, limit: int = TOOL_PREVIEW_LIMIT) -> str:
    names = [tool.name for tool in agent.tools]
    if not names:
        return "no tools"
    preview = ", ".join(names[:limit])
    if len(names) > limit:
        preview += f" +{len(names) - limit} more"
    return preview


class FrameHandlers:
    """Turns inbound frames into session updates and terminal lines.

    Handlers only touch local state and the compositor; anything that must go
    back to the server is posted to the supervisor without waiting.
    """

    def __init__(
        self,
        session: ChatSession,
        compositor: OutputCompositor,
        supervisor: "ConnectionSupervisor",
        *,
        domain: str = "cli",
    ) -> None:
        self.session = session
        self.compositor = compositor
        self.supervisor = supervisor
        self.domain = domain

    def register(self, dispatcher: FrameDispatcher) -> None:
        dispatcher.register_handler("connected", self.on_connected)
        dispatcher.register_handler("response", self.on_response)
        dispatcher.register_handler("agent_progress", self.on_agent_progress)
        dispatcher.register_handler("send", self.on_send)
        dispatcher.register_handler("error", self.on_error)
        dispatcher.register_handler("pong", self.on_pong)
        dispatcher.register_handler("agent_info", self.on_agent_info)

    def _paint(self, text: str, *styles: str) -> str:
        return paint(text, *styles, color=self.compositor.color)

    # Frame handlers

    def on_connected(self, frame: ConnectedFrame) -> None:
        domains = [domain.id for domain in frame.domains]
        first = self.session.record_connected(frame.session_id, domains)
        if first:
            self._print_capabilities(frame)
        else:
            self.compositor.log(
                "✓",
                f"Reconnected {self._paint(f'(session {frame.session_id})', DIM)}",
                style=GREEN,
            )
        if self.session.monitor:
            LOGGER.debug("Restoring monitor subscription after connect")
            self.supervisor.post(monitor_command(self.session, self.domain))

    def _print_capabilities(self, frame: ConnectedFrame) -> None:
        version = f" v{frame.bridge_version}" if frame.bridge_version else ""
        self.compositor.log("✓", f"Connected to bridge{version} (session {frame.session_id})", style=GREEN)
        names = ", ".join(domain.name or domain.id for domain in frame.domains) or "none"
        self.compositor.log("", self._paint(f"  Domains: {names}", DIM))
        if frame.mesh is not None:
            status = self._paint("available", GREEN) if frame.mesh.available else self._paint("unavailable", RED)
            llm = " with LLM" if frame.mesh.has_llm else ""
            self.compositor.log("", f"  Mesh: {status}{llm}, {len(frame.mesh.tools)} tool(s)")
        if frame.agent is not None:
            self._print_agent(frame.agent)

    def on_response(self, frame: ResponseFrame) -> None:
        if frame.text and CONNECTION_ECHO not in frame.text:
            sender = frame.sender or "bridge"
            self.compositor.log(f"← {sender}", frame.text, style=CYAN)
        if frame.is_complete:
            self.session.pending_request = False

    def on_agent_progress(self, frame: AgentProgressFrame) -> None:
        if frame.message:
            self.compositor.log("⚡", self._paint(frame.message, DIM), style=YELLOW)

    def on_send(self, frame: SendFrame) -> None:
        if frame.text:
            self.compositor.log("🤖", frame.text, style=GREEN)
        self.session.pending_request = False

    def on_error(self, frame: ErrorFrame) -> None:
        message = frame.message or frame.code or "Unknown error"
        if frame.message and frame.code:
            message = f"{frame.message} {self._paint(f'[{frame.code}]', DIM)}"
        self.compositor.log("❌", message, style=RED)
        self.session.pending_request = False

    def on_pong(self, frame: PongFrame) -> None:
        LOGGER.debug("Keepalive acknowledged id=%s", frame.id)

    def on_agent_info(self, frame: AgentInfoFrame) -> None:
        self._print_agent(frame.descriptor())

    def _print_agent(self, agent: AgentDescriptor) -> None:
        count = len(agent.tools)
        self.compositor.log(
            "🧩",
            f"{agent.display_name}: {count} tool(s) {self._paint(f'({summarize_tools(agent)})', DIM)}",
            style=MAGENTA,
        )

    def on_unknown(self, frame: BridgeFrame) -> None:
        data = frame.data if isinstance(frame, UnknownFrame) else frame.model_dump(by_alias=True, exclude_none=True)
        body = json.dumps(data, default=str)
        if len(body) > MONITOR_PREVIEW_CHARS:
            body = body[:MONITOR_PREVIEW_CHARS] + "…"
        self.compositor.log(f"[{frame.type}]", self._paint(body, GRAY), style=BLUE)

    def on_malformed(self, raw: RawFrame, exc: FrameDecodeError) -> None:
        self.compositor.log("⚠", f"Malformed frame dropped: {exc}", style=YELLOW)

    # Supervisor notices

    def on_connection_lost(self, exc: BaseException, was_open: bool) -> None:
        if was_open:
            self.compositor.log("⚠", f"Disconnected from bridge: {exc}", style=YELLOW)
        self.session.pending_request = False

    def on_retry_scheduled(self, attempt: int, delay_ms: float) -> None:
        self.compositor.log(
            "⟳",
            self._paint(f"Reconnecting in {delay_ms / 1000:.1f}s (attempt {attempt})", DIM),
            style=YELLOW,
        )

