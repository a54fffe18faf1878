"""Interactive line input loop.

Reads one line at a time, finishes handling it, then reads the next. Lines
starting with ``/`` are local commands; everything else is sent to the bridge
as a ``message`` frame while the connection is open and discarded otherwise.
Frames arriving while a line is being read are printed by the dispatcher
through the same compositor, above the prompt.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, List, Optional

from bridge_protocol import CommandFrame, MessageFrame, epoch_millis, next_frame_id

from bridge_cli.config import ClientSettings
from bridge_cli.console.compositor import OutputCompositor
from bridge_cli.console.input import LineSource
from bridge_cli.console.theme import BLUE, CYAN, DIM, GREEN, RED, YELLOW, help_text, paint
from bridge_cli.handlers import monitor_command
from bridge_cli.session import ChatSession

if TYPE_CHECKING:
    from bridge_cli.network.supervisor import ConnectionSupervisor

LOGGER = logging.getLogger(__name__)

COMMAND_PREFIX = "/"
NOT_CONNECTED = "Not connected to the bridge - message not sent"

Command = Callable[[List[str]], Awaitable[None]]


class LineInputLoop:
    """REPL over a :class:`LineSource`.

    Usage:
        loop = LineInputLoop(supervisor, session, compositor, source, settings)
        exit_code = await loop.run()
    """

    def __init__(
        self,
        supervisor: "ConnectionSupervisor",
        session: ChatSession,
        compositor: OutputCompositor,
        source: LineSource,
        settings: ClientSettings,
    ) -> None:
        self.supervisor = supervisor
        self.session = session
        self.compositor = compositor
        self.source = source
        self.settings = settings
        self.running = False
        self.commands: Dict[str, Command] = {
            "help": self._cmd_help,
            "h": self._cmd_help,
            "new": self._cmd_new,
            "n": self._cmd_new,
            "monitor": self._cmd_monitor,
            "m": self._cmd_monitor,
            "status": self._cmd_status,
            "s": self._cmd_status,
            "reconnect": self._cmd_reconnect,
            "r": self._cmd_reconnect,
            "quit": self._cmd_quit,
            "q": self._cmd_quit,
            "exit": self._cmd_quit,
        }

    def _paint(self, text: str, *styles: str) -> str:
        return paint(text, *styles, color=self.compositor.color)

    async def run(self) -> int:
        """Run until ``/quit`` or end of input; returns the process exit code."""

        self.running = True
        while self.running:
            line = await self._read_line()
            if line is None:
                break
            await self.handle_line(line)
        self.running = False
        self.compositor.block(self._paint("Goodbye!", DIM), reprompt=False)
        return 0

    async def _read_line(self) -> Optional[str]:
        while True:
            self.compositor.begin_prompt()
            try:
                return await self.source.read_line(self.compositor.prompt)
            except KeyboardInterrupt:
                self.compositor.end_prompt()
                self.compositor.block(self._paint("Use /quit to exit", DIM), reprompt=False)
            except EOFError:
                return None
            finally:
                self.compositor.end_prompt()

    async def handle_line(self, line: str) -> None:
        text = line.strip()
        if not text:
            return
        if text.startswith(COMMAND_PREFIX):
            await self._handle_command(text[len(COMMAND_PREFIX):])
            return
        await self.send_message(text)

    async def _handle_command(self, body: str) -> None:
        parts = body.split()
        if not parts:
            self.compositor.block(self._paint("Empty command. Type /help for commands.", YELLOW), reprompt=False)
            return
        name, args = parts[0].lower(), parts[1:]
        command = self.commands.get(name)
        if command is None:
            self.compositor.block(self._paint(f"Unknown command: /{name}", YELLOW), reprompt=False)
            return
        LOGGER.debug("Running command /%s args=%s", name, args)
        await command(args)

    async def send_message(self, text: str) -> bool:
        """Send one line as a message frame; drops it when not connected."""

        if not self.supervisor.is_open:
            self.compositor.log("✗", NOT_CONNECTED, style=RED, reprompt=False)
            return False
        frame = MessageFrame(
            id=next_frame_id("msg"),
            domain=self.settings.domain,
            text=text,
            chat_id=self.session.thread_id,
            timestamp=epoch_millis(),
        )
        self.compositor.log("→", text, style=BLUE, reprompt=False)
        self.session.pending_request = True
        sent = await self.supervisor.send(frame)
        if not sent:
            self.session.pending_request = False
            self.compositor.log("✗", NOT_CONNECTED, style=RED, reprompt=False)
        return sent

    async def _forward_command(self, command: str, args: Optional[List[str]] = None) -> None:
        if not self.supervisor.is_open:
            return
        frame = CommandFrame(
            id=next_frame_id("cmd"),
            domain=self.settings.domain,
            command=command,
            args=args,
            chat_id=self.session.thread_id,
        )
        await self.supervisor.send(frame)

    # Commands

    async def _cmd_help(self, args: List[str]) -> None:
        self.compositor.block(help_text(monitor=self.session.monitor, color=self.compositor.color), reprompt=False)

    async def _cmd_new(self, args: List[str]) -> None:
        thread_id = self.session.new_thread()
        self.compositor.block(self._paint(f"Started new thread ({thread_id})", CYAN), reprompt=False)
        await self._forward_command("new_thread")

    async def _cmd_monitor(self, args: List[str]) -> None:
        enabled = self.session.toggle_monitor()
        if enabled:
            self.compositor.block(self._paint("Monitor mode ON - showing unrecognized frames", YELLOW), reprompt=False)
        else:
            self.compositor.block(self._paint("Monitor mode OFF", DIM), reprompt=False)
        if self.supervisor.is_open:
            await self.supervisor.send(monitor_command(self.session, self.settings.domain))

    async def _cmd_status(self, args: List[str]) -> None:
        supervisor = self.supervisor
        if supervisor.is_open:
            state = self._paint("connected ✓", GREEN)
        else:
            state = self._paint(supervisor.state.value, RED)
        lines = [
            self._paint("Status:", CYAN),
            f"  Server:     {supervisor.server_url}",
            f"  Connection: {state}",
            f"  Session:    {supervisor.session_id or self.session.session_id or '-'}",
            f"  Connected:  {self._connected_since()}",
            f"  Thread:     {self.session.thread_id}",
            f"  Attempts:   {supervisor.attempt_count}{' (retry pending)' if supervisor.retry_pending else ''}",
            f"  Monitor:    {'ON' if self.session.monitor else 'OFF'}",
            f"  Waiting:    {'yes' if self.session.pending_request else 'no'}",
        ]
        self.compositor.block("\n".join(lines), reprompt=False)

    def _connected_since(self) -> str:
        connected_at = self.session.connected_at
        if connected_at is None:
            return "never"
        return connected_at.astimezone().strftime("%Y-%m-%d %H:%M:%S")

    async def _cmd_reconnect(self, args: List[str]) -> None:
        self.compositor.block(self._paint("Reconnecting...", YELLOW), reprompt=False)
        self.supervisor.force_reconnect()

    async def _cmd_quit(self, args: List[str]) -> None:
        self.running = False

