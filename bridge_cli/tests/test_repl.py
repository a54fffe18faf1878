import io

import pytest

from bridge_cli.config import ClientSettings
from bridge_cli.console.compositor import OutputCompositor
from bridge_cli.console.input import LineSource, StreamLineSource
from bridge_cli.console.repl import NOT_CONNECTED, LineInputLoop
from bridge_cli.network.state import SupervisorState
from bridge_cli.session import ChatSession
from bridge_protocol import CommandFrame, MessageFrame


class _ScriptedSource(LineSource):
    """Replays lines; exceptions in the script are raised instead of returned."""

    def __init__(self, *lines) -> None:
        self._lines = list(lines)
        self.prompts = 0

    async def read_line(self, prompt: str) -> str:
        self.prompts += 1
        if not self._lines:
            raise EOFError
        item = self._lines.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class _FakeSupervisor:
    def __init__(self, *, is_open: bool = True, accept: bool = True) -> None:
        self.is_open = is_open
        self.accept = accept
        self.sent = []
        self.reconnects = 0
        self.state = SupervisorState.OPEN if is_open else SupervisorState.RECONNECTING
        self.server_url = "ws://localhost:9999/"
        self.session_id = "s1" if is_open else None
        self.attempt_count = 0 if is_open else 3
        self.retry_pending = not is_open

    async def send(self, frame) -> bool:
        if not self.is_open:
            return False
        self.sent.append(frame)
        return self.accept

    def force_reconnect(self):
        self.reconnects += 1


def _loop(supervisor, *lines, session=None):
    stream = io.StringIO()
    compositor = OutputCompositor(stream, color=False, clock=lambda: "12:00:00")
    session = session or ChatSession()
    source = _ScriptedSource(*lines)
    loop = LineInputLoop(supervisor, session, compositor, source, ClientSettings())
    return loop, session, stream, source


@pytest.mark.asyncio
async def test_message_sent_with_thread_id_when_open():
    supervisor = _FakeSupervisor()
    loop, session, stream, _ = _loop(supervisor, "hello bridge")

    assert await loop.run() == 0

    assert len(supervisor.sent) == 1
    frame = supervisor.sent[0]
    assert isinstance(frame, MessageFrame)
    assert frame.text == "hello bridge"
    assert frame.chat_id == session.thread_id
    assert frame.domain == "cli"
    assert session.pending_request is True
    assert "→ hello bridge" in stream.getvalue()


@pytest.mark.asyncio
async def test_message_while_disconnected_gives_single_notice():
    supervisor = _FakeSupervisor(is_open=False)
    loop, session, stream, _ = _loop(supervisor, "hello")

    await loop.run()

    assert supervisor.sent == []
    assert stream.getvalue().count(NOT_CONNECTED) == 1
    assert session.pending_request is False


@pytest.mark.asyncio
async def test_failed_send_clears_pending():
    supervisor = _FakeSupervisor(accept=False)
    loop, session, stream, _ = _loop(supervisor, "hello")

    await loop.run()

    assert session.pending_request is False
    assert stream.getvalue().count(NOT_CONNECTED) == 1


@pytest.mark.asyncio
async def test_quit_stops_before_remaining_lines():
    supervisor = _FakeSupervisor()
    loop, _, stream, source = _loop(supervisor, "/quit", "never sent")

    assert await loop.run() == 0

    assert supervisor.sent == []
    assert source.prompts == 1
    assert "Goodbye!" in stream.getvalue()


@pytest.mark.asyncio
async def test_ctrl_c_prints_hint_and_keeps_reading():
    supervisor = _FakeSupervisor()
    loop, _, stream, source = _loop(supervisor, KeyboardInterrupt(), "/q")

    assert await loop.run() == 0

    assert "Use /quit to exit" in stream.getvalue()
    assert source.prompts == 2


@pytest.mark.asyncio
async def test_new_thread_changes_id_and_notifies_bridge():
    supervisor = _FakeSupervisor()
    session = ChatSession(thread_id="cli-1")
    loop, _, stream, _ = _loop(supervisor, "/n", session=session)

    await loop.run()

    assert session.thread_id != "cli-1"
    assert isinstance(supervisor.sent[0], CommandFrame)
    assert supervisor.sent[0].command == "new_thread"
    assert supervisor.sent[0].chat_id == session.thread_id
    assert "Started new thread" in stream.getvalue()


@pytest.mark.asyncio
async def test_new_thread_offline_is_local_only():
    supervisor = _FakeSupervisor(is_open=False)
    session = ChatSession(thread_id="cli-1")
    loop, _, _, _ = _loop(supervisor, "/new", session=session)

    await loop.run()

    assert session.thread_id != "cli-1"
    assert supervisor.sent == []


@pytest.mark.asyncio
async def test_monitor_toggle_sends_subscription():
    supervisor = _FakeSupervisor()
    loop, session, stream, _ = _loop(supervisor, "/monitor", "/m")

    await loop.run()

    assert session.monitor is False
    assert [frame.args for frame in supervisor.sent] == [["on"], ["off"]]
    output = stream.getvalue()
    assert "Monitor mode ON" in output
    assert "Monitor mode OFF" in output


@pytest.mark.asyncio
async def test_status_reports_connection_details():
    supervisor = _FakeSupervisor(is_open=False)
    loop, session, stream, _ = _loop(supervisor, "/status")

    await loop.run()

    output = stream.getvalue()
    assert "ws://localhost:9999/" in output
    assert "reconnecting" in output
    assert "3 (retry pending)" in output
    assert session.thread_id in output
    assert "Connected:  never" in output


@pytest.mark.asyncio
async def test_status_shows_when_session_connected():
    session = ChatSession()
    session.record_connected("s1", ["cli"])
    supervisor = _FakeSupervisor()
    loop, _, stream, _ = _loop(supervisor, "/status", session=session)

    await loop.run()

    stamp = session.connected_at.astimezone().strftime("%Y-%m-%d %H:%M:%S")
    assert f"Connected:  {stamp}" in stream.getvalue()


@pytest.mark.asyncio
async def test_reconnect_command_forces_reconnect():
    supervisor = _FakeSupervisor(is_open=False)
    loop, _, _, _ = _loop(supervisor, "/r")

    await loop.run()

    assert supervisor.reconnects == 1


@pytest.mark.asyncio
async def test_unknown_command_and_help():
    supervisor = _FakeSupervisor()
    loop, _, stream, _ = _loop(supervisor, "/bogus", "/help", "   ")

    await loop.run()

    output = stream.getvalue()
    assert "Unknown command: /bogus" in output
    assert "/reconnect" in output
    assert supervisor.sent == []


@pytest.mark.asyncio
async def test_stream_source_reads_until_eof():
    source = StreamLineSource(io.StringIO("first\r\nsecond\n"))

    assert await source.read_line("> ") == "first"
    assert await source.read_line("> ") == "second"
    with pytest.raises(EOFError):
        await source.read_line("> ")
