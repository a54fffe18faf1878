import asyncio
import json

import pytest

from bridge_cli.dispatch import FrameDispatcher
from bridge_protocol import ConnectedFrame, ResponseFrame, UnknownFrame


def _response(text: str) -> str:
    return json.dumps({"type": "response", "text": text})


@pytest.mark.asyncio
async def test_frames_are_handled_in_delivery_order():
    dispatcher = FrameDispatcher()
    seen = []
    delays = {"A": 0.03, "B": 0.0, "C": 0.01}

    async def handler(frame: ResponseFrame) -> None:
        await asyncio.sleep(delays[frame.text])
        seen.append(frame.text)

    dispatcher.register_handler("response", handler)
    dispatcher.start()
    try:
        for text in ("A", "B", "C"):
            dispatcher.feed(_response(text))
        await asyncio.wait_for(dispatcher.join(), timeout=1.0)
    finally:
        await dispatcher.stop()

    assert seen == ["A", "B", "C"]


@pytest.mark.asyncio
async def test_malformed_frame_is_dropped_and_dispatch_continues():
    malformed = []
    dispatcher = FrameDispatcher(on_malformed=lambda raw, exc: malformed.append(raw))
    seen = []
    dispatcher.register_handler("response", lambda frame: seen.append(frame.text))
    dispatcher.start()
    try:
        dispatcher.feed("{not json")
        dispatcher.feed(json.dumps({"text": "no tag"}))
        dispatcher.feed(_response("after"))
        await asyncio.wait_for(dispatcher.join(), timeout=1.0)
    finally:
        await dispatcher.stop()

    assert malformed == ["{not json", json.dumps({"text": "no tag"})]
    assert seen == ["after"]


@pytest.mark.asyncio
async def test_unknown_frames_surface_only_in_monitor_mode():
    monitor = {"on": False}
    unknown = []
    dispatcher = FrameDispatcher(on_unknown=unknown.append, monitor=lambda: monitor["on"])
    payload = json.dumps({"type": "tool_result", "tool": "search"})

    frame = await dispatcher.dispatch(payload)
    assert isinstance(frame, UnknownFrame)
    assert unknown == []

    monitor["on"] = True
    await dispatcher.dispatch(payload)
    assert len(unknown) == 1
    assert unknown[0].type == "tool_result"
    assert unknown[0].data["tool"] == "search"


@pytest.mark.asyncio
async def test_handler_error_does_not_stop_other_handlers(caplog):
    dispatcher = FrameDispatcher()
    seen = []

    def broken(frame: ConnectedFrame) -> None:
        raise RuntimeError("boom")

    dispatcher.register_handler("connected", broken)
    dispatcher.register_handler("connected", lambda frame: seen.append(frame.session_id))

    await dispatcher.dispatch(json.dumps({"type": "connected", "sessionId": "s1"}))

    assert seen == ["s1"]
    assert "Handler error for connected" in caplog.text


@pytest.mark.asyncio
async def test_unregister_handler():
    dispatcher = FrameDispatcher()
    seen = []
    handler = seen.append
    dispatcher.register_handler("response", handler)
    dispatcher.unregister_handler("response", handler)

    await dispatcher.dispatch(_response("ignored"))

    assert seen == []


@pytest.mark.asyncio
async def test_stop_discards_queued_frames():
    dispatcher = FrameDispatcher()
    dispatcher.feed(_response("never"))

    await dispatcher.stop()

    await asyncio.wait_for(dispatcher.join(), timeout=0.1)
    assert not dispatcher.running
