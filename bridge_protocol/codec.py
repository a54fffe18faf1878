"""Helpers for encoding client frames and decoding bridge frames."""

from __future__ import annotations

import json
import time
from itertools import count
from typing import Any, Dict, Optional, Type, Union

from pydantic import BaseModel, ValidationError

from bridge_protocol.models import (
    AgentInfoFrame,
    AgentProgressFrame,
    BridgeFrame,
    ConnectedFrame,
    ErrorFrame,
    PongFrame,
    ResponseFrame,
    SendFrame,
    UnknownFrame,
)

Payload = Union[Dict[str, Any], BaseModel]
RawFrame = Union[str, bytes, bytearray]

INBOUND_FRAME_TYPES: Dict[str, Type[BridgeFrame]] = {
    "connected": ConnectedFrame,
    "response": ResponseFrame,
    "agent_progress": AgentProgressFrame,
    "send": SendFrame,
    "error": ErrorFrame,
    "pong": PongFrame,
    "agent_info": AgentInfoFrame,
}

_frame_counter = count(1)


class FrameDecodeError(ValueError):
    """Raised when an inbound payload cannot be decoded into a frame."""

    def __init__(self, message: str, *, raw: RawFrame | None = None) -> None:
        super().__init__(message)
        self.raw = raw


def _payload_dict(payload: Payload) -> Dict[str, Any]:
    if isinstance(payload, BaseModel):
        return payload.model_dump(exclude_none=True, by_alias=True)
    return payload


def encode_frame(frame: Payload) -> str:
    """Serialise a frame model (or plain dict) into its JSON wire form."""

    return json.dumps(_payload_dict(frame), separators=(",", ":"))


def next_frame_id(prefix: str) -> str:
    """Return a process-unique id such as ``msg-1718000000000-3``."""

    return f"{prefix}-{int(time.time() * 1000)}-{next(_frame_counter)}"


def epoch_millis() -> int:
    return int(time.time() * 1000)


def _load_object(raw: RawFrame) -> Dict[str, Any]:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FrameDecodeError("frame is not valid UTF-8", raw=raw) from exc
    try:
        data = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as exc:
        raise FrameDecodeError(f"frame is not valid JSON: {exc}", raw=raw) from exc
    if not isinstance(data, dict):
        raise FrameDecodeError("frame must be a JSON object", raw=raw)
    tag = data.get("type")
    if not isinstance(tag, str) or not tag:
        raise FrameDecodeError("frame has no 'type' tag", raw=raw)
    return data


def parse_frame(raw: RawFrame) -> BridgeFrame:
    """Decode one inbound payload into the model registered for its tag.

    Tags without a registered model decode to :class:`UnknownFrame` carrying the
    original object, so callers can still surface them diagnostically.
    """

    data = _load_object(raw)
    tag = data["type"]
    model = INBOUND_FRAME_TYPES.get(tag)
    if model is None:
        return UnknownFrame(type=tag, data=data)
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise FrameDecodeError(f"invalid '{tag}' frame: {exc.error_count()} field error(s)", raw=raw) from exc


def peek_session_id(raw: RawFrame) -> Optional[str]:
    """Best-effort read of ``sessionId`` without full validation."""

    try:
        data = _load_object(raw)
    except FrameDecodeError:
        return None
    session_id = data.get("sessionId")
    return session_id if isinstance(session_id, str) else None
