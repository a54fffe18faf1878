"""Wire protocol shared by the Mesh Bridge CLI and its tests."""

from .codec import (
    INBOUND_FRAME_TYPES,
    FrameDecodeError,
    encode_frame,
    epoch_millis,
    next_frame_id,
    parse_frame,
    peek_session_id,
)
from .models import (
    AgentDescriptor,
    AgentInfoFrame,
    AgentProgressFrame,
    BridgeFrame,
    ClientFrame,
    CommandFrame,
    ConnectedFrame,
    ConnectFrame,
    ErrorFrame,
    MessageFrame,
    PingFrame,
    PongFrame,
    ResponseFrame,
    SendFrame,
    UnknownFrame,
)

__all__ = [
    "INBOUND_FRAME_TYPES",
    "FrameDecodeError",
    "encode_frame",
    "epoch_millis",
    "next_frame_id",
    "parse_frame",
    "peek_session_id",
    "AgentDescriptor",
    "AgentInfoFrame",
    "AgentProgressFrame",
    "BridgeFrame",
    "ClientFrame",
    "CommandFrame",
    "ConnectedFrame",
    "ConnectFrame",
    "ErrorFrame",
    "MessageFrame",
    "PingFrame",
    "PongFrame",
    "ResponseFrame",
    "SendFrame",
    "UnknownFrame",
]
