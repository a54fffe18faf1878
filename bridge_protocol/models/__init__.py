from .inbound import (
    AgentDescriptor,
    AgentInfoFrame,
    AgentProgressFrame,
    BridgeFrame,
    ConnectedFrame,
    DomainInfo,
    ErrorFrame,
    MeshStatus,
    PongFrame,
    ResponseFrame,
    SendFrame,
    ToolInfo,
    UnknownFrame,
)
from .outbound import ClientFrame, CommandFrame, ConnectFrame, MessageFrame, PingFrame

__all__ = [
    "AgentDescriptor",
    "AgentInfoFrame",
    "AgentProgressFrame",
    "BridgeFrame",
    "ConnectedFrame",
    "DomainInfo",
    "ErrorFrame",
    "MeshStatus",
    "PongFrame",
    "ResponseFrame",
    "SendFrame",
    "ToolInfo",
    "UnknownFrame",
    "ClientFrame",
    "CommandFrame",
    "ConnectFrame",
    "MessageFrame",
    "PingFrame",
]
