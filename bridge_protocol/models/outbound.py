from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ClientFrame(BaseModel):
    """Base for frames sent from the CLI to the bridge."""

    model_config = ConfigDict(populate_by_name=True)


class ConnectFrame(ClientFrame):
    """First frame on every transport, announcing the client."""

    type: Literal["connect"] = "connect"
    client: str
    version: str
    domain: str
    url: Optional[str] = None
    capabilities: List[str] = Field(default_factory=list)


class MessageFrame(ClientFrame):
    """One operator-submitted line."""

    type: Literal["message"] = "message"
    id: str
    domain: str
    text: str
    chat_id: str = Field(alias="chatId")
    timestamp: int
    metadata: Optional[Dict[str, Any]] = None


class CommandFrame(ClientFrame):
    """Local command forwarded to the bridge (``new_thread``, ``monitor``)."""

    type: Literal["command"] = "command"
    id: str
    domain: Optional[str] = None
    command: str
    args: Optional[List[str]] = None
    chat_id: Optional[str] = Field(default=None, alias="chatId")


class PingFrame(ClientFrame):
    type: Literal["ping"] = "ping"
    id: str
