from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class BridgeFrame(BaseModel):
    """Base for frames pushed by the bridge; unknown fields are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class DomainInfo(BridgeFrame):
    id: str
    name: Optional[str] = None


class MeshStatus(BridgeFrame):
    available: bool = False
    tools: List[str] = Field(default_factory=list)
    has_llm: bool = Field(default=False, alias="hasLLM")


class ToolInfo(BridgeFrame):
    name: str
    description: Optional[str] = None


class AgentDescriptor(BridgeFrame):
    """Capability/tool manifest of the agent behind the bridge."""

    title: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    tools: List[ToolInfo] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.title or self.name or "agent"


class ConnectedFrame(BridgeFrame):
    type: Literal["connected"] = "connected"
    session_id: str = Field(alias="sessionId")
    bridge_version: Optional[str] = Field(default=None, alias="bridgeVersion")
    domain: Optional[str] = None
    mesh: Optional[MeshStatus] = None
    domains: List[DomainInfo] = Field(default_factory=list)
    agent: Optional[AgentDescriptor] = None


class ResponseFrame(BridgeFrame):
    type: Literal["response"] = "response"
    id: Optional[str] = None
    text: str = ""
    is_complete: bool = Field(default=True, alias="isComplete")
    sender: Optional[str] = None


class SendFrame(BridgeFrame):
    """Final reply produced by the agent for a chat."""

    type: Literal["send"] = "send"
    id: Optional[str] = None
    chat_id: Optional[str] = Field(default=None, alias="chatId")
    text: str = ""


class AgentProgressFrame(BridgeFrame):
    type: Literal["agent_progress"] = "agent_progress"
    id: Optional[str] = None
    message: str = ""


class ErrorFrame(BridgeFrame):
    type: Literal["error"] = "error"
    id: Optional[str] = None
    code: Optional[str] = None
    message: Optional[str] = None


class PongFrame(BridgeFrame):
    type: Literal["pong"] = "pong"
    id: Optional[str] = None


class AgentInfoFrame(BridgeFrame):
    """Agent manifest, may arrive at any time after ``connected``."""

    type: Literal["agent_info"] = "agent_info"
    agent: Optional[AgentDescriptor] = None
    title: Optional[str] = None
    tools: List[ToolInfo] = Field(default_factory=list)

    def descriptor(self) -> AgentDescriptor:
        if self.agent is not None:
            if not self.agent.tools and self.tools:
                return self.agent.model_copy(update={"tools": list(self.tools)})
            return self.agent
        return AgentDescriptor(title=self.title, tools=list(self.tools))


class UnknownFrame(BridgeFrame):
    """Any well-formed frame whose tag has no dedicated model."""

    type: str
    data: Dict[str, Any] = Field(default_factory=dict)
