from bridge_protocol import AgentDescriptor, AgentInfoFrame, ConnectFrame


def test_connect_frame_defaults():
    frame = ConnectFrame(client="mesh-bridge-cli", version="0.1.0", domain="cli")

    assert frame.type == "connect"
    assert frame.capabilities == []


def test_agent_info_prefers_nested_agent():
    frame = AgentInfoFrame.model_validate(
        {"type": "agent_info", "agent": {"name": "planner"}, "tools": [{"name": "search"}]}
    )

    descriptor = frame.descriptor()
    assert descriptor.display_name == "planner"
    assert [tool.name for tool in descriptor.tools] == ["search"]


def test_agent_info_flat_shape():
    frame = AgentInfoFrame.model_validate({"type": "agent_info", "title": "Helper"})

    assert frame.descriptor().display_name == "Helper"


def test_descriptor_display_name_fallback():
    assert AgentDescriptor().display_name == "agent"
