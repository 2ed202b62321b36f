"""Tests for the Bedrock-backed coding agent."""

import json
from unittest.mock import Mock

import pytest

from agent.core import CodingAgent
from agent.history import ConversationHistory
from bedrock_service import BedrockError, GenerationResult, ToolUseBlock
from tools.schemas import TOOL_DEFINITIONS


@pytest.fixture
def service():
    service = Mock()
    service.generate_response.return_value = GenerationResult(
        content="I'll read it first.",
        tool_uses=[ToolUseBlock(id="toolu_1", name="read_file", input={"path": "hello.py"})],
    )
    return service


def test_act_converts_tool_uses(service, env):
    history = ConversationHistory()
    history.add_user("make hello louder")

    response = CodingAgent(service, env, model_id="test-model").act(history.messages)

    assert response.text == "I'll read it first."
    assert len(response.tool_requests) == 1
    request = response.tool_requests[0]
    assert (request.id, request.name) == ("toolu_1", "read_file")
    assert json.loads(request.arguments) == {"path": "hello.py"}


def test_act_sends_tools_and_working_set(service, env):
    env.context.add_files(["hello.py"])
    history = ConversationHistory()
    history.add_user("hi")

    CodingAgent(service, env, model_id="test-model").act(history.messages)

    args, kwargs = service.generate_response.call_args
    assert args[0] == [{"role": "user", "content": [{"type": "text", "text": "hi"}]}]
    assert kwargs["model_id"] == "test-model"
    assert kwargs["tools"] is TOOL_DEFINITIONS
    assert "hello.py" in kwargs["system_prompt"]


def test_act_propagates_service_errors(service, env):
    service.generate_response.side_effect = BedrockError("throttled")
    history = ConversationHistory()
    history.add_user("hi")

    with pytest.raises(BedrockError):
        CodingAgent(service, env).act(history.messages)


def test_tools_cover_every_definition(service, env):
    names = {d["name"] for d in TOOL_DEFINITIONS}
    assert names == set(CodingAgent(service, env).tools())
