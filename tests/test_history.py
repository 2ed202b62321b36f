"""Tests for conversation history and its conversion to Bedrock messages."""

import pytest

from agent.core import to_bedrock_messages
from agent.events import ToolRequest
from agent.history import ConversationHistory


class TestConversationHistory:

    def test_oldest_messages_are_evicted(self):
        history = ConversationHistory(limit=3)
        for n in range(5):
            history.add_user(f"m{n}")
        assert [m.text for m in history.messages] == ["m2", "m3", "m4"]

    def test_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            ConversationHistory(limit=0)

    def test_messages_is_a_copy(self):
        history = ConversationHistory()
        history.add_user("a")
        history.messages.clear()
        assert len(history) == 1


class TestToBedrockMessages:

    def test_tool_round_trip(self):
        history = ConversationHistory()
        history.add_user("read it")
        request = ToolRequest.from_input("read_file", {"path": "a.py"}, id="call_1")
        history.add_agent("Reading a.py", [request])
        history.add_tool_result(request, "x = 1")

        messages = to_bedrock_messages(history.messages)

        assert messages == [
            {"role": "user", "content": [{"type": "text", "text": "read it"}]},
            {"role": "assistant", "content": [
                {"type": "text", "text": "Reading a.py"},
                {"type": "tool_use", "id": "call_1", "name": "read_file", "input": {"path": "a.py"}},
            ]},
            {"role": "user", "content": [{"type": "tool_result", "tool_use_id": "call_1", "content": "x = 1"}]},
        ]

    def test_unanswered_tool_use_is_not_sent(self):
        history = ConversationHistory()
        history.add_user("go")
        history.add_agent("plan", [ToolRequest.from_input("list_context_files", {})])

        messages = to_bedrock_messages(history.messages)

        assert messages[-1] == {"role": "assistant", "content": [{"type": "text", "text": "plan"}]}

    def test_consecutive_user_messages_are_merged(self):
        history = ConversationHistory()
        history.add_user("first")
        history.add_agent("plan")
        history.add_user("Plan approved. Proceed.")
        history.add_user("also this")

        messages = to_bedrock_messages(history.messages)

        assert [m["role"] for m in messages] == ["user", "assistant", "user"]
        assert len(messages[2]["content"]) == 2

    def test_leading_agent_messages_are_dropped(self):
        history = ConversationHistory(limit=2)
        history.add_user("evicted")
        history.add_agent("orphan")
        history.add_user("current")

        messages = to_bedrock_messages(history.messages)

        assert messages[0]["role"] == "user"
        assert messages[0]["content"][0]["text"] == "current"

    def test_tool_result_without_tool_use_becomes_text(self):
        history = ConversationHistory(limit=2)
        request = ToolRequest.from_input("read_file", {"path": "a.py"})
        history.add_agent("x", [request])
        history.add_tool_result(request, "content")
        history.add_user("next")

        messages = to_bedrock_messages(history.messages)

        assert messages == [{"role": "user", "content": [
            {"type": "text", "text": "[read_file result]\ncontent"},
            {"type": "text", "text": "next"},
        ]}]
