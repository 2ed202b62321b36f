"""
CodingAgent - turns conversation history into one Bedrock call and maps the
reply back to text plus tool requests.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from bedrock_service import BedrockService, GenerationConfig
from config import model_config
from tools._common import ToolEnvironment
from tools.dispatch import Capabilities, bind_capabilities
from tools.schemas import TOOL_DEFINITIONS

from .events import AgentResponse, ToolRequest
from .history import Message, USER, AGENT, TOOL
from .prompts import format_system_prompt

logger = logging.getLogger(__name__)


def to_bedrock_messages(history: List[Message]) -> List[Dict[str, Any]]:
    """Convert history to Anthropic messages.

    tool_use blocks are only sent when their tool_result follows, consecutive
    messages from the same side are merged, and the list always starts with a user turn.
    """
    answered = {m.tool_request_id for m in history if m.role == TOOL and m.tool_request_id}
    emitted_tool_ids = set()
    out: List[Dict[str, Any]] = []

    def _push(role: str, blocks: List[Dict[str, Any]]) -> None:
        if not blocks:
            return
        if out and out[-1]["role"] == role:
            out[-1]["content"].extend(blocks)
        else:
            out.append({"role": role, "content": list(blocks)})

    for msg in history:
        if msg.role == USER:
            if msg.text.strip():
                _push("user", [{"type": "text", "text": msg.text}])
        elif msg.role == AGENT:
            blocks: List[Dict[str, Any]] = []
            if msg.text.strip():
                blocks.append({"type": "text", "text": msg.text})
            for req in msg.tool_requests:
                if req.id in answered:
                    blocks.append({
                        "type": "tool_use", "id": req.id, "name": req.name,
                        "input": _input_dict(req.arguments),
                    })
                    emitted_tool_ids.add(req.id)
            _push("assistant", blocks)
        elif msg.role == TOOL:
            if msg.tool_request_id in emitted_tool_ids:
                _push("user", [{
                    "type": "tool_result",
                    "tool_use_id": msg.tool_request_id,
                    "content": msg.text or "(no output)",
                }])
            elif msg.text.strip():
                # its tool_use was evicted or never sent
                _push("user", [{"type": "text", "text": f"[{msg.tool_name} result]\n{msg.text}"}])

    while out and out[0]["role"] != "user":
        out.pop(0)
    for message in out:
        if message["role"] == "user":
            # the API wants tool_result blocks ahead of any text in a user turn
            message["content"].sort(key=lambda b: b["type"] != "tool_result")
    return out


def _input_dict(arguments: str) -> Dict[str, Any]:
    try:
        value = json.loads(arguments) if arguments else {}
    except ValueError:
        return {"input": arguments}
    return value if isinstance(value, dict) else {"input": value}


class CodingAgent:
    """The agent collaborator: ``act(history)`` plus the tool set it may call."""

    def __init__(
        self,
        service: BedrockService,
        env: ToolEnvironment,
        model_id: Optional[str] = None,
    ):
        self.service = service
        self.env = env
        self.model_id = model_id or model_config.model_id
        self._capabilities = bind_capabilities(env)

    def tools(self) -> Capabilities:
        return self._capabilities

    def act(self, history: List[Message]) -> AgentResponse:
        """Blocking model call. Raises BedrockError on transport or model failure."""
        messages = to_bedrock_messages(history)
        system_prompt = format_system_prompt(self.env.backend.working_directory, self.env.context.working_set)
        result = self.service.generate_response(
            messages,
            system_prompt=system_prompt,
            model_id=self.model_id,
            config=GenerationConfig(max_tokens=model_config.max_tokens, temperature=model_config.temperature),
            tools=TOOL_DEFINITIONS,
        )
        requests = [
            ToolRequest(name=tu.name, arguments=json.dumps(tu.input), id=tu.id)
            for tu in result.tool_uses
        ]
        return AgentResponse(text=result.content, tool_requests=requests)
