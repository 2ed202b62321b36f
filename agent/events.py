"""
Agent response and tool request data types.
"""

import json
import uuid
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional


@dataclass
class ToolRequest:
    """A single tool call emitted by the agent (or typed by the user with !)."""
    name: str
    arguments: str = ""  # opaque; usually a JSON object
    id: str = field(default_factory=lambda: f"call_{uuid.uuid4().hex[:12]}")

    @classmethod
    def from_input(cls, name: str, inputs: Dict[str, Any], id: Optional[str] = None) -> "ToolRequest":
        kwargs = {"name": name, "arguments": json.dumps(inputs)}
        if id:
            kwargs["id"] = id
        return cls(**kwargs)

    def with_arguments(self, arguments: str) -> "ToolRequest":
        """Same request id and tool, different arguments (used for edited diffs)."""
        return ToolRequest(name=self.name, arguments=arguments, id=self.id)


@dataclass
class AgentResponse:
    """What the agent produced for one turn"""
    text: str = ""
    tool_requests: List[ToolRequest] = field(default_factory=list)

    @property
    def has_tool_request(self) -> bool:
        return bool(self.tool_requests)


@dataclass
class AgentEvent:
    """Notice emitted during turn processing for display"""
    type: str  # info, agent, tool_result, error, busy
    content: str = ""
    data: Optional[Dict[str, Any]] = None
