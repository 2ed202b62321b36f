"""
Conversation history: a bounded, append-only list of user, agent and tool-result messages.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional

from .events import ToolRequest

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 200

USER = "user"
AGENT = "agent"
TOOL = "tool"


@dataclass
class Message:
    role: str
    text: str = ""
    tool_requests: List[ToolRequest] = field(default_factory=list)
    # Set on tool-result messages
    tool_request_id: Optional[str] = None
    tool_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(
            role=data.get("role", USER),
            text=data.get("text", ""),
            tool_requests=[ToolRequest(**r) for r in data.get("tool_requests") or []],
            tool_request_id=data.get("tool_request_id"),
            tool_name=data.get("tool_name"),
        )


class ConversationHistory:
    """Keeps at most ``limit`` messages; the oldest are evicted first."""

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("history limit must be at least 1")
        self.limit = limit
        self._messages: List[Message] = []

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def messages(self) -> List[Message]:
        return list(self._messages)

    @property
    def last(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def append(self, message: Message) -> Message:
        self._messages.append(message)
        overflow = len(self._messages) - self.limit
        if overflow > 0:
            del self._messages[:overflow]
            logger.debug(f"Evicted {overflow} message(s) from history")
        return message

    def add_user(self, text: str) -> Message:
        return self.append(Message(role=USER, text=text))

    def add_agent(self, text: str, tool_requests: Optional[List[ToolRequest]] = None) -> Message:
        return self.append(Message(role=AGENT, text=text, tool_requests=list(tool_requests or [])))

    def add_tool_result(self, request: ToolRequest, result: str) -> Message:
        return self.append(Message(
            role=TOOL, text=result, tool_request_id=request.id, tool_name=request.name,
        ))

    def clear(self) -> None:
        self._messages = []

    def to_list(self) -> List[Dict[str, Any]]:
        return [m.to_dict() for m in self._messages]

    def load(self, data: List[Dict[str, Any]]) -> None:
        self._messages = []
        for item in data:
            self.append(Message.from_dict(item))
