"""
Agent package - turn handling for the coding agent.

- events: ToolRequest, AgentResponse and AgentEvent data types
- state: the turn state machine and pending human interactions
- history: bounded conversation history
- plan: plan extraction from agent text
- surface: the interactive surface the UI implements
- context: working set and last applied diff
- core: CodingAgent over Bedrock
- interaction: AgentInteractionService, the turn loop

core and interaction pull in the tools package and are imported directly.
"""

from .events import AgentEvent, AgentResponse, ToolRequest
from .state import TurnState, TurnStateMachine, InvalidTransitionError, InteractionKind, PendingInteraction
from .history import ConversationHistory, Message
from .plan import extract_plan
from .surface import InteractiveSurface, DiffReviewOutcome

__all__ = [
    "AgentEvent",
    "AgentResponse",
    "ToolRequest",
    "TurnState",
    "TurnStateMachine",
    "InvalidTransitionError",
    "InteractionKind",
    "PendingInteraction",
    "ConversationHistory",
    "Message",
    "extract_plan",
    "InteractiveSurface",
    "DiffReviewOutcome",
]
