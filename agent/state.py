"""
Turn state machine.

The coordinator owns the one TurnState value and the human interaction the
current turn is suspended on, if any.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "Please wait, I'm currently busy..."


class TurnState(Enum):
    IDLE = "idle"
    THINKING = "thinking"
    WAITING_CONFIRMATION = "waiting_confirmation"
    WAITING_PLAN_APPROVAL = "waiting_plan_approval"


class InvalidTransitionError(Exception):
    """Raised when a transition outside the table is requested"""
    pass


_TRANSITIONS: Dict[TurnState, FrozenSet[TurnState]] = {
    TurnState.IDLE: frozenset({TurnState.THINKING}),
    TurnState.THINKING: frozenset({
        TurnState.THINKING,  # a tool result immediately starts the next turn
        TurnState.WAITING_PLAN_APPROVAL,
        TurnState.WAITING_CONFIRMATION,
        TurnState.IDLE,
    }),
    TurnState.WAITING_PLAN_APPROVAL: frozenset({
        TurnState.THINKING,
        TurnState.IDLE,
    }),
    TurnState.WAITING_CONFIRMATION: frozenset({
        TurnState.THINKING,
        TurnState.IDLE,
    }),
}


class InteractionKind(Enum):
    CONFIRM = "confirm"
    DIFF_REVIEW = "diff_review"
    PLAN_APPROVAL = "plan_approval"


@dataclass
class PendingInteraction:
    """A human decision a turn is suspended on."""
    kind: InteractionKind
    title: str
    text: str
    future: "asyncio.Future[Any]"


class TurnStateMachine:
    """Single owner of the turn state."""

    def __init__(self):
        self._state = TurnState.IDLE
        self.pending: Optional[PendingInteraction] = None

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def is_idle(self) -> bool:
        return self._state is TurnState.IDLE

    def accepts_input(self) -> bool:
        """Free-form input is accepted only while idle."""
        return self._state is TurnState.IDLE

    def can_transition(self, target: TurnState) -> bool:
        return target in _TRANSITIONS[self._state]

    def transition(self, target: TurnState) -> TurnState:
        if not self.can_transition(target):
            raise InvalidTransitionError(f"{self._state.name} -> {target.name}")
        if target is not self._state:
            logger.debug(f"Turn state {self._state.name} -> {target.name}")
        self._state = target
        return target

    def force_idle(self, reason: str = "") -> None:
        """Return to IDLE from any state. Used on faults."""
        if self._state is not TurnState.IDLE:
            logger.warning(f"Forcing IDLE from {self._state.name}{': ' + reason if reason else ''}")
        self._state = TurnState.IDLE
        self.pending = None

    async def suspend(self, state: TurnState, kind: InteractionKind, title: str, text: str,
                      future: "asyncio.Future[Any]") -> Any:
        """Enter a waiting state and wait for the human to resolve future."""
        self.transition(state)
        self.pending = PendingInteraction(kind=kind, title=title, text=text, future=future)
        try:
            return await future
        finally:
            self.pending = None
