"""
Agent interaction service: drives turns from user input to a terminal answer.

A turn invokes the agent off the event loop, then either asks for plan approval,
hands the first tool request to the lifecycle manager, or ends. Tool results start
the next turn straight away.
"""

import asyncio
import inspect
import logging
from typing import Callable, List, Optional

from .events import AgentEvent, AgentResponse, ToolRequest
from .history import ConversationHistory
from .plan import extract_plan
from .state import BUSY_MESSAGE, InteractionKind, TurnState, TurnStateMachine
from .surface import InteractiveSurface

logger = logging.getLogger(__name__)

PLAN_APPROVED_NOTE = "Plan approved. Proceed."
PLAN_REJECTED_NOTE = "Plan rejected. Propose a new one."
PLAN_TITLE = "Approve Plan?"


class AgentInteractionService:
    """Owns the conversation history and the turn loop."""

    def __init__(
        self,
        state: TurnStateMachine,
        history: ConversationHistory,
        agent,
        lifecycle,
        surface: InteractiveSurface,
        save_session: Optional[Callable[[], None]] = None,
        self_update=None,
    ):
        self.state = state
        self.history = history
        self.agent = agent
        self.lifecycle = lifecycle
        self.surface = surface
        self.save_session = save_session
        self.self_update = self_update
        self.current_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def submit_input(self, text: str) -> bool:
        """Start a planning turn for free-form user input. False if busy."""
        if not self._accepting():
            return False
        self.history.add_user(text)
        self.process_turn(expect_plan=True)
        return True

    def invoke_tool(self, name: str, arguments: str = "") -> bool:
        """Run a tool on the user's behalf. The result is shown, not sent to the agent."""
        if not self._accepting():
            return False
        self.state.transition(TurnState.THINKING)
        self.current_task = asyncio.get_running_loop().create_task(
            self._run_direct(ToolRequest(name=name, arguments=arguments))
        )
        return True

    def process_turn(self, expect_plan: bool) -> asyncio.Task:
        """Start a turn in the background and return its task."""
        self.state.transition(TurnState.THINKING)
        self.current_task = asyncio.get_running_loop().create_task(self._run_turns(expect_plan))
        return self.current_task

    # ------------------------------------------------------------------
    # Turn loop
    # ------------------------------------------------------------------

    async def _run_turns(self, expect_plan: bool) -> None:
        next_turn: Optional[bool] = expect_plan
        try:
            while next_turn is not None:
                next_turn = await self._turn(next_turn)
        except Exception as e:
            logger.exception("Turn processing failed")
            self.surface.notify(AgentEvent("error", f"Turn failed: {e}"))
            self.state.force_idle(str(e))

    async def _turn(self, expect_plan: bool) -> Optional[bool]:
        """One agent call. Returns expect_plan for the next turn, or None when idle."""
        self.state.transition(TurnState.THINKING)
        try:
            response: AgentResponse = await asyncio.to_thread(self.agent.act, self.history.messages)
        except Exception as e:
            logger.exception("Agent invocation failed")
            message = f"[Error] Agent failed: {e}"
            self.history.add_agent(message)
            self.surface.notify(AgentEvent("error", message))
            self.state.force_idle("agent error")
            return None

        first = response.tool_requests[0] if response.tool_requests else None
        ignored = response.tool_requests[1:]
        if ignored:
            logger.warning(f"Agent sent {len(response.tool_requests)} tool calls; only {first.name} will run")
        self.history.add_agent(response.text, [first] if first else [])

        if expect_plan:
            return await self._request_plan_approval(response, first, ignored)

        if first is not None:
            if response.text.strip():
                self.surface.notify(AgentEvent("agent", response.text))
            return await self._dispatch(first, ignored)

        await self.finish_turn(response.text)
        return None

    async def _request_plan_approval(
        self, response: AgentResponse, first: Optional[ToolRequest], ignored: List[ToolRequest],
    ) -> Optional[bool]:
        plan = extract_plan(response.text)
        approved = await self.state.suspend(
            TurnState.WAITING_PLAN_APPROVAL, InteractionKind.PLAN_APPROVAL,
            PLAN_TITLE, plan, self.surface.confirm_plan(PLAN_TITLE, plan),
        )
        self.state.transition(TurnState.THINKING)
        if not approved:
            logger.info("Plan rejected")
            self.history.add_user(PLAN_REJECTED_NOTE)
            return True

        logger.info("Plan approved")
        self.history.add_user(PLAN_APPROVED_NOTE)
        if first is not None:
            return await self._dispatch(first, ignored)
        return False

    async def _dispatch(self, request: ToolRequest, ignored: List[ToolRequest]) -> bool:
        self.surface.notify(AgentEvent("tool_call", request.name, {"id": request.id, "arguments": request.arguments}))
        result = await self.lifecycle.handle(request)
        if ignored:
            names = ", ".join(r.name for r in ignored)
            result += f"\n[Note] Only one tool call is processed per message. Ignored: {names}"
            self.surface.notify(AgentEvent("info", f"Ignored extra tool calls: {names}"))
        self.finish_turn_with_tool_result(request, result)
        return False

    # ------------------------------------------------------------------
    # Turn endings
    # ------------------------------------------------------------------

    def finish_turn_with_tool_result(self, request: ToolRequest, result: str) -> None:
        """Record a tool result. The caller's loop starts the next turn."""
        self.history.add_tool_result(request, result)
        self.surface.notify(AgentEvent("tool_result", result, {"tool": request.name, "id": request.id}))

    async def finish_turn(self, message: str = "") -> None:
        """End the turn: show message, save the session, offer any staged self-update, go idle.

        The turn is not idle until the self-update confirmation and its apply step are done.
        """
        if message and message.strip():
            self.surface.notify(AgentEvent("agent", message))
        self._save()
        if self.self_update is not None:
            outcome = self.self_update.check_and_trigger_confirmation(wait=self._await_confirmation)
            if inspect.isawaitable(outcome):
                await outcome
        self.state.transition(TurnState.IDLE)

    async def _await_confirmation(self, title: str, text: str, future: "asyncio.Future[bool]") -> bool:
        approved = await self.state.suspend(
            TurnState.WAITING_CONFIRMATION, InteractionKind.CONFIRM, title, text, future,
        )
        self.state.transition(TurnState.THINKING)
        return approved

    async def _run_direct(self, request: ToolRequest) -> None:
        try:
            result = await self.lifecycle.handle(request)
        except Exception as e:
            logger.exception(f"Direct tool invocation failed: {request.name}")
            self.surface.notify(AgentEvent("error", f"{request.name} failed: {e}"))
            self.state.force_idle(str(e))
            return
        self.surface.notify(AgentEvent("tool_result", result, {"tool": request.name, "id": request.id}))
        self.state.transition(TurnState.IDLE)

    def _accepting(self) -> bool:
        if self.state.accepts_input():
            return True
        logger.info(f"Input rejected while {self.state.state.name}")
        self.surface.notify(AgentEvent("busy", BUSY_MESSAGE))
        return False

    def _save(self) -> None:
        if self.save_session is None:
            return
        try:
            self.save_session()
        except OSError as e:
            logger.error(f"Failed to save session: {e}")
            self.surface.notify(AgentEvent("error", f"Failed to save session: {e}"))
