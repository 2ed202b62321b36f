"""
Tool lifecycle: review, execution and post-apply validation of tool requests.

Diffs are shown to the user before they are applied. A diff that applies cleanly
can be followed by the configured validation command, again only with the
user's consent.
"""

import asyncio
import json
import logging
from typing import Callable, List

from agent.events import ToolRequest
from agent.state import TurnState, TurnStateMachine, InteractionKind
from agent.surface import InteractiveSurface, DiffReviewOutcome
from tools._common import ToolEnvironment, ToolResult
from tools.dispatch import (
    ApplyDiffTool, RunValidationTool, Capabilities, ToolExecutor, ToolExecutionError, classify_tool,
)
from tools.validation import run_validation_command

logger = logging.getLogger(__name__)

VALIDATION_RESULT_SEPARATOR = "\n---VALIDATION-COMMAND-RESULT---\n"
DIFF_REJECTED_RESULT = "User rejected the diff."
VALIDATION_DECLINED_NOTE = "\nUser chose not to run validation command."


def tool_error_text(tool_name: str, message: str) -> str:
    return f"[Tool Execution Error: {tool_name}] {message}"


class ToolLifecycleManager:
    """Runs one tool request through review, execution and optional validation."""

    def __init__(
        self,
        state: TurnStateMachine,
        surface: InteractiveSurface,
        env: ToolEnvironment,
        capabilities: Callable[[], Capabilities],
        executor: ToolExecutor = None,
    ):
        self.state = state
        self.surface = surface
        self.env = env
        self.capabilities = capabilities
        self.executor = executor or ToolExecutor()

    async def handle(self, request: ToolRequest) -> str:
        """Process request and return the tool result text for the conversation."""
        kind = classify_tool(request.name)
        logger.info(f"Handling tool request {request.id}: {kind.name}")

        if isinstance(kind, ApplyDiffTool):
            return await self._handle_diff(request)
        if isinstance(kind, RunValidationTool):
            return await self._run_validation()
        return await self.execute(request)

    async def execute(self, request: ToolRequest) -> str:
        """Invoke the named capability. Faults become error text, never exceptions."""
        return (await self._invoke(request)).text

    async def _invoke(self, request: ToolRequest) -> ToolResult:
        try:
            return await asyncio.to_thread(
                self.executor.execute, request.name, request.arguments, self.capabilities(),
            )
        except ToolExecutionError as e:
            logger.warning(f"Tool {e.tool_name} failed: {e}")
            return ToolResult(success=False, output="", error=tool_error_text(e.tool_name, str(e)))
        except Exception as e:
            logger.exception(f"Unexpected failure running {request.name}")
            return ToolResult(success=False, output="", error=tool_error_text(request.name, str(e)))

    def undo_last_diff(self) -> List[str]:
        return self.env.diff_engine.undo()

    async def _handle_diff(self, request: ToolRequest) -> str:
        diff_text = self._diff_text(request)
        outcome: DiffReviewOutcome = await self.state.suspend(
            TurnState.WAITING_CONFIRMATION, InteractionKind.DIFF_REVIEW,
            "Review Diff", diff_text, self.surface.diff_review(diff_text),
        )
        self.state.transition(TurnState.THINKING)

        if not outcome.accepted:
            logger.info(f"Diff {request.id} rejected by user")
            return DIFF_REJECTED_RESULT
        if outcome.edited and outcome.new_diff_text is not None:
            logger.info(f"Diff {request.id} accepted with edits")
            request = request.with_arguments(json.dumps({"diff": outcome.new_diff_text}))

        result = await self._invoke(request)
        if result.success and self.env.config.has_validation_command():
            return await self._offer_validation(result.text)
        return result.text

    async def _offer_validation(self, result: str) -> str:
        command = self.env.config.validation_command
        title = "Run Validation?"
        text = f"Agent applied a diff. Run configured validation command (`{command}`)?"
        previous = self.env.context.last_validation_choice
        if previous is not None:
            text += f"\n(Last time you chose: {'yes' if previous else 'no'})"

        approved = await self.state.suspend(
            TurnState.WAITING_CONFIRMATION, InteractionKind.CONFIRM,
            title, text, self.surface.confirm(title, text),
        )
        self.state.transition(TurnState.THINKING)
        self.env.context.last_validation_choice = bool(approved)

        if not approved:
            return result + VALIDATION_DECLINED_NOTE
        return result + VALIDATION_RESULT_SEPARATOR + await self._run_validation()

    async def _run_validation(self) -> str:
        validation = await asyncio.to_thread(
            run_validation_command,
            self.env.config.validation_command,
            self.env.backend,
            self.env.config.validation_timeout,
        )
        return validation.to_json()

    @staticmethod
    def _diff_text(request: ToolRequest) -> str:
        raw = request.arguments or ""
        try:
            value = json.loads(raw)
        except ValueError:
            return raw
        if isinstance(value, dict):
            return str(value.get("diff", ""))
        if isinstance(value, str):
            return value
        return raw
