"""Tests for the agent interaction service (turn loop, plan approval, dispatch)."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from agent.events import AgentResponse, ToolRequest
from agent.history import AGENT, TOOL, USER, ConversationHistory
from agent.interaction import PLAN_APPROVED_NOTE, PLAN_REJECTED_NOTE, AgentInteractionService
from agent.state import TurnState, TurnStateMachine
from agent.surface import DiffReviewOutcome
from tools.dispatch import bind_capabilities
from tools.lifecycle import ToolLifecycleManager
from updater.orchestrator import CONFIRM_TITLE, SelfUpdateOrchestrator, StagedUpdate

NEW_FILE_DIFF = """--- /dev/null
+++ b/notes.txt
@@ -0,0 +1 @@
+remember the milk
"""


@pytest.fixture
def build_service(env, make_agent):
    def _build(responses, surface, **kwargs):
        state = TurnStateMachine()
        lifecycle = ToolLifecycleManager(state, surface, env, lambda: bind_capabilities(env))
        return AgentInteractionService(
            state, ConversationHistory(), make_agent(responses), lifecycle, surface, **kwargs
        )
    return _build


async def run_input(service, text):
    assert service.submit_input(text)
    await service.current_task


class TestPlanApproval:

    @pytest.mark.asyncio
    async def test_approved_plan_without_tool_continues_then_idles(self, build_service, surface):
        service = build_service([AgentResponse("Here's my plan:\n1. look\n2. answer")], surface)

        await run_input(service, "explain the code")

        assert service.state.state is TurnState.IDLE
        assert [p[0] for p in surface.prompts] == ["plan"]
        assert surface.prompts[0][2] == "1. look\n2. answer"
        roles = [(m.role, m.text) for m in service.history.messages]
        assert roles == [
            (USER, "explain the code"),
            (AGENT, "Here's my plan:\n1. look\n2. answer"),
            (USER, PLAN_APPROVED_NOTE),
            (AGENT, "Done."),
        ]

    @pytest.mark.asyncio
    async def test_rejected_plan_asks_for_a_new_one(self, build_service, make_surface):
        surface = make_surface(plans=[False, True])
        service = build_service([AgentResponse("plan A"), AgentResponse("plan B")], surface)

        await run_input(service, "do it")

        assert len(service.agent.calls) == 3
        assert [p[2] for p in surface.prompts] == ["plan A", "plan B"]
        texts = [m.text for m in service.history.messages if m.role == USER]
        assert texts == ["do it", PLAN_REJECTED_NOTE, PLAN_APPROVED_NOTE]
        assert service.state.state is TurnState.IDLE

    @pytest.mark.asyncio
    async def test_waits_in_plan_approval_state(self, build_service, make_surface):
        class HoldingSurface(make_surface):
            def confirm_plan(self, title, plan_text):
                self.prompts.append(("plan", title, plan_text))
                self.held = asyncio.get_running_loop().create_future()
                return self.held

        surface = HoldingSurface()
        service = build_service([AgentResponse("1. a\n2. b")], surface)

        assert service.submit_input("go")
        for _ in range(50):
            if service.state.state is TurnState.WAITING_PLAN_APPROVAL:
                break
            await asyncio.sleep(0.01)

        assert service.state.state is TurnState.WAITING_PLAN_APPROVAL
        assert not service.submit_input("another request")
        assert "busy" in surface.event_types()

        surface.held.set_result(True)
        await service.current_task
        assert service.state.state is TurnState.IDLE


class TestToolDispatch:

    @pytest.mark.asyncio
    async def test_created_file_without_validation_command(self, build_service, make_surface, project):
        surface = make_surface(reviews=[DiffReviewOutcome.accept()])
        request = ToolRequest.from_input("apply_diff", {"diff": NEW_FILE_DIFF})
        service = build_service([AgentResponse("Here's my plan:\n1. write notes", [request])], surface)

        await run_input(service, "write a note")

        assert (project / "notes.txt").read_text() == "remember the milk\n"
        assert surface.titles() == ["Approve Plan?", "Review Diff"]
        tool_messages = [m for m in service.history.messages if m.role == TOOL]
        assert len(tool_messages) == 1
        assert tool_messages[0].text.startswith("Diff applied successfully to 1 file(s)")
        assert tool_messages[0].tool_request_id == request.id
        assert service.state.state is TurnState.IDLE

    @pytest.mark.asyncio
    async def test_only_first_tool_request_runs(self, build_service, surface, env):
        env.context.add_to_working_set("hello.py")
        first = ToolRequest.from_input("list_context_files", {})
        second = ToolRequest.from_input("read_file", {"path": "hello.py"})
        service = build_service([AgentResponse("1. list\n2. read", [first, second])], surface)

        await run_input(service, "look around")

        tool_messages = [m for m in service.history.messages if m.role == TOOL]
        assert len(tool_messages) == 1
        assert tool_messages[0].tool_name == "list_context_files"
        assert "hello.py" in tool_messages[0].text
        assert "Only one tool call is processed per message. Ignored: read_file" in tool_messages[0].text
        agent_message = [m for m in service.history.messages if m.role == AGENT][0]
        assert [r.id for r in agent_message.tool_requests] == [first.id]

    @pytest.mark.asyncio
    async def test_unknown_tool_becomes_error_result(self, build_service, surface):
        request = ToolRequest.from_input("format_disk", {})
        service = build_service([AgentResponse("1. a\n2. b", [request])], surface)

        await run_input(service, "go")

        tool_message = [m for m in service.history.messages if m.role == TOOL][0]
        assert tool_message.text == "[Tool Execution Error: format_disk] Unknown tool: format_disk"
        assert service.state.state is TurnState.IDLE


class TestTurnEndings:

    @pytest.mark.asyncio
    async def test_agent_failure_forces_idle(self, build_service, surface):
        service = build_service([RuntimeError("throttled")], surface)

        await run_input(service, "hi")

        assert service.state.state is TurnState.IDLE
        assert service.history.last.role == AGENT
        assert service.history.last.text == "[Error] Agent failed: throttled"
        assert "error" in surface.event_types()
        assert service.submit_input("again")
        await service.current_task

    @pytest.mark.asyncio
    async def test_finish_saves_session_and_offers_self_update(self, build_service, surface):
        save = Mock()
        orchestrator = Mock()
        orchestrator.check_and_trigger_confirmation = AsyncMock(return_value=False)
        service = build_service([AgentResponse("All done")], surface,
                                save_session=save, self_update=orchestrator)

        await run_input(service, "hi")

        save.assert_called_once()
        orchestrator.check_and_trigger_confirmation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_self_update_confirmation_holds_the_turn(self, build_service, make_surface):
        class HoldingSurface(make_surface):
            def confirm(self, title, text):
                self.prompts.append(("confirm", title, text))
                self.held = asyncio.get_running_loop().create_future()
                return self.held

        surface = HoldingSurface()
        orchestrator = SelfUpdateOrchestrator(surface, Mock(), Mock(), Mock(), Mock())
        orchestrator.stage_update(StagedUpdate("main.py", "--- a/main.py\n", "Tweak"))
        service = build_service([AgentResponse("Proposed a change to myself.")], surface,
                                self_update=orchestrator)

        assert service.submit_input("improve yourself")
        for _ in range(50):
            if service.state.state is TurnState.WAITING_CONFIRMATION:
                break
            await asyncio.sleep(0.01)

        assert service.state.state is TurnState.WAITING_CONFIRMATION
        assert service.state.pending.title == CONFIRM_TITLE
        assert not service.current_task.done()
        assert not service.submit_input("second request")
        # planning call plus the follow-up after approval
        assert len(service.agent.calls) == 2

        surface.held.set_result(False)
        await service.current_task
        assert service.state.state is TurnState.IDLE
        assert orchestrator.pending_update is None

    @pytest.mark.asyncio
    async def test_session_save_failure_is_reported_not_raised(self, build_service, surface):
        service = build_service([AgentResponse("ok")], surface, save_session=Mock(side_effect=OSError("disk full")))

        await run_input(service, "hi")

        assert service.state.state is TurnState.IDLE
        assert any("disk full" in e.content for e in surface.events)

    @pytest.mark.asyncio
    async def test_busy_input_is_refused(self, build_service, surface):
        service = build_service([], surface)
        service.state.transition(TurnState.THINKING)

        assert not service.submit_input("hello?")
        assert surface.event_types() == ["busy"]
        assert len(service.history) == 0


class TestDirectInvocation:

    @pytest.mark.asyncio
    async def test_result_is_shown_not_sent_to_agent(self, build_service, surface, env):
        env.context.add_to_working_set("hello.py")
        service = build_service([], surface)

        assert service.invoke_tool("list_context_files")
        await service.current_task

        assert service.agent.calls == []
        assert len(service.history) == 0
        results = [e for e in surface.events if e.type == "tool_result"]
        assert results[0].content == "hello.py"
        assert service.state.state is TurnState.IDLE
