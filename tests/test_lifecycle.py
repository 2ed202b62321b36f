"""Tests for the tool lifecycle manager: diff review, execution and validation gating."""

import json

import pytest

from agent.events import ToolRequest
from agent.state import TurnState, TurnStateMachine
from agent.surface import DiffReviewOutcome
from tools._common import ToolResult
from tools.dispatch import bind_capabilities
from tools.lifecycle import (
    DIFF_REJECTED_RESULT,
    VALIDATION_DECLINED_NOTE,
    VALIDATION_RESULT_SEPARATOR,
    ToolLifecycleManager,
)


def creation_diff(path, line):
    return f"--- /dev/null\n+++ b/{path}\n@@ -0,0 +1 @@\n+{line}\n"


@pytest.fixture
def make_manager(env):
    def _make(surface):
        state = TurnStateMachine()
        state.transition(TurnState.THINKING)
        return ToolLifecycleManager(state, surface, env, lambda: bind_capabilities(env))
    return _make


def diff_request(diff):
    return ToolRequest.from_input("apply_diff", {"diff": diff})


class TestDiffReview:

    @pytest.mark.asyncio
    async def test_edited_diff_is_what_gets_applied(self, make_manager, make_surface, project):
        edited = creation_diff("edited.txt", "from the user")
        surface = make_surface(reviews=[DiffReviewOutcome.accept_edited(edited)])
        manager = make_manager(surface)

        result = await manager.handle(diff_request(creation_diff("original.txt", "from the agent")))

        assert result.startswith("Diff applied successfully to 1 file(s): edited.txt")
        assert (project / "edited.txt").read_text() == "from the user\n"
        assert not (project / "original.txt").exists()
        assert surface.prompts[0][2] == creation_diff("original.txt", "from the agent")

    @pytest.mark.asyncio
    async def test_rejected_diff_is_not_applied(self, make_manager, surface, project):
        manager = make_manager(surface)

        result = await manager.handle(diff_request(creation_diff("nope.txt", "x")))

        assert result == DIFF_REJECTED_RESULT
        assert not (project / "nope.txt").exists()
        assert manager.state.state is TurnState.THINKING

    @pytest.mark.asyncio
    async def test_failed_diff_does_not_offer_validation(self, make_manager, make_surface, app_settings):
        app_settings.validation_command = "true"
        surface = make_surface(reviews=[DiffReviewOutcome.accept()])
        manager = make_manager(surface)

        result = await manager.handle(diff_request("--- a/hello.py\n+++ b/hello.py\n@@ -1 +1 @@\n-a\n+b\n"))

        assert result.startswith("Error: Cannot apply diff to an existing file not in context")
        assert surface.titles() == ["Review Diff"]

    @pytest.mark.asyncio
    async def test_camel_case_tool_name_is_treated_as_diff(self, make_manager, surface):
        manager = make_manager(surface)
        request = ToolRequest.from_input("applyDiff", {"diff": creation_diff("a.txt", "x")})

        assert await manager.handle(request) == DIFF_REJECTED_RESULT
        assert surface.titles() == ["Review Diff"]


class TestValidationGating:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("outcome,prompted", [
        (ToolResult(success=True, output="Patched 1 file."), True),
        (ToolResult(success=False, output="", error="Diff applied nowhere: disk is read-only"), False),
    ])
    async def test_gating_follows_tool_success_not_wording(self, make_surface, env, app_settings, outcome, prompted):
        app_settings.validation_command = "true"
        surface = make_surface(reviews=[DiffReviewOutcome.accept()], confirms=[False])
        state = TurnStateMachine()
        state.transition(TurnState.THINKING)
        manager = ToolLifecycleManager(state, surface, env, lambda: {"apply_diff": lambda diff: outcome})

        result = await manager.handle(diff_request(creation_diff("a.txt", "x")))

        assert ("Run Validation?" in surface.titles()) is prompted
        assert result.startswith(outcome.text)

    @pytest.mark.asyncio
    async def test_no_prompt_when_command_unset(self, make_manager, make_surface):
        surface = make_surface(reviews=[DiffReviewOutcome.accept()])
        manager = make_manager(surface)

        result = await manager.handle(diff_request(creation_diff("a.txt", "x")))

        assert result.startswith("Diff applied")
        assert VALIDATION_RESULT_SEPARATOR not in result
        assert surface.titles() == ["Review Diff"]

    @pytest.mark.asyncio
    async def test_approved_validation_result_is_appended(self, make_manager, make_surface, app_settings):
        app_settings.validation_command = "echo validated"
        surface = make_surface(reviews=[DiffReviewOutcome.accept()], confirms=[True])
        manager = make_manager(surface)

        result = await manager.handle(diff_request(creation_diff("a.txt", "x")))

        applied, payload = result.split(VALIDATION_RESULT_SEPARATOR)
        assert applied.startswith("Diff applied")
        data = json.loads(payload)
        assert data == {"exitCode": 0, "success": True, "output": "validated\n", "error": None}
        kind, title, text = surface.prompts[1]
        assert title == "Run Validation?"
        assert text == "Agent applied a diff. Run configured validation command (`echo validated`)?"

    @pytest.mark.asyncio
    async def test_declined_validation_is_noted_and_remembered(self, make_manager, make_surface, app_settings, env):
        app_settings.validation_command = "echo validated"
        surface = make_surface(
            reviews=[DiffReviewOutcome.accept(), DiffReviewOutcome.accept()],
            confirms=[False, True],
        )
        manager = make_manager(surface)

        first = await manager.handle(diff_request(creation_diff("a.txt", "x")))
        second = await manager.handle(diff_request(creation_diff("b.txt", "y")))

        assert first.endswith(VALIDATION_DECLINED_NOTE)
        assert VALIDATION_RESULT_SEPARATOR in second
        assert surface.prompts[3][2].endswith("(Last time you chose: no)")
        assert env.context.last_validation_choice is True

    @pytest.mark.asyncio
    async def test_failing_validation_reports_exit_code(self, make_manager, make_surface, app_settings):
        app_settings.validation_command = "echo broken; exit 3"
        surface = make_surface(reviews=[DiffReviewOutcome.accept()], confirms=[True])
        manager = make_manager(surface)

        result = await manager.handle(diff_request(creation_diff("a.txt", "x")))

        data = json.loads(result.split(VALIDATION_RESULT_SEPARATOR)[1])
        assert data["exitCode"] == 3
        assert data["success"] is False
        assert data["output"] == "broken\n"
        assert data["error"] == "Command exited with code 3"


class TestDirectKinds:

    @pytest.mark.asyncio
    async def test_run_validation_without_command(self, make_manager, surface):
        manager = make_manager(surface)

        result = await manager.handle(ToolRequest("run_validation_command", "{}"))

        assert json.loads(result) == {
            "exitCode": -1, "success": False, "output": "", "error": "no command configured",
        }
        assert surface.prompts == []

    @pytest.mark.asyncio
    async def test_generic_tool_arguments_errors_become_text(self, make_manager, surface):
        manager = make_manager(surface)

        result = await manager.handle(ToolRequest("read_file", json.dumps({"wrong": "arg"})))

        assert result.startswith("[Tool Execution Error: read_file] Invalid arguments for read_file")

    @pytest.mark.asyncio
    async def test_undo_last_diff(self, make_manager, make_surface, project):
        surface = make_surface(reviews=[DiffReviewOutcome.accept()])
        manager = make_manager(surface)
        await manager.handle(diff_request(creation_diff("temp.txt", "x")))

        messages = manager.undo_last_diff()

        assert messages == ["Reverted (deleted) newly created file: temp.txt"]
        assert not (project / "temp.txt").exists()
