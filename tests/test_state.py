"""Tests for the turn state machine."""

import asyncio

import pytest

from agent.state import InteractionKind, InvalidTransitionError, TurnState, TurnStateMachine


class TestTurnStateMachine:

    def test_starts_idle_and_accepts_input(self):
        sm = TurnStateMachine()
        assert sm.state is TurnState.IDLE
        assert sm.accepts_input()

    @pytest.mark.parametrize("state", [
        TurnState.THINKING,
        TurnState.WAITING_CONFIRMATION,
        TurnState.WAITING_PLAN_APPROVAL,
    ])
    def test_input_refused_when_not_idle(self, state):
        sm = TurnStateMachine()
        sm.transition(TurnState.THINKING)
        if state is not TurnState.THINKING:
            sm.transition(state)
        assert not sm.accepts_input()

    def test_idle_cannot_jump_to_waiting(self):
        sm = TurnStateMachine()
        with pytest.raises(InvalidTransitionError):
            sm.transition(TurnState.WAITING_CONFIRMATION)
        assert sm.state is TurnState.IDLE

    def test_thinking_to_thinking_is_allowed(self):
        sm = TurnStateMachine()
        sm.transition(TurnState.THINKING)
        sm.transition(TurnState.THINKING)
        assert sm.state is TurnState.THINKING

    def test_force_idle_clears_pending(self):
        sm = TurnStateMachine()
        sm.transition(TurnState.THINKING)
        sm.transition(TurnState.WAITING_CONFIRMATION)
        sm.force_idle("test")
        assert sm.state is TurnState.IDLE
        assert sm.pending is None

    @pytest.mark.asyncio
    async def test_suspend_records_pending_interaction(self):
        sm = TurnStateMachine()
        sm.transition(TurnState.THINKING)
        future = asyncio.get_running_loop().create_future()

        waiter = asyncio.ensure_future(sm.suspend(
            TurnState.WAITING_PLAN_APPROVAL, InteractionKind.PLAN_APPROVAL, "Approve Plan?", "1. x", future,
        ))
        await asyncio.sleep(0)

        assert sm.state is TurnState.WAITING_PLAN_APPROVAL
        assert sm.pending.kind is InteractionKind.PLAN_APPROVAL
        assert sm.pending.text == "1. x"

        future.set_result(True)
        assert await waiter is True
        assert sm.pending is None
