"""Tests for SessionStateMachine state transitions."""

import pytest

from game_queue.domain.session.session_state_machine import SessionStateMachine
from game_queue.schemas import SessionState


class TestCanTransition:
    """Tests for SessionStateMachine.can_transition method."""

    def test_active_to_teams_active_valid(self):
        """Test ACTIVE -> TEAMS_ACTIVE is a valid transition (teams assigned)."""
        assert SessionStateMachine.can_transition(SessionState.ACTIVE, SessionState.TEAMS_ACTIVE) is True

    def test_active_to_ended_valid(self):
        assert SessionStateMachine.can_transition(SessionState.ACTIVE, SessionState.ENDED) is True

    def test_active_to_teams_ended_invalid(self):
        """Test ACTIVE -> TEAMS_ENDED is invalid (teams were never assigned)."""
        assert SessionStateMachine.can_transition(SessionState.ACTIVE, SessionState.TEAMS_ENDED) is False

    def test_teams_active_reassign_valid(self):
        """Test TEAMS_ACTIVE -> TEAMS_ACTIVE is valid (teams re-rolled)."""
        assert (
            SessionStateMachine.can_transition(SessionState.TEAMS_ACTIVE, SessionState.TEAMS_ACTIVE)
            is True
        )

    def test_teams_active_to_teams_ended_valid(self):
        assert (
            SessionStateMachine.can_transition(SessionState.TEAMS_ACTIVE, SessionState.TEAMS_ENDED)
            is True
        )

    def test_teams_active_back_to_active_invalid(self):
        """Test TEAMS_ACTIVE -> ACTIVE is invalid: a session never loses its teams."""
        assert SessionStateMachine.can_transition(SessionState.TEAMS_ACTIVE, SessionState.ACTIVE) is False

    @pytest.mark.parametrize("terminal", [SessionState.ENDED, SessionState.TEAMS_ENDED])
    @pytest.mark.parametrize("target", list(SessionState))
    def test_terminal_states_have_no_transitions(self, terminal, target):
        assert SessionStateMachine.can_transition(terminal, target) is False


class TestEndedStateFor:
    def test_active_ends_as_ended(self):
        assert SessionStateMachine.ended_state_for(SessionState.ACTIVE) == SessionState.ENDED

    def test_teams_active_ends_as_teams_ended(self):
        assert SessionStateMachine.ended_state_for(SessionState.TEAMS_ACTIVE) == SessionState.TEAMS_ENDED

    def test_terminal_states_stay(self):
        assert SessionStateMachine.ended_state_for(SessionState.ENDED) == SessionState.ENDED
        assert SessionStateMachine.ended_state_for(SessionState.TEAMS_ENDED) == SessionState.TEAMS_ENDED


class TestHelpers:
    def test_is_terminal(self):
        assert SessionStateMachine.is_terminal(SessionState.ENDED)
        assert SessionStateMachine.is_terminal(SessionState.TEAMS_ENDED)
        assert not SessionStateMachine.is_terminal(SessionState.ACTIVE)
        assert not SessionStateMachine.is_terminal(SessionState.TEAMS_ACTIVE)

    def test_valid_sources_of_teams_ended(self):
        assert SessionStateMachine.get_valid_sources(SessionState.TEAMS_ENDED) == {SessionState.TEAMS_ACTIVE}

    def test_valid_transitions_of_active(self):
        assert SessionStateMachine.get_valid_transitions(SessionState.ACTIVE) == {
            SessionState.TEAMS_ACTIVE,
            SessionState.ENDED,
        }
