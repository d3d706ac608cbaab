"""Session state machine for managing state transitions."""

from game_queue.schemas import SessionState


class SessionStateMachine:
    """State machine for managing session state transitions.

    State flow with triggers:
    - ACTIVE (session started) -> TEAMS_ACTIVE (teams assigned) | ENDED (end, cancel or sweeper)
    - TEAMS_ACTIVE -> TEAMS_ACTIVE (teams re-assigned) | TEAMS_ENDED (end, cancel or sweeper)
    - ENDED/TEAMS_ENDED are terminal states

    Once teams are assigned a session never returns to ACTIVE.
    """

    # State transition map defining valid state flows
    TRANSITIONS: dict[SessionState, set[SessionState]] = {
        SessionState.ACTIVE: {
            SessionState.TEAMS_ACTIVE,
            SessionState.ENDED,
        },
        SessionState.TEAMS_ACTIVE: {
            SessionState.TEAMS_ACTIVE,
            SessionState.TEAMS_ENDED,
        },
        SessionState.ENDED: set(),
        SessionState.TEAMS_ENDED: set(),
    }

    # Terminal states that cannot transition further
    TERMINAL_STATES: set[SessionState] = {SessionState.ENDED, SessionState.TEAMS_ENDED}

    @classmethod
    def can_transition(cls, current: SessionState, new: SessionState) -> bool:
        """Check if state transition is valid.

        Args:
            current: Current session state
            new: Target state to transition to

        Returns:
            True if transition is valid, False otherwise
        """
        return new in cls.TRANSITIONS.get(current, set())

    @classmethod
    def is_terminal(cls, state: SessionState) -> bool:
        """Check if a state is terminal (no further transitions allowed)."""
        return state in cls.TERMINAL_STATES

    @classmethod
    def ended_state_for(cls, state: SessionState) -> SessionState:
        """Terminal state reached by ending a session in ``state``.

        Ending an already ended session stays where it is.
        """
        if state == SessionState.ACTIVE:
            return SessionState.ENDED
        if state == SessionState.TEAMS_ACTIVE:
            return SessionState.TEAMS_ENDED
        return state

    @classmethod
    def get_valid_transitions(cls, state: SessionState) -> set[SessionState]:
        """Get all valid transitions from a given state."""
        return cls.TRANSITIONS.get(state, set())

    @classmethod
    def get_valid_sources(cls, target: SessionState) -> set[SessionState]:
        """Get all states that can transition to the target state."""
        return {state for state, targets in cls.TRANSITIONS.items() if target in targets}
