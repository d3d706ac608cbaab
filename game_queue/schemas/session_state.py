"""Session lifecycle states."""

from enum import Enum


class SessionState(str, Enum):
    """Session lifecycle states.

    State Transition Flow:

    ACTIVE → TEAMS_ACTIVE → TEAMS_ENDED
      ↓
    ENDED

    State Descriptions:
    - ACTIVE: Session created and open for joining. Set by start_session().
    - TEAMS_ACTIVE: Teams assigned; the roster is shuffled and shown partitioned.
      Re-assigning teams re-shuffles without leaving the state.
    - ENDED: Session closed before teams were assigned.
    - TEAMS_ENDED: Session closed after teams were assigned.

    Terminal states (no further transitions): ENDED, TEAMS_ENDED
    """

    ACTIVE = "active"
    TEAMS_ACTIVE = "teams_active"
    ENDED = "ended"
    TEAMS_ENDED = "teams_ended"

    def __str__(self) -> str:
        return self.value

    @property
    def has_teams(self) -> bool:
        return self in (SessionState.TEAMS_ACTIVE, SessionState.TEAMS_ENDED)


__all__ = ["SessionState"]
