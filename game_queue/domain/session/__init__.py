from .roster import Roster, Slot, SlotKind
from .session import Session
from .session_models import MemberBatchResult, RejectedMember, SessionSnapshot
from .session_registry import SessionRegistry, get_session_registry
from .session_state_machine import SessionStateMachine

__all__ = [
    "MemberBatchResult",
    "RejectedMember",
    "Roster",
    "Session",
    "SessionRegistry",
    "SessionSnapshot",
    "SessionStateMachine",
    "Slot",
    "SlotKind",
    "get_session_registry",
]
