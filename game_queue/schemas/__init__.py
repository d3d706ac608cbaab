"""Pydantic schemas shared across layers."""

from .member import MemberRef
from .session_state import SessionState
from .session_view import (
    CLOSED_SLOT,
    JOIN_BUTTON,
    LEAVE_BUTTON,
    OPEN_SLOT,
    FooterMode,
    RenderedHandle,
    RosterRow,
    SessionView,
    TeamGroup,
)

__all__ = [
    "CLOSED_SLOT",
    "FooterMode",
    "JOIN_BUTTON",
    "LEAVE_BUTTON",
    "MemberRef",
    "OPEN_SLOT",
    "RenderedHandle",
    "RosterRow",
    "SessionState",
    "SessionView",
    "TeamGroup",
]
