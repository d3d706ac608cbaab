"""Render payloads exchanged with the chat platform."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .member import MemberRef

JOIN_BUTTON = "👍"
LEAVE_BUTTON = "✋"

OPEN_SLOT = "OPEN SLOT"
CLOSED_SLOT = "CLOSED SLOT"


class FooterMode(str, Enum):
    JOINABLE = "joinable"
    ENDED = "ended"

    def __str__(self) -> str:
        return self.value


class RosterRow(BaseModel):
    """One displayed roster line; ``member`` is None for an open/closed slot."""

    index: int
    label: str
    member: MemberRef | None = None


class TeamGroup(BaseModel):
    team_number: int
    rows: list[RosterRow]


class SessionView(BaseModel):
    """Everything the platform needs to draw a session message."""

    host: MemberRef
    title: str
    channel_id: str
    rows: list[RosterRow]
    teams: list[TeamGroup] | None = None
    footer_mode: FooterMode
    footer_text: str
    color: int
    timestamp: datetime
    generation: int
    advertise: bool = False

    @property
    def buttons(self) -> list[str]:
        """Reaction buttons to attach; ended sessions get none."""
        if self.footer_mode == FooterMode.JOINABLE:
            return [JOIN_BUTTON, LEAVE_BUTTON]
        return []


class RenderedHandle(BaseModel):
    """Identity of one rendered session message, stamped with its render generation."""

    model_config = ConfigDict(frozen=True)

    message_id: str
    channel_id: str
    generation: int = Field(ge=1)


__all__ = [
    "CLOSED_SLOT",
    "FooterMode",
    "JOIN_BUTTON",
    "LEAVE_BUTTON",
    "OPEN_SLOT",
    "RenderedHandle",
    "RosterRow",
    "SessionView",
    "TeamGroup",
]
