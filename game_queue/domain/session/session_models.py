"""Session domain models."""

from datetime import datetime

from pydantic import BaseModel, Field

from game_queue.schemas import MemberRef, SessionState
from game_queue.utils.app_errors import AppErrorCode


class RejectedMember(BaseModel):
    """A batch entry that could not be applied, with the reason."""

    member: MemberRef
    reason: AppErrorCode


class MemberBatchResult(BaseModel):
    """Outcome of an add/remove batch.

    Batches are not transactional: ``applied`` went through, ``rejected`` did not,
    and ``unresolved`` lists the names that matched no chat member at all.
    """

    applied: list[MemberRef] = Field(default_factory=list)
    rejected: list[RejectedMember] = Field(default_factory=list)
    unresolved: list[str] = Field(default_factory=list)

    @property
    def rejected_members(self) -> list[MemberRef]:
        return [entry.member for entry in self.rejected]

    @property
    def ok(self) -> bool:
        return not self.rejected and not self.unresolved


class SlotSnapshot(BaseModel):
    index: int
    member: MemberRef | None = None


class SessionSnapshot(BaseModel):
    """Read-only copy of a session's state."""

    host: MemberRef
    guild_id: str
    channel_id: str
    title: str
    status: SessionState
    capacity: int
    connected_count: int
    slots: list[SlotSnapshot]
    team_count: int
    team_size: int
    start_time: datetime
    early_cleanup_eligible: bool
    render_generation: int
    rendered_message_id: str | None = None
