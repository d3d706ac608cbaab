from datetime import datetime

from pydantic import BaseModel, Field, field_serializer

from game_queue.domain.session.session_models import SessionSnapshot
from game_queue.schemas import MemberRef, SessionState

from .serializers import serialize_utc_datetime


class SlotOut(BaseModel):
    index: int
    member: MemberRef | None = Field(default=None, description="None when the slot is open")


class SessionOut(BaseModel):
    host: MemberRef
    guild_id: str
    channel_id: str
    title: str
    status: SessionState
    capacity: int
    connected_count: int
    slots: list[SlotOut]
    teams: list[list[SlotOut]] = Field(
        default_factory=list, description="Team groups, empty until teams are assigned"
    )
    start_time: datetime
    early_cleanup_eligible: bool
    render_generation: int
    rendered_message_id: str | None = None

    @field_serializer("start_time")
    def serialize_start_time(self, dt: datetime) -> str:
        return serialize_utc_datetime(dt)

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot) -> "SessionOut":
        slots = [SlotOut(index=s.index, member=s.member) for s in snapshot.slots]

        teams: list[list[SlotOut]] = []
        if snapshot.status.has_teams:
            size = snapshot.team_size
            teams = [slots[i * size:(i + 1) * size] for i in range(snapshot.team_count)]

        return cls(
            host=snapshot.host,
            guild_id=snapshot.guild_id,
            channel_id=snapshot.channel_id,
            title=snapshot.title,
            status=snapshot.status,
            capacity=snapshot.capacity,
            connected_count=snapshot.connected_count,
            slots=slots,
            teams=teams,
            start_time=snapshot.start_time,
            early_cleanup_eligible=snapshot.early_cleanup_eligible,
            render_generation=snapshot.render_generation,
            rendered_message_id=snapshot.rendered_message_id,
        )


class ListSessionsOut(BaseModel):
    sessions: list[SessionOut]
    total: int
