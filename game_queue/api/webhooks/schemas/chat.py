"""Chat gateway webhook event schemas.

The gateway bridge forwards chat platform events as JSON objects with an ``event``
discriminator:

- message_create: a message was posted in a guild text channel
- reaction_add: a member pressed one of the reaction buttons on a message
- reaction_remove: a member took a reaction button back (ignored)
- voice_state_update: a member joined, moved between or left voice channels
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from game_queue.schemas import MemberRef


class ChatMember(BaseModel):
    """Member payload as sent by the gateway."""

    id: str
    username: str
    display_name: str | None = None
    bot: bool = False

    def to_member_ref(self) -> MemberRef:
        return MemberRef(id=self.id, username=self.username, display_name=self.display_name)


class ChatMessage(BaseModel):
    id: str
    channel_id: str
    guild_id: str | None = None
    content: str = ""
    author: ChatMember


class ChatReaction(BaseModel):
    message_id: str
    channel_id: str
    guild_id: str | None = None
    emoji: str
    member: ChatMember


class VoiceState(BaseModel):
    guild_id: str
    member: ChatMember
    before_channel_id: str | None = None
    after_channel_id: str | None = None

    @property
    def left_channel(self) -> bool:
        return self.before_channel_id is not None and self.before_channel_id != self.after_channel_id

    @property
    def disconnected(self) -> bool:
        return self.before_channel_id is not None and self.after_channel_id is None


class MessageCreateEvent(BaseModel):
    event: Literal["message_create"] = "message_create"
    id: str | None = Field(default=None, description="Gateway event id")
    created_at: int | None = None
    message: ChatMessage


class ReactionAddEvent(BaseModel):
    event: Literal["reaction_add"] = "reaction_add"
    id: str | None = None
    created_at: int | None = None
    reaction: ChatReaction


class VoiceStateUpdateEvent(BaseModel):
    event: Literal["voice_state_update"] = "voice_state_update"
    id: str | None = None
    created_at: int | None = None
    voice_state: VoiceState
