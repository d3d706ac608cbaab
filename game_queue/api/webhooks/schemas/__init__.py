"""Webhook schemas for external providers."""

from game_queue.api.webhooks.schemas.chat import (
    ChatMember,
    ChatMessage,
    ChatReaction,
    MessageCreateEvent,
    ReactionAddEvent,
    VoiceState,
    VoiceStateUpdateEvent,
)

__all__ = [
    "ChatMember",
    "ChatMessage",
    "ChatReaction",
    "MessageCreateEvent",
    "ReactionAddEvent",
    "VoiceState",
    "VoiceStateUpdateEvent",
]
