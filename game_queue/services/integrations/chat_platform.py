"""Chat platform interface consumed by the session core."""

from typing import Protocol, runtime_checkable

from game_queue.schemas import MemberRef, RenderedHandle, SessionView


@runtime_checkable
class ChatPlatform(Protocol):
    """Outward calls the core makes into the chat platform.

    ``render`` posts a fresh session message and returns its message id; every
    call creates a new message, so the caller must track the latest id itself.
    ``retire`` removes a previously rendered message and must tolerate messages
    that are already gone.
    """

    async def lookup_member(self, identifier: str, guild_id: str) -> MemberRef | None:
        """Resolve a username, display name or ``<@id>`` mention."""
        ...

    async def list_voice_present_members(self, guild_id: str) -> set[MemberRef]:
        """Members currently connected to any voice channel of the guild."""
        ...

    async def render(self, view: SessionView) -> str: ...

    async def retire(self, handle: RenderedHandle) -> None: ...

    async def send_reply(self, channel_id: str, text: str, reply_to: str | None = None) -> None: ...

    async def delete_message(self, channel_id: str, message_id: str) -> None: ...
