"""In-memory chat platform used in DEMO_MODE and by the test suite."""

import re
from collections import deque
from dataclasses import dataclass, field

from loguru import logger

from game_queue.domain.utils.idgen import new_message_id
from game_queue.schemas import FooterMode, MemberRef, RenderedHandle, SessionView

_MENTION_RE = re.compile(r"^<@!?(\d+)>$")

DEMO_HISTORY_LIMIT = 500


@dataclass
class PostedMessage:
    message_id: str
    channel_id: str
    view: SessionView | None = None
    text: str | None = None
    reply_to: str | None = None
    reactions: list[str] = field(default_factory=list)


class DemoChatPlatform:
    """Keeps members, voice presence and posted messages in dictionaries."""

    def __init__(self, members: list[MemberRef] | None = None, history_limit: int = DEMO_HISTORY_LIMIT):
        self.members: dict[str, MemberRef] = {m.id: m for m in members or []}
        self.voice_present: dict[str, set[str]] = {}
        self.messages: dict[str, PostedMessage] = {}
        self.retired: deque[str] = deque(maxlen=history_limit)
        self.deleted: deque[str] = deque(maxlen=history_limit)
        self.replies: deque[PostedMessage] = deque(maxlen=history_limit)
        # closed session messages are never retired, so only the newest ones are kept
        self._ended: deque[str] = deque()
        self._history_limit = history_limit

    # ---- directory ----

    def add_member(self, member: MemberRef) -> None:
        self.members[member.id] = member

    def set_voice_presence(self, guild_id: str, member_ids: set[str]) -> None:
        self.voice_present[guild_id] = set(member_ids)

    async def lookup_member(self, identifier: str, guild_id: str) -> MemberRef | None:
        match = _MENTION_RE.match(identifier.strip())
        if match:
            return self.members.get(match.group(1))

        for member in self.members.values():
            if identifier in (member.username, member.display_name):
                return member
        return None

    async def list_voice_present_members(self, guild_id: str) -> set[MemberRef]:
        ids = self.voice_present.get(guild_id, set())
        return {self.members[i] for i in ids if i in self.members}

    # ---- messages ----

    async def render(self, view: SessionView) -> str:
        message_id = new_message_id()
        self.messages[message_id] = PostedMessage(
            message_id=message_id,
            channel_id=view.channel_id,
            view=view,
            reactions=view.buttons,
        )
        if view.footer_mode == FooterMode.ENDED:
            self._ended.append(message_id)
            while len(self._ended) > self._history_limit:
                self.messages.pop(self._ended.popleft(), None)
        logger.debug(f"DEMO render {message_id} generation={view.generation} footer={view.footer_mode}")
        return message_id

    async def retire(self, handle: RenderedHandle) -> None:
        if self.messages.pop(handle.message_id, None) is not None:
            self.retired.append(handle.message_id)
            logger.debug(f"DEMO retire {handle.message_id}")

    async def send_reply(self, channel_id: str, text: str, reply_to: str | None = None) -> None:
        message = PostedMessage(message_id=new_message_id(), channel_id=channel_id, text=text, reply_to=reply_to)
        self.replies.append(message)
        logger.info(f"DEMO reply in {channel_id}: {text}")

    async def delete_message(self, channel_id: str, message_id: str) -> None:
        self.deleted.append(message_id)

    # ---- inspection helpers ----

    def live_session_messages(self) -> list[PostedMessage]:
        return [m for m in self.messages.values() if m.view is not None]
