"""Chat text commands on top of the session registry.

    !start [NUMBER_OF_PLAYERS] "TITLE"
    !add @user1 @user2 ...
    !remove @user1 @user2 ...
    !resize NUMBER_OF_PLAYERS
    !rename "TITLE"
    !teams NUMBER_OF_TEAMS
    !advertise
    !end
    !cancel
    !help
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from loguru import logger

from game_queue.app_config import AppEnvironConfig, get_app_environ_config
from game_queue.domain.session.session_models import MemberBatchResult
from game_queue.domain.session.session_registry import SessionRegistry, get_session_registry
from game_queue.schemas import MemberRef
from game_queue.utils.app_errors import AppError, AppErrorCode

_INT_RE = re.compile(r"-?\d+")
_QUOTED_RE = re.compile(r'"(.*?)"')
_TOKEN_RE = re.compile(r'"([^"]+)"|(\S+)')

_REASON_TEXT = {
    AppErrorCode.E_SESSION_FULL: "session full",
    AppErrorCode.E_MEMBER_ALREADY_CONNECTED: "already connected",
    AppErrorCode.E_MEMBER_NOT_CONNECTED: "not connected",
}


@dataclass
class CommandContext:
    """Where a command came from."""

    author: MemberRef
    guild_id: str
    channel_id: str
    message_id: str | None = None


@dataclass
class CommandOutcome:
    command: str | None = None
    replies: list[str] = field(default_factory=list)
    delete_command: bool = False

    @property
    def handled(self) -> bool:
        return self.command is not None


CommandFn = Callable[[str, CommandContext], Awaitable[CommandOutcome]]


class CommandHandler:
    def __init__(self, registry: SessionRegistry, settings: AppEnvironConfig | None = None):
        self.registry = registry
        self.settings = settings or get_app_environ_config()
        self.prefix = self.settings.COMMAND_PREFIX
        self._commands: dict[str, CommandFn] = {
            "help": self.handle_help,
            "start": self.handle_start,
            "add": self.handle_add,
            "remove": self.handle_remove,
            "resize": self.handle_resize,
            "rename": self.handle_rename,
            "teams": self.handle_teams,
            "advertise": self.handle_advertise,
            "end": self.handle_end,
            "cancel": self.handle_cancel,
        }

    @property
    def help_entries(self) -> list[tuple[str, str]]:
        p = self.prefix
        return [
            ("Starting a Session", f'{p}start [NUMBER_OF_PLAYERS] "TITLE"'),
            ("Adding Players", f"{p}add [@USERNAME_1] [@USERNAME_2] ... [@USERNAME_N]"),
            ("Removing Players", f"{p}remove [@USERNAME_1] [@USERNAME_2] ... [@USERNAME_N]"),
            ("Change Number of Players", f"{p}resize [NUMBER_OF_PLAYERS]"),
            ("Renaming a Session", f'{p}rename "TITLE"'),
            ("Splitting into Teams", f"{p}teams [NUMBER_OF_TEAMS]"),
            ("Re-posting a Session", f"{p}advertise"),
            ("Ending a Session", f"{p}end"),
            ("Cancelling a Session", f"{p}cancel"),
        ]

    def parse(self, content: str) -> tuple[str, str] | None:
        """Split ``content`` into (command name, argument text), or None if it is no command."""
        content = (content or "").strip()
        if not content.startswith(self.prefix):
            return None

        head, _, rest = content[len(self.prefix):].partition(" ")
        name = head.strip().lower()
        if name not in self._commands:
            return None
        return name, rest.strip()

    async def handle(self, content: str, ctx: CommandContext) -> CommandOutcome:
        parsed = self.parse(content)
        if parsed is None:
            return CommandOutcome()

        name, args = parsed
        logger.info(f"Command {self.prefix}{name} from {ctx.author.tag}(ID={ctx.author.id}) args={args!r}")

        try:
            outcome = await self._commands[name](args, ctx)
        except AppError as e:
            logger.warning(f"{e.errcode} {e.erresid} msg={e.errmesg} caller={e.caller_info}")
            return CommandOutcome(command=name, replies=[e.errmesg])

        outcome.command = name
        return outcome

    # ==================== COMMANDS ====================

    async def handle_help(self, args: str, ctx: CommandContext) -> CommandOutcome:
        lines = ["**Game-Queue Help**"]
        lines.extend(f"{title}: `{usage}`" for title, usage in self.help_entries)
        return CommandOutcome(replies=["\n".join(lines)])

    async def handle_start(self, args: str, ctx: CommandContext) -> CommandOutcome:
        title_match = _QUOTED_RE.search(args)
        title = title_match.group(1) if title_match and title_match.group(1) else None

        # The size is the first integer outside the title.
        size_match = _INT_RE.search(_QUOTED_RE.sub(" ", args))
        size = int(size_match.group(0)) if size_match else None

        await self.registry.start_session(
            ctx.author,
            title,
            size,
            guild_id=ctx.guild_id,
            channel_id=ctx.channel_id,
        )
        return CommandOutcome(delete_command=True)

    async def handle_add(self, args: str, ctx: CommandContext) -> CommandOutcome:
        names = self._split_names(args)
        if not names:
            return CommandOutcome(replies=[f"Usage: {self.prefix}add [@USERNAME_1] ... [@USERNAME_N]"])

        result = await self.registry.add_members(ctx.author, names)
        return self._batch_outcome(result, "add")

    async def handle_remove(self, args: str, ctx: CommandContext) -> CommandOutcome:
        names = self._split_names(args)
        if not names:
            return CommandOutcome(replies=[f"Usage: {self.prefix}remove [@USERNAME_1] ... [@USERNAME_N]"])

        result = await self.registry.remove_members(ctx.author, names)
        return self._batch_outcome(result, "remove")

    async def handle_resize(self, args: str, ctx: CommandContext) -> CommandOutcome:
        new_size = self._parse_int(args)
        if new_size is None:
            return CommandOutcome(replies=[f"Usage: {self.prefix}resize [NUMBER_OF_PLAYERS]"])

        await self.registry.resize(ctx.author, new_size)
        return CommandOutcome(delete_command=True)

    async def handle_rename(self, args: str, ctx: CommandContext) -> CommandOutcome:
        title_match = _QUOTED_RE.search(args)
        title = title_match.group(1) if title_match else args
        await self.registry.rename(ctx.author, title)
        return CommandOutcome(delete_command=True)

    async def handle_teams(self, args: str, ctx: CommandContext) -> CommandOutcome:
        team_count = self._parse_int(args)
        if team_count is None:
            team_count = 2

        await self.registry.assign_teams(ctx.author, team_count)
        return CommandOutcome(delete_command=True)

    async def handle_advertise(self, args: str, ctx: CommandContext) -> CommandOutcome:
        await self.registry.advertise(ctx.author, ctx.channel_id)
        return CommandOutcome(delete_command=True)

    async def handle_end(self, args: str, ctx: CommandContext) -> CommandOutcome:
        await self.registry.end_session(ctx.author)
        return CommandOutcome(delete_command=True)

    async def handle_cancel(self, args: str, ctx: CommandContext) -> CommandOutcome:
        await self.registry.cancel_session(ctx.author)
        return CommandOutcome(delete_command=True)

    # ==================== HELPERS ====================

    @staticmethod
    def _split_names(args: str) -> list[str]:
        return [quoted or bare for quoted, bare in _TOKEN_RE.findall(args)]

    @staticmethod
    def _parse_int(args: str) -> int | None:
        match = _INT_RE.search(args)
        return int(match.group(0)) if match else None

    @staticmethod
    def _batch_outcome(result: MemberBatchResult, verb: str) -> CommandOutcome:
        replies = [f"Could not find user by the username: {name}" for name in result.unresolved]

        if result.rejected:
            players = " ".join(
                f"{entry.member.username} ({_REASON_TEXT.get(entry.reason, entry.reason.value)})"
                for entry in result.rejected
            )
            replies.append(f"Could not {verb} the following players: {players}")

        return CommandOutcome(replies=replies, delete_command=True)


_command_handler: CommandHandler | None = None


def get_command_handler() -> CommandHandler:
    global _command_handler
    if _command_handler is None:
        _command_handler = CommandHandler(get_session_registry())
    return _command_handler
