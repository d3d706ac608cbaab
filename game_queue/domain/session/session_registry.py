"""Per-host registry of active sessions."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from datetime import datetime

from loguru import logger

from game_queue.app_config import AppEnvironConfig, get_app_environ_config
from game_queue.schemas import MemberRef
from game_queue.services.integrations.chat_platform import ChatPlatform
from game_queue.shared.lock import LockManager
from game_queue.shared.utils.time import utc_now
from game_queue.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from .session import Session
from .session_models import MemberBatchResult, SessionSnapshot

_HOST_LOCK = "session-host"


class SessionRegistry:
    """Owns the host -> session map; at most one active session per host.

    Every operation on a host's session (command or reaction driven) runs inside that
    host's critical section, and the session is looked up again once the lock is held,
    so a lookup and the mutation that follows it cannot interleave with another
    mutation of the same session. Different hosts never contend.

    Reaction events only know the rendered message id. Resolving it is a linear scan
    over the active sessions, which keeps the registry to a single map that never has
    to be re-indexed when a session re-renders.
    """

    def __init__(
        self,
        platform: ChatPlatform,
        settings: AppEnvironConfig | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
        session_factory: Callable[..., Session] = Session,
    ):
        self.platform = platform
        self.settings = settings or get_app_environ_config()
        self._clock = clock
        self._session_factory = session_factory
        self._sessions: dict[str, Session] = {}
        self._locks = LockManager(lock_prefix="registry")
        self._closing: set[asyncio.Task] = set()

    # ==================== LOOKUPS ====================

    def get_session(self, host_id: str) -> Session | None:
        return self._sessions.get(host_id)

    def has_session(self, host_id: str) -> bool:
        return host_id in self._sessions

    def sessions(self) -> list[Session]:
        """Snapshot of the active sessions."""
        return list(self._sessions.values())

    def snapshots(self) -> list[SessionSnapshot]:
        return [session.snapshot() for session in self._sessions.values()]

    def resolve_by_rendered_message_id(self, message_id: str) -> Session | None:
        for session in self._sessions.values():
            if session.rendered_message_id == message_id:
                return session
        return None

    def _require_session(self, host: MemberRef) -> Session:
        session = self._sessions.get(host.id)
        if session is None:
            raise AppError(
                errcode=AppErrorCode.E_NO_ACTIVE_SESSION,
                errmesg="You have no active sessions?",
                status_code=HttpStatusCode.NOT_FOUND,
            )
        return session

    def _validate_size(self, size: int) -> None:
        ceiling = self.settings.MAX_SESSION_SIZE
        if size <= 0 or size > ceiling:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_SIZE,
                errmesg=f"The maximum number of players a session could have is {ceiling} or less.",
            )

    async def resolve_members(self, names: Iterable[str], guild_id: str) -> tuple[list[MemberRef], list[str]]:
        """Look up each name on the platform.

        Returns:
            The resolved members, and the names that matched nobody.
        """
        members: list[MemberRef] = []
        unresolved: list[str] = []
        for name in names:
            member = await self.platform.lookup_member(name, guild_id)
            if member is None:
                logger.warning(f"Could not find user by the username: {name}")
                unresolved.append(name)
            else:
                members.append(member)
        return members, unresolved

    # ==================== LIFECYCLE ====================

    async def start_session(
        self,
        host: MemberRef,
        title: str | None = None,
        size: int | None = None,
        *,
        guild_id: str,
        channel_id: str,
    ) -> Session:
        title = (title or "").strip() or self.settings.DEFAULT_TITLE
        size = self.settings.DEFAULT_SESSION_SIZE if size is None else size

        async with self._locks.lock(_HOST_LOCK, host.id):
            if host.id in self._sessions:
                raise AppError(
                    errcode=AppErrorCode.E_ALREADY_HAS_SESSION,
                    errmesg="You already have an active session. Please !end your existing sessions first.",
                    status_code=HttpStatusCode.CONFLICT,
                )
            self._validate_size(size)

            session = self._session_factory(
                host,
                title,
                size,
                platform=self.platform,
                guild_id=guild_id,
                channel_id=channel_id,
                start_time=self._clock(),
            )
            self._sessions[host.id] = session
            logger.info(f"Started session host={host.tag}(ID={host.id}) title={title!r} size={size}")
            session.request_render()
            return session

    async def end_session(self, host: MemberRef) -> Session:
        async with self._locks.lock(_HOST_LOCK, host.id):
            session = self._require_session(host)
            session.end()
            self._deregister(session)
            return session

    async def cancel_session(self, host: MemberRef) -> Session:
        async with self._locks.lock(_HOST_LOCK, host.id):
            session = self._require_session(host)
            session.cancel()
            self._deregister(session)
            return session

    async def force_end(
        self,
        session: Session,
        reason: str,
        should_end: Callable[[Session], bool] | None = None,
    ) -> bool:
        """End and deregister ``session`` if it is still its host's registered session.

        Args:
            session: The session to end
            reason: Short label for the logs
            should_end: Checked once the host lock is held; the session is left alone
                if it returns False

        Returns:
            True if this call ended it, False if it was already gone or no longer qualifies.
        """
        async with self._locks.lock(_HOST_LOCK, session.host.id):
            if self._sessions.get(session.host.id) is not session:
                logger.debug(f"Session of host={session.host.tag} already gone, skipping {reason}")
                return False
            if should_end is not None and not should_end(session):
                logger.info(f"Session of host={session.host.tag} no longer qualifies, skipping {reason}")
                return False

            logger.info(f"Force ending session host={session.host.tag} reason={reason}")
            session.end()
            self._deregister(session)
            return True

    def _deregister(self, session: Session) -> None:
        if self._sessions.get(session.host.id) is session:
            del self._sessions[session.host.id]

        # Keep the session reachable until its final render/withdraw has been published.
        task = asyncio.create_task(session.drain(), name=f"closing:{session.host.id}")
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)
        logger.info(f"Removed session host={session.host.tag}; {len(self._sessions)} active")

    async def drain(self) -> None:
        """Wait for every pending render publication, active and closing sessions alike."""
        for session in list(self._sessions.values()):
            await session.drain()
        while self._closing:
            await asyncio.gather(*list(self._closing), return_exceptions=True)

    # ==================== HOST COMMANDS ====================

    async def add_members(self, host: MemberRef, names: Iterable[str]) -> MemberBatchResult:
        session = self._require_session(host)
        members, unresolved = await self.resolve_members(names, session.guild_id)

        async with self._locks.lock(_HOST_LOCK, host.id):
            session = self._require_session(host)
            result = session.add_members(members)

        result.unresolved = unresolved
        return result

    async def remove_members(self, host: MemberRef, names: Iterable[str]) -> MemberBatchResult:
        session = self._require_session(host)
        members, unresolved = await self.resolve_members(names, session.guild_id)

        async with self._locks.lock(_HOST_LOCK, host.id):
            session = self._require_session(host)
            result = session.remove_members(members)

        result.unresolved = unresolved
        return result

    async def resize(self, host: MemberRef, new_size: int) -> Session:
        async with self._locks.lock(_HOST_LOCK, host.id):
            session = self._require_session(host)
            self._validate_size(new_size)
            session.resize(new_size)
            return session

    async def rename(self, host: MemberRef, new_title: str) -> Session:
        async with self._locks.lock(_HOST_LOCK, host.id):
            session = self._require_session(host)
            session.rename((new_title or "").strip() or self.settings.DEFAULT_TITLE)
            return session

    async def advertise(self, host: MemberRef, channel_id: str | None = None) -> Session:
        async with self._locks.lock(_HOST_LOCK, host.id):
            session = self._require_session(host)
            session.advertise(channel_id)
            return session

    async def assign_teams(self, host: MemberRef, team_count: int) -> Session:
        async with self._locks.lock(_HOST_LOCK, host.id):
            session = self._require_session(host)
            session.assign_teams(team_count)
            return session

    # ==================== REACTIONS ====================

    async def on_member_joined_via_reaction(self, message_id: str, member: MemberRef) -> bool:
        return await self._apply_reaction(message_id, member, join=True)

    async def on_member_left_via_reaction(self, message_id: str, member: MemberRef) -> bool:
        return await self._apply_reaction(message_id, member, join=False)

    async def _apply_reaction(self, message_id: str, member: MemberRef, *, join: bool) -> bool:
        """Apply a join/leave button press.

        Stale or unknown message ids, sessions that are ended or re-rendering, and
        presses that would not change anything are silently ignored.

        Returns:
            True if the roster changed.
        """
        action = "join" if join else "leave"
        session = self.resolve_by_rendered_message_id(message_id)
        if session is None:
            logger.debug(f"Ignoring {action} reaction on unknown message {message_id}")
            return False

        async with self._locks.lock(_HOST_LOCK, session.host.id):
            if self._sessions.get(session.host.id) is not session:
                logger.debug(f"Ignoring {action} reaction: session of host={session.host.tag} is gone")
                return False
            if not session.accepting_input or not session.is_current_handle(message_id):
                logger.debug(
                    f"Ignoring {action} reaction on message {message_id}: session host={session.host.tag} "
                    f"is at generation {session.render_generation}"
                )
                return False
            if session.roster.contains(member) == join:
                logger.debug(f"Ignoring {action} reaction: {member.tag} already in requested state")
                return False

            if join:
                result = session.add_members([member])
            else:
                result = session.remove_members([member])

            logger.info(
                f"Reaction {action} by {member.tag}(ID={member.id}) on host={session.host.tag}: "
                f"applied={len(result.applied)}"
            )
            return bool(result.applied)


_session_registry: SessionRegistry | None = None


def get_session_registry() -> SessionRegistry:
    """Process-wide registry, created on first use."""
    global _session_registry
    if _session_registry is None:
        from game_queue.services.integrations.factory import get_chat_platform

        _session_registry = SessionRegistry(get_chat_platform())
    return _session_registry
