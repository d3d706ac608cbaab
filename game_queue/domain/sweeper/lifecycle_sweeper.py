"""Background cleanup of expired and abandoned sessions.

Two policies act on the whole registry:

1. Hard expiry: on a fixed interval, every session older than
   MAX_SESSION_LIFETIME_MS is ended, whatever its activity.
2. Early expiry: when a member leaves voice, the sessions they host or play in are
   flagged. When a member disconnects, flagged sessions of that guild that are at
   least MIN_SESSION_LIFETIME_MS old are ended if none of their host and roster
   members is still connected to voice.

Ending goes through ``SessionRegistry.force_end`` so a session is only ever ended
once, even when a sweep races a host's own ``!end``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Optional

from loguru import logger

from game_queue.app_config import AppEnvironConfig, get_app_environ_config
from game_queue.domain.session.session_registry import SessionRegistry, get_session_registry
from game_queue.schemas import MemberRef
from game_queue.shared.utils.time import ms_to_timedelta, utc_now


class LifecycleSweeper:
    def __init__(
        self,
        registry: SessionRegistry,
        settings: AppEnvironConfig | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.registry = registry
        self.settings = settings or get_app_environ_config()
        self._clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def max_lifetime(self):
        return ms_to_timedelta(self.settings.MAX_SESSION_LIFETIME_MS)

    @property
    def min_lifetime(self):
        return ms_to_timedelta(self.settings.MIN_SESSION_LIFETIME_MS)

    @property
    def interval_seconds(self) -> float:
        return self.settings.CLEANUP_INTERVAL_MS / 1000

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ==================== HARD EXPIRY ====================

    async def sweep_expired(self, now: datetime | None = None) -> list[str]:
        """End every session that reached its maximum lifetime.

        Returns:
            Host ids of the sessions ended by this sweep.
        """
        now = now or self._clock()
        ended: list[str] = []

        def expired(session) -> bool:
            return now >= session.start_time + self.max_lifetime

        for session in self.registry.sessions():
            if not expired(session):
                continue
            if await self.registry.force_end(session, reason="max_lifetime", should_end=expired):
                ended.append(session.host.id)

        if ended:
            logger.info(f"🧹 Hard expiry ended {len(ended)} session(s): {ended}")
        return ended

    # ==================== EARLY EXPIRY ====================

    def mark_early_cleanup(self, member: MemberRef, guild_id: str | None = None) -> list[str]:
        """Flag sessions the member hosts or plays in as candidates for early cleanup.

        Returns:
            Host ids of the flagged sessions.
        """
        flagged: list[str] = []
        for session in self.registry.sessions():
            if guild_id is not None and session.guild_id != guild_id:
                continue
            if session.involves(member):
                session.early_cleanup_eligible = True
                flagged.append(session.host.id)

        if flagged:
            logger.info(f"{member.tag}(ID={member.id}) left voice, flagged sessions: {flagged}")
        return flagged

    async def sweep_abandoned(self, guild_id: str, now: datetime | None = None) -> list[str]:
        """End flagged sessions of the guild whose participants have all left voice.

        Returns:
            Host ids of the sessions ended by this sweep.
        """
        now = now or self._clock()

        def flagged(session) -> bool:
            return session.early_cleanup_eligible and now >= session.start_time + self.min_lifetime

        candidates = [s for s in self.registry.sessions() if s.guild_id == guild_id and flagged(s)]
        if not candidates:
            return []

        present = await self.registry.platform.list_voice_present_members(guild_id)
        present_ids = {member.id for member in present}

        # The roster can change while we wait for the host lock, so re-check under it.
        def abandoned(session) -> bool:
            return flagged(session) and not (session.participant_ids() & present_ids)

        ended: list[str] = []
        for session in candidates:
            if not abandoned(session):
                continue
            if await self.registry.force_end(session, reason="abandoned", should_end=abandoned):
                ended.append(session.host.id)

        if ended:
            logger.info(f"🧹 Early expiry ended {len(ended)} session(s) in guild {guild_id}: {ended}")
        return ended

    # ==================== BACKGROUND LOOP ====================

    def start(self) -> None:
        if self.running:
            return

        async def _loop():
            try:
                while True:
                    await asyncio.sleep(self.interval_seconds)
                    try:
                        await self.sweep_expired()
                    except Exception as e:
                        logger.exception(f"Session sweep failed: {e}")
            except asyncio.CancelledError:
                pass

        logger.info(f"Starting session sweeper every {self.interval_seconds}s")
        self._task = asyncio.create_task(_loop(), name="session-sweeper")

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            logger.info("Session sweeper stopped")
        self._task = None


_lifecycle_sweeper: LifecycleSweeper | None = None


def get_lifecycle_sweeper() -> LifecycleSweeper:
    global _lifecycle_sweeper
    if _lifecycle_sweeper is None:
        _lifecycle_sweeper = LifecycleSweeper(get_session_registry())
    return _lifecycle_sweeper
