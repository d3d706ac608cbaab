"""A single hosted session and its live chat message."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Iterable
from datetime import datetime

from loguru import logger

from game_queue.schemas import (
    CLOSED_SLOT,
    JOIN_BUTTON,
    LEAVE_BUTTON,
    OPEN_SLOT,
    FooterMode,
    MemberRef,
    RenderedHandle,
    RosterRow,
    SessionState,
    SessionView,
    TeamGroup,
)
from game_queue.services.integrations.chat_platform import ChatPlatform
from game_queue.shared.utils.time import utc_now
from game_queue.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from .roster import Roster
from .session_models import MemberBatchResult, RejectedMember, SessionSnapshot, SlotSnapshot
from .session_state_machine import SessionStateMachine

ENDED_FOOTER = "SESSION ENDED"


class Session:
    """One host's session: a roster, a lifecycle state and a rendered message.

    Every successful mutation requests a re-render. Renders are published on a
    background task, chained so that at most one publication per session runs at a
    time: the previous message is retired, then the current view is posted. Each
    request bumps ``render_generation``; a publication that has been superseded by a
    newer request before it starts is skipped, and a message that finishes rendering
    after being superseded is retired right away. ``rendered`` therefore only ever
    holds a handle of the generation it was requested for.

    The session does not lock itself; callers (the registry) serialize access.
    """

    def __init__(
        self,
        host: MemberRef,
        title: str,
        capacity: int,
        *,
        platform: ChatPlatform,
        guild_id: str,
        channel_id: str,
        start_time: datetime | None = None,
        rng: random.Random | None = None,
    ):
        self.host = host
        self.title = title
        self.guild_id = guild_id
        self.channel_id = channel_id
        self._rng = rng or random.Random()
        self.roster = Roster(capacity, rng=self._rng)
        self.state = SessionState.ACTIVE
        self.team_count = 1
        self.start_time = start_time or utc_now()
        self.early_cleanup_eligible = False
        self.color = self._rng.randrange(0x1000000)

        self.rendered: RenderedHandle | None = None
        self._platform = platform
        self._render_generation = 0
        self._publish_task: asyncio.Task | None = None

    # ==================== STATE ====================

    @property
    def render_generation(self) -> int:
        return self._render_generation

    @property
    def rendered_message_id(self) -> str | None:
        return self.rendered.message_id if self.rendered else None

    @property
    def team_size(self) -> int:
        return self.roster.capacity // self.team_count

    @property
    def is_ended(self) -> bool:
        return SessionStateMachine.is_terminal(self.state)

    @property
    def render_in_flight(self) -> bool:
        return self._publish_task is not None and not self._publish_task.done()

    @property
    def accepting_input(self) -> bool:
        """Open for reaction input: not ended and the latest render has landed."""
        return (
            not self.is_ended
            and self.rendered is not None
            and self.rendered.generation == self._render_generation
        )

    def is_current_handle(self, message_id: str) -> bool:
        return (
            self.rendered is not None
            and self.rendered.message_id == message_id
            and self.rendered.generation == self._render_generation
        )

    def involves(self, member: MemberRef) -> bool:
        return self.host.id == member.id or self.roster.contains(member)

    def participant_ids(self) -> set[str]:
        return {self.host.id, *(member.id for member in self.roster.members)}

    def _ensure_mutable(self) -> None:
        if self.is_ended:
            raise AppError(
                errcode=AppErrorCode.E_SESSION_ENDED,
                errmesg="This session has already ended.",
                status_code=HttpStatusCode.CONFLICT,
            )

    def _transition(self, new_state: SessionState) -> None:
        if self.state == new_state and new_state != SessionState.TEAMS_ACTIVE:
            return
        if not SessionStateMachine.can_transition(self.state, new_state):
            raise AppError(
                errcode=AppErrorCode.E_INVALID_REQUEST,
                errmesg=f"Invalid state transition: {self.state} -> {new_state}",
                status_code=HttpStatusCode.CONFLICT,
            )
        logger.info(f"host={self.host.tag} state {self.state} -> {new_state}")
        self.state = new_state

    # ==================== MUTATIONS ====================

    def add_members(self, members: Iterable[MemberRef]) -> MemberBatchResult:
        """Add members to the first free slots; see ``Roster.add_members``."""
        self._ensure_mutable()

        result = MemberBatchResult()
        for member in members:
            if not self.roster.add_members([member]):
                result.applied.append(member)
                continue
            reason = (
                AppErrorCode.E_MEMBER_ALREADY_CONNECTED
                if self.roster.contains(member)
                else AppErrorCode.E_SESSION_FULL
            )
            result.rejected.append(RejectedMember(member=member, reason=reason))

        if result.applied:
            self.request_render()
        return result

    def remove_members(self, members: Iterable[MemberRef]) -> MemberBatchResult:
        self._ensure_mutable()

        result = MemberBatchResult()
        for member in members:
            if self.roster.remove_members([member]):
                result.rejected.append(
                    RejectedMember(member=member, reason=AppErrorCode.E_MEMBER_NOT_CONNECTED)
                )
            else:
                result.applied.append(member)

        if result.applied:
            self.request_render()
        return result

    def resize(self, new_capacity: int) -> None:
        self._ensure_mutable()
        if new_capacity <= 0:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_SIZE,
                errmesg=f"A session needs at least one slot, got {new_capacity}.",
            )

        if not self.roster.resize(new_capacity):
            raise AppError(
                errcode=AppErrorCode.E_RESIZE_BELOW_CONNECTED_COUNT,
                errmesg=(
                    f"Cannot resize the session to {new_capacity} because there's "
                    f"{self.roster.connected_count} connected player(s)"
                ),
            )

        if self.team_count > new_capacity:
            logger.info(f"host={self.host.tag} team count clamped {self.team_count} -> {new_capacity}")
            self.team_count = new_capacity

        self.request_render()

    def rename(self, new_title: str) -> None:
        self._ensure_mutable()
        logger.info(f"host={self.host.tag}, old={self.title}, new={new_title}")
        self.title = new_title
        self.request_render()

    def assign_teams(self, team_count: int) -> None:
        """Shuffle the roster and show it split into ``team_count`` teams."""
        self._ensure_mutable()
        if team_count < 1:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_SIZE,
                errmesg=f"The number of teams must be at least 1, got {team_count}.",
            )
        if team_count > self.roster.capacity:
            raise AppError(
                errcode=AppErrorCode.E_TEAM_COUNT_EXCEEDS_CAPACITY,
                errmesg=(
                    f"Too few players for {team_count} teams: the session only has "
                    f"{self.roster.capacity} slot(s)."
                ),
            )

        self._transition(SessionState.TEAMS_ACTIVE)
        self.team_count = team_count
        self.roster.shuffle()
        logger.info(f"host={self.host.tag} assigned {team_count} team(s) of {self.team_size}")
        self.request_render()

    def advertise(self, channel_id: str | None = None) -> None:
        """Re-post the session so it is the newest message, optionally in another channel."""
        self._ensure_mutable()
        if channel_id:
            self.channel_id = channel_id
        self.request_render(advertise=True)

    def end(self) -> bool:
        """Close the session and re-render it in its closed form.

        Returns:
            False if the session had already ended.
        """
        if self.is_ended:
            logger.info(f"host={self.host.tag} already in terminal state {self.state}")
            return False

        self._transition(SessionStateMachine.ended_state_for(self.state))
        self.request_render()
        return True

    def cancel(self) -> bool:
        """Close the session and remove its message instead of re-rendering it."""
        if self.is_ended:
            return False

        self._transition(SessionStateMachine.ended_state_for(self.state))
        self._render_generation += 1
        previous = self._publish_task
        self._publish_task = asyncio.create_task(
            self._withdraw(previous),
            name=f"withdraw:{self.host.id}",
        )
        return True

    # ==================== RENDERING ====================

    def build_view(self, generation: int | None = None, advertise: bool = False) -> SessionView:
        ended = self.is_ended
        empty_label = CLOSED_SLOT if ended else OPEN_SLOT

        rows = [
            RosterRow(
                index=index,
                label=slot.member.mention if slot.member is not None else empty_label,
                member=slot.member,
            )
            for index, slot in enumerate(self.roster.slots)
        ]

        teams = None
        if self.state.has_teams:
            size = self.team_size
            teams = [
                TeamGroup(team_number=i + 1, rows=rows[i * size:(i + 1) * size])
                for i in range(self.team_count)
            ]

        return SessionView(
            host=self.host,
            title=self.title,
            channel_id=self.channel_id,
            rows=rows,
            teams=teams,
            footer_mode=FooterMode.ENDED if ended else FooterMode.JOINABLE,
            footer_text=ENDED_FOOTER if ended else f"{JOIN_BUTTON} to join. {LEAVE_BUTTON} to leave.",
            color=self.color,
            timestamp=utc_now() if ended else self.start_time,
            generation=self._render_generation if generation is None else generation,
            advertise=advertise,
        )

    def request_render(self, advertise: bool = False) -> None:
        self._render_generation += 1
        generation = self._render_generation
        previous = self._publish_task
        self._publish_task = asyncio.create_task(
            self._publish(generation, previous, advertise),
            name=f"render:{self.host.id}:{generation}",
        )

    async def drain(self) -> None:
        """Wait until every requested publication has finished."""
        while self._publish_task is not None and not self._publish_task.done():
            await asyncio.gather(self._publish_task, return_exceptions=True)

    async def _publish(self, generation: int, previous: asyncio.Task | None, advertise: bool) -> None:
        if previous is not None:
            await asyncio.gather(previous, return_exceptions=True)

        if generation != self._render_generation:
            logger.debug(f"host={self.host.tag} render {generation} superseded, skipping")
            return

        if self.rendered is not None:
            await self._retire(self.rendered)
            self.rendered = None
            if generation != self._render_generation:
                return

        view = self.build_view(generation, advertise)
        try:
            message_id = await self._platform.render(view)
        except Exception:
            logger.exception(f"host={self.host.tag} failed to render generation {generation}")
            logger.warning(f"host={self.host.tag} has no live session message until its next update")
            return

        handle = RenderedHandle(message_id=message_id, channel_id=view.channel_id, generation=generation)
        if generation != self._render_generation:
            logger.info(f"host={self.host.tag} render {generation} landed stale, retiring {message_id}")
            await self._retire(handle)
            return

        logger.info(f"host={self.host.tag} rendered generation {generation} as message {message_id}")
        self.rendered = handle

    async def _withdraw(self, previous: asyncio.Task | None) -> None:
        if previous is not None:
            await asyncio.gather(previous, return_exceptions=True)

        if self.rendered is not None:
            await self._retire(self.rendered)
            self.rendered = None

    async def _retire(self, handle: RenderedHandle) -> None:
        logger.info(f"host={self.host.tag} retiring message {handle.message_id} (generation {handle.generation})")
        try:
            await self._platform.retire(handle)
        except Exception as e:
            logger.warning(f"host={self.host.tag} failed to retire message {handle.message_id}: {e}")

    # ==================== SNAPSHOT ====================

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            host=self.host,
            guild_id=self.guild_id,
            channel_id=self.channel_id,
            title=self.title,
            status=self.state,
            capacity=self.roster.capacity,
            connected_count=self.roster.connected_count,
            slots=[
                SlotSnapshot(index=index, member=slot.member)
                for index, slot in enumerate(self.roster.slots)
            ],
            team_count=self.team_count,
            team_size=self.team_size,
            start_time=self.start_time,
            early_cleanup_eligible=self.early_cleanup_eligible,
            render_generation=self._render_generation,
            rendered_message_id=self.rendered_message_id,
        )
