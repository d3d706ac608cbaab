"""Tests for SessionRegistry: host ownership, commands and reaction input."""

import asyncio

import pytest

from game_queue.schemas import FooterMode, SessionState
from game_queue.utils.app_errors import AppError, AppErrorCode
from tests.fixtures.session_fixtures import (
    ALICE,
    BOB,
    CAROL,
    CHANNEL_ID,
    DAVE,
    ERIN,
    GUILD_ID,
    HOST,
    HOST_2,
    START_TIME,
)


async def start(registry, host=HOST, title=None, size=None):
    session = await registry.start_session(host, title, size, guild_id=GUILD_ID, channel_id=CHANNEL_ID)
    await registry.drain()
    return session


class TestStartSession:
    """Tests for SessionRegistry.start_session."""

    async def test_defaults_and_first_render(self, registry, platform):
        session = await start(registry)

        assert session.title == "Gaming Sesh"
        assert session.roster.capacity == 4
        assert session.start_time == START_TIME
        assert registry.get_session(HOST.id) is session
        assert session.accepting_input
        assert len(platform.live_session_messages()) == 1

    async def test_title_and_size(self, registry):
        session = await start(registry, title="Ranked", size=6)

        assert session.title == "Ranked"
        assert session.roster.capacity == 6

    async def test_second_session_for_host_rejected(self, registry):
        await start(registry)

        with pytest.raises(AppError) as exc_info:
            await start(registry, title="Another")

        assert exc_info.value.errcode == AppErrorCode.E_ALREADY_HAS_SESSION.value
        assert exc_info.value.errmesg == (
            "You already have an active session. Please !end your existing sessions first."
        )
        assert len(registry.sessions()) == 1

    @pytest.mark.parametrize("size", [0, -1, 51])
    async def test_invalid_size_rejected(self, registry, size):
        with pytest.raises(AppError) as exc_info:
            await start(registry, size=size)

        assert exc_info.value.errcode == AppErrorCode.E_INVALID_SIZE.value
        assert not registry.has_session(HOST.id)

    async def test_hosts_are_independent(self, registry):
        await start(registry, host=HOST)
        await start(registry, host=HOST_2)

        assert {s.host for s in registry.sessions()} == {HOST, HOST_2}


class TestScenarios:
    """End-to-end flows through the registry."""

    async def test_scenario_a_add_two_members(self, registry):
        await start(registry)

        result = await registry.add_members(HOST, ["alice", "bob"])

        session = registry.get_session(HOST.id)
        assert result.applied == [ALICE, BOB]
        assert result.rejected == []
        assert result.unresolved == []
        assert session.roster.connected_count == 2
        assert session.roster.capacity == 4

    async def test_scenario_b_full_session_rejects(self, registry):
        await start(registry, size=2)
        await registry.add_members(HOST, ["alice", "bob"])

        result = await registry.add_members(HOST, ["carol"])

        assert result.rejected_members == [CAROL]
        assert result.rejected[0].reason == AppErrorCode.E_SESSION_FULL
        assert registry.get_session(HOST.id).roster.connected_count == 2

    async def test_scenario_c_resize_below_connected(self, registry):
        await start(registry)
        await registry.add_members(HOST, ["alice", "bob", "carol"])

        with pytest.raises(AppError) as exc_info:
            await registry.resize(HOST, 2)

        session = registry.get_session(HOST.id)
        assert exc_info.value.errcode == AppErrorCode.E_RESIZE_BELOW_CONNECTED_COUNT.value
        assert session.roster.capacity == 4
        assert session.roster.members == [ALICE, BOB, CAROL]

    async def test_scenario_d_three_teams_of_two(self, registry):
        await start(registry, size=6)
        await registry.add_members(HOST, ["alice", "bob", "carol", "dave", "erin", "otherhost"])

        session = await registry.assign_teams(HOST, 3)
        await registry.drain()

        assert session.team_size == 2
        assert session.state == SessionState.TEAMS_ACTIVE
        groups = session.roster.team_groups(3)
        assert [len(g) for g in groups] == [2, 2, 2]
        assert session.roster.connected_count == 6

    async def test_scenario_e_concurrent_duplicate_join(self, registry):
        """Two joins of one member on one message add them once."""
        session = await start(registry)
        message_id = session.rendered_message_id

        results = await asyncio.gather(
            registry.on_member_joined_via_reaction(message_id, ALICE),
            registry.on_member_joined_via_reaction(message_id, ALICE),
        )

        assert sorted(results) == [False, True]
        assert session.roster.connected_count == 1


class TestMemberBatches:
    async def test_unresolved_names_reported(self, registry):
        await start(registry)

        result = await registry.add_members(HOST, ["alice", "nobody"])

        assert result.applied == [ALICE]
        assert result.unresolved == ["nobody"]
        assert not result.ok

    async def test_mention_resolves(self, registry):
        await start(registry)

        result = await registry.add_members(HOST, [f"<@!{BOB.id}>", DAVE.mention])

        assert result.applied == [BOB, DAVE]

    async def test_remove_members(self, registry):
        await start(registry)
        await registry.add_members(HOST, ["alice", "bob"])

        result = await registry.remove_members(HOST, ["alice", "erin"])

        assert result.applied == [ALICE]
        assert result.rejected_members == [ERIN]
        assert registry.get_session(HOST.id).roster.members == [BOB]

    async def test_command_without_session(self, registry):
        with pytest.raises(AppError) as exc_info:
            await registry.add_members(HOST, ["alice"])

        assert exc_info.value.errcode == AppErrorCode.E_NO_ACTIVE_SESSION.value
        assert exc_info.value.errmesg == "You have no active sessions?"

    async def test_resize_above_ceiling(self, registry):
        await start(registry)

        with pytest.raises(AppError) as exc_info:
            await registry.resize(HOST, 51)

        assert exc_info.value.errcode == AppErrorCode.E_INVALID_SIZE.value

    async def test_rename_blank_falls_back_to_default(self, registry):
        await start(registry, title="Ranked")

        session = await registry.rename(HOST, "   ")

        assert session.title == "Gaming Sesh"


class TestEndAndCancel:
    async def test_end_deregisters_and_renders_closed(self, registry, platform):
        await start(registry)

        session = await registry.end_session(HOST)
        await registry.drain()

        assert not registry.has_session(HOST.id)
        assert session.state == SessionState.ENDED
        live = platform.live_session_messages()
        assert len(live) == 1
        assert live[0].view.footer_mode == FooterMode.ENDED

    async def test_host_can_start_again_after_end(self, registry):
        await start(registry)
        await registry.end_session(HOST)

        session = await start(registry, title="Round two")

        assert registry.get_session(HOST.id) is session

    async def test_end_without_session(self, registry):
        with pytest.raises(AppError) as exc_info:
            await registry.end_session(HOST)

        assert exc_info.value.errcode == AppErrorCode.E_NO_ACTIVE_SESSION.value

    async def test_cancel_removes_message(self, registry, platform):
        await start(registry)

        await registry.cancel_session(HOST)
        await registry.drain()

        assert not registry.has_session(HOST.id)
        assert platform.live_session_messages() == []

    async def test_force_end_only_once(self, registry):
        session = await start(registry)

        first = await registry.force_end(session, reason="test")
        second = await registry.force_end(session, reason="test")

        assert (first, second) == (True, False)
        assert not registry.has_session(HOST.id)

    async def test_force_end_ignores_replaced_session(self, registry):
        """A stale reference to an ended session cannot end its host's new session."""
        old = await start(registry)
        await registry.end_session(HOST)
        new = await start(registry)

        assert await registry.force_end(old, reason="test") is False
        assert registry.get_session(HOST.id) is new

    async def test_force_end_rechecks_condition_under_lock(self, registry):
        session = await start(registry)
        checked = []

        def should_end(candidate):
            checked.append(candidate)
            return False

        assert await registry.force_end(session, reason="test", should_end=should_end) is False
        assert checked == [session]
        assert registry.get_session(HOST.id) is session
        assert not session.is_ended


class TestReactions:
    """Tests for reaction-driven join/leave."""

    async def test_join_and_leave(self, registry):
        session = await start(registry)

        joined = await registry.on_member_joined_via_reaction(session.rendered_message_id, ALICE)
        await registry.drain()
        left = await registry.on_member_left_via_reaction(session.rendered_message_id, ALICE)

        assert (joined, left) == (True, True)
        assert session.roster.connected_count == 0

    async def test_stale_message_id_ignored(self, registry):
        session = await start(registry)
        stale_id = session.rendered_message_id
        await registry.add_members(HOST, ["bob"])
        await registry.drain()

        changed = await registry.on_member_joined_via_reaction(stale_id, ALICE)

        assert changed is False
        assert session.roster.members == [BOB]

    async def test_unknown_message_ignored(self, registry):
        await start(registry)

        assert await registry.on_member_joined_via_reaction("ms_unknown", ALICE) is False

    async def test_reaction_while_render_in_flight_ignored(self, registry):
        session = await start(registry)
        message_id = session.rendered_message_id
        await registry.add_members(HOST, ["bob"])

        changed = await registry.on_member_joined_via_reaction(message_id, ALICE)

        assert changed is False
        assert ALICE not in session.roster.members

    async def test_reaction_on_ended_session_ignored(self, registry):
        session = await start(registry)
        message_id = session.rendered_message_id
        await registry.end_session(HOST)
        await registry.drain()

        assert await registry.on_member_joined_via_reaction(message_id, ALICE) is False
        assert await registry.on_member_joined_via_reaction(session.rendered_message_id, ALICE) is False

    async def test_leave_when_not_connected_is_noop(self, registry):
        session = await start(registry)
        generation = session.render_generation

        changed = await registry.on_member_left_via_reaction(session.rendered_message_id, ALICE)

        assert changed is False
        assert session.render_generation == generation

    async def test_join_on_full_session(self, registry):
        session = await start(registry, size=1)
        await registry.add_members(HOST, ["bob"])
        await registry.drain()

        changed = await registry.on_member_joined_via_reaction(session.rendered_message_id, ALICE)

        assert changed is False
        assert session.roster.members == [BOB]


class TestSnapshots:
    async def test_snapshots_are_copies(self, registry):
        await start(registry)
        await registry.add_members(HOST, ["alice"])

        [snapshot] = registry.snapshots()
        await registry.add_members(HOST, ["bob"])

        assert snapshot.connected_count == 1
        assert registry.get_session(HOST.id).roster.connected_count == 2

    async def test_sessions_list_is_detached(self, registry):
        await start(registry)

        sessions = registry.sessions()
        sessions.clear()

        assert registry.has_session(HOST.id)
