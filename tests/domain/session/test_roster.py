"""Tests for Roster slot bookkeeping."""

import random

import pytest

from game_queue.domain.session.roster import Roster, Slot, SlotKind
from tests.fixtures.session_fixtures import ALICE, BOB, CAROL, DAVE, ERIN


def occupant_ids(roster: Roster) -> list[str | None]:
    return [slot.member.id if slot.member else None for slot in roster.slots]


class TestSlot:
    """Tests for the Slot variant."""

    def test_empty_slot(self):
        slot = Slot.empty()
        assert slot.kind == SlotKind.EMPTY
        assert slot.is_empty
        assert slot.member is None
        assert not slot.holds(ALICE)

    def test_occupied_slot_holds_member_by_id(self):
        slot = Slot.occupied(ALICE)
        assert not slot.is_empty
        assert slot.holds(ALICE.model_copy(update={"display_name": "Renamed"}))
        assert not slot.holds(BOB)


class TestConstruction:
    def test_new_roster_is_all_empty(self):
        roster = Roster(4)
        assert roster.capacity == 4
        assert roster.connected_count == 0
        assert all(slot.is_empty for slot in roster.slots)

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_non_positive_capacity_rejected(self, capacity):
        with pytest.raises(ValueError):
            Roster(capacity)


class TestAddMembers:
    """Tests for Roster.add_members."""

    def test_fills_lowest_free_slots_in_order(self):
        roster = Roster(4)

        rejected = roster.add_members([ALICE, BOB])

        assert rejected == []
        assert occupant_ids(roster) == [ALICE.id, BOB.id, None, None]
        assert roster.connected_count == 2

    def test_fills_hole_left_by_removal(self):
        """A removal leaves a hole that the next add fills first."""
        roster = Roster(4)
        roster.add_members([ALICE, BOB, CAROL])
        roster.remove_members([BOB])

        roster.add_members([DAVE])

        assert occupant_ids(roster) == [ALICE.id, DAVE.id, CAROL.id, None]

    def test_duplicate_member_rejected(self):
        roster = Roster(4)
        roster.add_members([ALICE])

        rejected = roster.add_members([ALICE, BOB])

        assert rejected == [ALICE]
        assert roster.connected_count == 2

    def test_duplicate_inside_one_batch_added_once(self):
        roster = Roster(4)

        rejected = roster.add_members([ALICE, ALICE])

        assert rejected == [ALICE]
        assert roster.connected_count == 1

    def test_overflow_is_partial(self):
        """Members beyond capacity are rejected; the ones that fit stay added."""
        roster = Roster(2)

        rejected = roster.add_members([ALICE, BOB, CAROL])

        assert rejected == [CAROL]
        assert roster.is_full
        assert occupant_ids(roster) == [ALICE.id, BOB.id]


class TestRemoveMembers:
    def test_removal_leaves_hole_without_shifting(self):
        roster = Roster(3)
        roster.add_members([ALICE, BOB, CAROL])

        rejected = roster.remove_members([ALICE])

        assert rejected == []
        assert occupant_ids(roster) == [None, BOB.id, CAROL.id]
        assert roster.connected_count == 2

    def test_missing_member_rejected(self):
        roster = Roster(3)
        roster.add_members([ALICE])

        rejected = roster.remove_members([BOB, ALICE])

        assert rejected == [BOB]
        assert roster.connected_count == 0


class TestResize:
    """Tests for Roster.resize."""

    def test_grow_keeps_positions(self):
        roster = Roster(2)
        roster.add_members([ALICE, BOB])

        assert roster.resize(4) is True

        assert occupant_ids(roster) == [ALICE.id, BOB.id, None, None]
        assert roster.connected_count == 2

    def test_shrink_drops_empty_tail(self):
        roster = Roster(5)
        roster.add_members([ALICE, BOB])

        assert roster.resize(2) is True

        assert occupant_ids(roster) == [ALICE.id, BOB.id]

    def test_shrink_below_connected_count_rejected(self):
        roster = Roster(4)
        roster.add_members([ALICE, BOB, CAROL])

        assert roster.resize(2) is False

        assert roster.capacity == 4
        assert occupant_ids(roster) == [ALICE.id, BOB.id, CAROL.id, None]

    @pytest.mark.parametrize("capacity", [0, -3])
    def test_non_positive_capacity_rejected(self, capacity):
        roster = Roster(2)
        assert roster.resize(capacity) is False
        assert roster.capacity == 2

    def test_shrink_past_sparse_tail_relocates_member(self):
        """A member beyond the new end moves to the lowest free index instead of vanishing."""
        roster = Roster(5)
        roster.add_members([ALICE, BOB, CAROL, DAVE, ERIN])
        roster.remove_members([ALICE, BOB, CAROL])  # [_, _, _, DAVE, ERIN]

        assert roster.resize(2) is True

        assert sorted(occupant_ids(roster)) == sorted([DAVE.id, ERIN.id])
        assert roster.connected_count == 2

    def test_shrink_keeps_members_inside_new_range(self):
        roster = Roster(4)
        roster.add_members([ALICE, BOB, CAROL])
        roster.remove_members([BOB])  # [ALICE, _, CAROL, _]

        assert roster.resize(3) is True

        assert occupant_ids(roster) == [ALICE.id, None, CAROL.id]


class TestShuffleAndTeams:
    def test_shuffle_permutes_all_slots(self):
        roster = Roster(6, rng=random.Random(3))
        roster.add_members([ALICE, BOB, CAROL])
        before = occupant_ids(roster)

        roster.shuffle()

        assert sorted(occupant_ids(roster), key=str) == sorted(before, key=str)
        assert roster.connected_count == 3

    def test_team_groups_even_split(self):
        roster = Roster(4)
        roster.add_members([ALICE, BOB, CAROL, DAVE])

        groups = roster.team_groups(2)

        assert [[s.member.id for s in g] for g in groups] == [
            [ALICE.id, BOB.id],
            [CAROL.id, DAVE.id],
        ]

    def test_team_groups_floor_division_drops_remainder(self):
        """With 5 slots and 2 teams, the fifth slot belongs to no team."""
        roster = Roster(5)
        roster.add_members([ALICE, BOB, CAROL, DAVE, ERIN])

        groups = roster.team_groups(2)

        assert [len(g) for g in groups] == [2, 2]
        grouped = {s.member.id for g in groups for s in g}
        assert ERIN.id not in grouped
