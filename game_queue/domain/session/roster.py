"""Fixed-capacity roster of session slots."""

from __future__ import annotations

import random
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from game_queue.schemas import MemberRef


class SlotKind(str, Enum):
    EMPTY = "empty"
    OCCUPIED = "occupied"


@dataclass(frozen=True)
class Slot:
    """One roster position: either empty or occupied by exactly one member."""

    kind: SlotKind = SlotKind.EMPTY
    member: MemberRef | None = None

    @classmethod
    def empty(cls) -> Slot:
        return cls(SlotKind.EMPTY, None)

    @classmethod
    def occupied(cls, member: MemberRef) -> Slot:
        return cls(SlotKind.OCCUPIED, member)

    @property
    def is_empty(self) -> bool:
        return self.kind == SlotKind.EMPTY

    def holds(self, member: MemberRef) -> bool:
        return self.kind == SlotKind.OCCUPIED and self.member is not None and self.member.id == member.id


class Roster:
    """Ordered slot array backing a session.

    Positions matter: members fill the lowest free index, removal leaves a hole
    in place, and resizing keeps members where they were. ``connected_count`` is
    maintained alongside the slots and always equals the number of occupied ones.
    """

    def __init__(self, capacity: int, rng: random.Random | None = None):
        if capacity <= 0:
            raise ValueError(f"Roster capacity must be positive, got {capacity}")
        self._slots: list[Slot] = [Slot.empty() for _ in range(capacity)]
        self._connected_count = 0
        self._rng = rng or random.Random()

    @property
    def capacity(self) -> int:
        return len(self._slots)

    @property
    def connected_count(self) -> int:
        return self._connected_count

    @property
    def slots(self) -> tuple[Slot, ...]:
        return tuple(self._slots)

    @property
    def members(self) -> list[MemberRef]:
        """Occupying members in slot order."""
        return [slot.member for slot in self._slots if slot.member is not None]

    @property
    def is_full(self) -> bool:
        return self._connected_count >= self.capacity

    def index_of(self, member: MemberRef) -> int | None:
        for index, slot in enumerate(self._slots):
            if slot.holds(member):
                return index
        return None

    def contains(self, member: MemberRef) -> bool:
        return self.index_of(member) is not None

    def _first_empty_index(self) -> int | None:
        for index, slot in enumerate(self._slots):
            if slot.is_empty:
                return index
        return None

    def add_members(self, members: Iterable[MemberRef]) -> list[MemberRef]:
        """Place each member in the lowest free slot.

        Returns:
            The members that were not added (already present, or no free slot).
        """
        rejected: list[MemberRef] = []

        for member in members:
            if self.contains(member):
                logger.warning(f"{member.tag}(ID={member.id}) is already connected")
                rejected.append(member)
                continue

            index = self._first_empty_index()
            if index is None:
                logger.warning(f"Roster is full. Could not add {member.tag}(ID={member.id})")
                rejected.append(member)
                continue

            logger.info(f"Adding {member.tag}(ID={member.id}) at index {index}")
            self._slots[index] = Slot.occupied(member)
            self._connected_count += 1

        return rejected

    def remove_members(self, members: Iterable[MemberRef]) -> list[MemberRef]:
        """Vacate the slot of each member without shifting the others.

        Returns:
            The members that were not removed because they were not connected.
        """
        rejected: list[MemberRef] = []

        for member in members:
            index = self.index_of(member)
            if index is None:
                logger.warning(f"{member.tag}(ID={member.id}) is not connected")
                rejected.append(member)
                continue

            logger.info(f"Removing {member.tag}(ID={member.id}) from index {index}")
            self._slots[index] = Slot.empty()
            self._connected_count -= 1

        return rejected

    def resize(self, new_capacity: int) -> bool:
        """Change the number of slots, keeping members at their indices.

        A member sitting past the new end (shrinking below a sparse tail) moves to
        the lowest free index instead of being dropped.

        Returns:
            False, without touching the roster, if ``new_capacity`` is not positive
            or smaller than the number of connected members. True otherwise.
        """
        if new_capacity <= 0 or new_capacity < self._connected_count:
            logger.warning(
                f"Cannot resize to {new_capacity}. There's {self._connected_count} connected member(s)"
            )
            return False

        new_slots = [Slot.empty() for _ in range(new_capacity)]
        displaced: list[Slot] = []
        for index, slot in enumerate(self._slots):
            if slot.is_empty:
                continue
            if index < new_capacity:
                new_slots[index] = slot
            else:
                displaced.append(slot)

        for slot in displaced:
            free_index = next(i for i, s in enumerate(new_slots) if s.is_empty)
            logger.info(f"Moving {slot.member.tag} to index {free_index} after resize")
            new_slots[free_index] = slot

        logger.info(f"Resized roster {self.capacity} -> {new_capacity}")
        self._slots = new_slots
        return True

    def shuffle(self) -> None:
        """Uniformly permute all slots in place, empty ones included."""
        self._rng.shuffle(self._slots)

    def team_groups(self, team_count: int) -> list[list[Slot]]:
        """Partition slots into ``team_count`` groups of ``capacity // team_count``.

        Slots past ``team_count * team_size`` belong to no group.
        """
        team_size = self.capacity // team_count
        return [self._slots[i * team_size:(i + 1) * team_size] for i in range(team_count)]
