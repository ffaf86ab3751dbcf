"""Tracking of the slot at which state was last refreshed."""

from __future__ import annotations

from dataclasses import dataclass
from functools import total_ordering

from .errors import MathOverflowError

STALE_AFTER_SLOTS_ELAPSED = 1


@total_ordering
@dataclass(eq=False)
class LastUpdate:
    """Last slot when state was updated, and whether it was marked stale.

    Equality and ordering compare the slot only.
    """

    slot: int = 0
    stale: bool = False

    __hash__ = None

    @classmethod
    def create(cls, slot: int) -> LastUpdate:
        """Create a record for ``slot`` that starts out stale."""
        return cls(slot=slot, stale=True)

    def slots_elapsed(self, slot: int) -> int:
        elapsed = slot - self.slot
        if elapsed < 0:
            raise MathOverflowError()
        return elapsed

    def update_slot(self, slot: int) -> None:
        self.slot = slot
        self.stale = False

    def mark_stale(self) -> None:
        self.stale = True

    def is_stale(self, slot: int) -> bool:
        """Whether marked stale or last updated too long before ``slot``."""
        return self.stale or self.slots_elapsed(slot) >= STALE_AFTER_SLOTS_ELAPSED

    def __eq__(self, other):
        if not isinstance(other, LastUpdate):
            return NotImplemented
        return self.slot == other.slot

    def __lt__(self, other):
        if not isinstance(other, LastUpdate):
            return NotImplemented
        return self.slot < other.slot