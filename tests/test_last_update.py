import pytest

from lendstate.errors import MathOverflowError
from lendstate.last_update import STALE_AFTER_SLOTS_ELAPSED, LastUpdate


def test_create_starts_stale():
    update = LastUpdate.create(7)
    assert update.slot == 7
    assert update.stale is True
    assert update.is_stale(7) is True


def test_default_is_not_stale():
    update = LastUpdate()
    assert update.slot == 0
    assert update.stale is False


def test_update_slot_clears_stale():
    update = LastUpdate.create(3)
    update.update_slot(10)
    assert update.slot == 10
    assert update.stale is False
    assert update.is_stale(10) is False


def test_stale_after_slots_elapsed():
    update = LastUpdate()
    update.update_slot(10)
    assert update.is_stale(10 + STALE_AFTER_SLOTS_ELAPSED) is True


def test_mark_stale():
    update = LastUpdate()
    update.update_slot(5)
    update.mark_stale()
    assert update.is_stale(5) is True


def test_slots_elapsed():
    update = LastUpdate(slot=100)
    assert update.slots_elapsed(100) == 0
    assert update.slots_elapsed(150) == 50


def test_slots_elapsed_backwards_raises():
    with pytest.raises(MathOverflowError):
        LastUpdate(slot=100).slots_elapsed(99)
    with pytest.raises(MathOverflowError):
        LastUpdate(slot=100).is_stale(99)


def test_equality_ignores_stale():
    assert LastUpdate(slot=4, stale=True) == LastUpdate(slot=4, stale=False)
    assert not (LastUpdate(slot=4) == LastUpdate(slot=5))


def test_ordering_by_slot():
    earlier, later = LastUpdate(slot=1, stale=True), LastUpdate(slot=2)
    assert earlier < later
    assert later >= earlier
    assert max(earlier, later) is later