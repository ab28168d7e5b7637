"""Tests for card lock persistence."""

from datetime import datetime

import pytest

from moneylens.database import DatabaseManager
from moneylens.exceptions import MerchantNotFoundError
from moneylens.logic import LocksService


@pytest.fixture
def locks(db: DatabaseManager) -> LocksService:
    return LocksService(db)


class TestCardLocks:
    """Locking and unlocking cards per merchant."""

    @pytest.mark.unit
    def test_no_lock_by_default(self, locks: LocksService) -> None:
        assert locks.get_card_lock(1) is None
        assert locks.is_locked(1) is False
        assert locks.get_all_locks() == []

    @pytest.mark.unit
    def test_lock_stamps_time(self, locks: LocksService, now: datetime) -> None:
        lock = locks.set_card_lock(1, True)

        assert lock.locked is True
        assert lock.locked_at == now
        assert locks.get_card_lock(1) == lock
        assert locks.is_locked(1) is True

    @pytest.mark.unit
    def test_unlock_via_set(self, locks: LocksService) -> None:
        locks.set_card_lock(1, True)
        lock = locks.set_card_lock(1, False)

        assert lock.locked is False
        assert lock.locked_at is None
        assert locks.is_locked(1) is False

    @pytest.mark.unit
    def test_all_locks_lists_only_locked(self, locks: LocksService) -> None:
        locks.set_card_lock(5, True)
        locks.set_card_lock(2, True)
        locks.set_card_lock(3, False)

        assert [lock.merchant_id for lock in locks.get_all_locks()] == [2, 5]

    @pytest.mark.unit
    def test_unlock_card(self, locks: LocksService) -> None:
        locks.set_card_lock(4, True)
        locks.unlock_card(4)

        lock = locks.get_card_lock(4)
        assert lock is not None
        assert lock.locked is False
        assert lock.locked_at is None

    @pytest.mark.unit
    def test_unknown_merchant(self, locks: LocksService) -> None:
        with pytest.raises(MerchantNotFoundError):
            locks.set_card_lock(999, True)
        assert locks.get_card_lock(999) is None
