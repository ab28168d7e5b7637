"""Shared pytest fixtures for moneylens tests.

Every database fixture runs in memory against a frozen clock: Sunday
2025-06-15 at noon UTC. The `db` fixture holds the ten fixed merchants and no
transactions; tests add the transactions they reason about.
"""

from collections.abc import Callable, Generator
from datetime import datetime

import pytest

from moneylens.config import IN_MEMORY, clear_settings_cache
from moneylens.database import DatabaseManager
from moneylens.seed import DEMO_EMAIL, seed_demo_records, stable_id

FROZEN_NOW = datetime(2025, 6, 15, 12, 0)

AddTransaction = Callable[..., int]


@pytest.fixture(autouse=True)
def clean_settings_state() -> Generator[None, None, None]:
    """Clear the settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch: pytest.MonkeyPatch) -> None:
    """Use the cheapest bcrypt cost so demo seeding stays fast."""
    monkeypatch.setattr("moneylens.seed.BCRYPT_ROUNDS", 4)


@pytest.fixture
def now() -> datetime:
    return FROZEN_NOW


@pytest.fixture
def empty_db() -> Generator[DatabaseManager, None, None]:
    """Schema only, no rows."""
    db = DatabaseManager(IN_MEMORY, clock=lambda: FROZEN_NOW)
    yield db
    db.close()


@pytest.fixture
def db(empty_db: DatabaseManager) -> DatabaseManager:
    """The fixed merchants and an empty transaction table."""
    empty_db.seed_data(transaction_count=0)
    return empty_db


@pytest.fixture
def add_transaction(db: DatabaseManager) -> AddTransaction:
    """Insert a transaction at a merchant, using the merchant's category."""

    def _add(merchant_id: int, amount: float, ts: datetime) -> int:
        category = db.fetch_value(
            "SELECT category FROM merchants WHERE merchant_id = ?", [merchant_id]
        )
        txn_id = db.fetch_value("SELECT COALESCE(MAX(txn_id), 0) + 1 FROM transactions")
        db.execute(
            "INSERT INTO transactions VALUES (?, ?, ?, ?, ?)",
            [txn_id, merchant_id, amount, ts, category],
        )
        return txn_id

    return _add


@pytest.fixture
def spend_history(add_transaction: AddTransaction) -> None:
    """A small, hand-checked purchase history.

    - Blacksburg Coffee (1, Dining): $40 on Jun 10, $20 on May 25
    - VT Grocers (3, Groceries): $65 on Jun 1
    - Tech Store (6, Electronics): $150 on Apr 1
    """
    add_transaction(1, 40.0, datetime(2025, 6, 10, 9, 0))
    add_transaction(1, 20.0, datetime(2025, 5, 25, 18, 30))
    add_transaction(3, 65.0, datetime(2025, 6, 1, 9, 0))
    add_transaction(6, 150.0, datetime(2025, 4, 1, 14, 0))


@pytest.fixture
def demo_user(db: DatabaseManager) -> str:
    """Seed the demo records and return the demo user's id."""
    seed_demo_records(db)
    return stable_id("user", DEMO_EMAIL)
