"""Simulated card locks per merchant."""

import logging
from typing import Any

from ..database import DatabaseManager
from ..exceptions import MerchantNotFoundError
from ..models import CardLock

logger = logging.getLogger(__name__)


def _row_to_lock(row: dict[str, Any]) -> CardLock:
    return CardLock(
        merchant_id=row["merchant_id"],
        locked=row["locked"],
        locked_at=row["locked_at"],
    )


class LocksService:
    """Read and write the `card_locks` table."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def set_card_lock(self, merchant_id: int, locked: bool) -> CardLock:
        """Lock or unlock the card at a merchant.

        Locking stamps `locked_at` with the current time; unlocking clears it.

        Raises:
            MerchantNotFoundError: If the merchant does not exist
        """
        locked_at = self.db.now() if locked else None

        with self.db.cursor():
            exists = self.db.fetch_value(
                "SELECT COUNT(*) FROM merchants WHERE merchant_id = ?", [merchant_id]
            )
            if not exists:
                raise MerchantNotFoundError(merchant_id)

            self.db.execute(
                """
                INSERT OR REPLACE INTO card_locks (merchant_id, locked, locked_at)
                VALUES (?, ?, ?)
                """,
                [merchant_id, locked, locked_at],
            )

        logger.info("Card %s at merchant %s", "locked" if locked else "unlocked", merchant_id)
        return CardLock(merchant_id=merchant_id, locked=locked, locked_at=locked_at)

    def get_card_lock(self, merchant_id: int) -> CardLock | None:
        row = self.db.fetch_one(
            "SELECT * FROM card_locks WHERE merchant_id = ?", [merchant_id]
        )
        return _row_to_lock(row) if row else None

    def is_locked(self, merchant_id: int) -> bool:
        lock = self.get_card_lock(merchant_id)
        return lock is not None and lock.locked

    def get_all_locks(self) -> list[CardLock]:
        """Every merchant whose card is currently locked."""
        rows = self.db.fetch_all(
            "SELECT * FROM card_locks WHERE locked ORDER BY merchant_id"
        )
        return [_row_to_lock(row) for row in rows]

    def unlock_card(self, merchant_id: int) -> None:
        self.db.execute(
            """
            UPDATE card_locks SET locked = false, locked_at = NULL
            WHERE merchant_id = ?
            """,
            [merchant_id],
        )
        logger.info("Card unlocked at merchant %s", merchant_id)
