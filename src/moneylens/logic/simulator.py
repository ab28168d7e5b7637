"""Simulated card purchases.

A purchase at a merchant that is over its cap, or whose card is locked, is
refused unless a one-shot override was set for that merchant. An accepted
purchase that pushes the merchant over its cap locks the card.
"""

import logging

from ..database import DatabaseManager
from ..exceptions import MerchantNotFoundError, TransactionBlockedError, ValidationError
from ..models import SimulateTransactionRequest, SimulationResult
from .aggregates import AggregatesService
from .locks import LocksService
from .rules_engine import RulesEngine

logger = logging.getLogger(__name__)


class TransactionSimulator:
    """Runs the purchase flow across the rules engine, locks and aggregates."""

    def __init__(
        self,
        db: DatabaseManager,
        rules_engine: RulesEngine,
        locks: LocksService,
        aggregates: AggregatesService,
    ):
        self.db = db
        self.rules_engine = rules_engine
        self.locks = locks
        self.aggregates = aggregates

    def simulate(self, request: SimulateTransactionRequest) -> SimulationResult:
        """Attempt a purchase and return the merchant's updated position.

        Raises:
            ValidationError: If the amount is not positive
            MerchantNotFoundError: If the merchant does not exist
            TransactionBlockedError: If a cap or lock refuses the purchase
        """
        merchant_id = request.merchant_id
        if request.amount <= 0:
            raise ValidationError("Invalid merchant_id or amount", amount=request.amount)

        # The cap check and the insert must not interleave with another purchase
        with self.db.cursor():
            merchant = self.db.fetch_one(
                "SELECT category FROM merchants WHERE merchant_id = ?", [merchant_id]
            )
            if merchant is None:
                raise MerchantNotFoundError(merchant_id)

            has_override = self.rules_engine.get_override_flag(merchant_id)
            cap_status = self.rules_engine.check_cap_status(merchant_id)

            if not has_override:
                if cap_status.over_cap:
                    reason = "cap_exceeded"
                elif self.locks.is_locked(merchant_id):
                    reason = "card_locked"
                else:
                    reason = None
                if reason is not None:
                    logger.info(
                        "Blocked $%.2f at merchant %s: %s", request.amount, merchant_id, reason
                    )
                    raise TransactionBlockedError(
                        reason, cap_status.model_dump(mode="json", by_alias=True)
                    )

            txn_id = self.db.fetch_value(
                """
                INSERT INTO transactions (txn_id, merchant_id, amount, ts, category)
                SELECT COALESCE(MAX(txn_id), 0) + 1, ?, ?, ?, ?
                FROM transactions
                RETURNING txn_id
                """,
                [merchant_id, request.amount, self.db.now(), merchant["category"]],
            )

            if has_override:
                self.rules_engine.clear_override_flag(merchant_id)

            new_status = self.rules_engine.check_cap_status(merchant_id)
            if new_status.over_cap:
                self.locks.set_card_lock(merchant_id, locked=True)

            updated_merchant = self.aggregates.merchant_aggregates(merchant_id)

        logger.info(
            "Recorded transaction %s: $%.2f at merchant %s%s",
            txn_id,
            request.amount,
            merchant_id,
            " (override)" if has_override else "",
        )
        return SimulationResult(
            transaction_id=txn_id,
            merchant=updated_merchant,
            cap_status=new_status,
            overrode=has_override,
        )
