"""Monthly spending cap rules and their evaluation.

A merchant's effective cap is its own active merchant cap when one exists,
otherwise the active cap of its category. Month-to-date spend at or above
the near-cap threshold (80% by default) flags the merchant as near its cap;
at or above the over-cap threshold (100%) it is over.
"""

import logging
from threading import Lock
from typing import Any

from ..database import DatabaseManager
from ..exceptions import MerchantNotFoundError, RuleNotFoundError
from ..models import (
    CapStatus,
    CapType,
    CreateRuleRequest,
    Rule,
    RuleType,
    UpdateRuleRequest,
)
from .periods import month_start

logger = logging.getLogger(__name__)

# When several active rules target the same merchant or category, the most
# recently created one applies.
EFFECTIVE_CAPS_CTE = """
    merchant_caps AS (
        SELECT target_id AS merchant_id, arg_max(cap_amount, rule_id) AS cap_amount
        FROM rules
        WHERE type = 'merchant_cap' AND active
        GROUP BY target_id
    ),
    category_caps AS (
        SELECT category, arg_max(cap_amount, rule_id) AS cap_amount
        FROM rules
        WHERE type = 'category_cap' AND active
        GROUP BY category
    )
"""


def effective_cap(
    merchant_cap: float | None, category_cap: float | None
) -> tuple[CapType, float]:
    """Pick the cap that governs a merchant."""
    if merchant_cap and merchant_cap > 0:
        return CapType.MERCHANT, merchant_cap
    if category_cap and category_cap > 0:
        return CapType.CATEGORY, category_cap
    return CapType.NONE, 0.0


def _row_to_rule(row: dict[str, Any]) -> Rule:
    return Rule(
        rule_id=row["rule_id"],
        type=row["type"],
        target_id=row["target_id"],
        category=row["category"],
        cap_amount=row["cap_amount"],
        window=row["cap_window"],
        active=row["active"],
    )


class RulesEngine:
    """CRUD for cap rules, cap status checks, and one-shot override flags.

    Override flags live in memory only; one engine instance must be shared by
    every route so an override set through the card API is seen by the next
    simulated purchase.
    """

    def __init__(
        self,
        db: DatabaseManager,
        near_cap_threshold: float = 80.0,
        over_cap_threshold: float = 100.0,
    ):
        self.db = db
        self.near_cap_threshold = near_cap_threshold
        self.over_cap_threshold = over_cap_threshold
        self._override_flags: dict[int, bool] = {}
        self._override_lock = Lock()

    # ------------------------------------------------------------------
    # Rule CRUD
    # ------------------------------------------------------------------

    def create_rule(self, request: CreateRuleRequest) -> Rule:
        """Store a new cap rule.

        Raises:
            MerchantNotFoundError: If a merchant cap targets an unknown merchant
        """
        if request.type is RuleType.MERCHANT_CAP:
            target_id, category = request.target_id, None
            self._require_merchant(target_id)
        else:
            target_id, category = None, request.category

        rule_id = self.db.fetch_value(
            """
            INSERT INTO rules (type, target_id, category, cap_amount, cap_window, active)
            VALUES (?, ?, ?, ?, ?, ?)
            RETURNING rule_id
            """,
            [
                request.type.value,
                target_id,
                category,
                request.cap_amount,
                request.window,
                request.active,
            ],
        )
        logger.info(
            "Created %s rule %s (cap $%.2f)",
            request.type.value,
            rule_id,
            request.cap_amount,
        )
        return self.get_rule(rule_id)

    def get_rules(self, include_inactive: bool = False) -> list[Rule]:
        """List rules ordered by id; only active ones unless asked otherwise."""
        where = "" if include_inactive else "WHERE active"
        rows = self.db.fetch_all(f"SELECT * FROM rules {where} ORDER BY rule_id")  # noqa: S608
        return [_row_to_rule(row) for row in rows]

    def get_rule(self, rule_id: int) -> Rule:
        row = self.db.fetch_one("SELECT * FROM rules WHERE rule_id = ?", [rule_id])
        if row is None:
            raise RuleNotFoundError(rule_id)
        return _row_to_rule(row)

    def update_rule(self, rule_id: int, request: UpdateRuleRequest) -> Rule:
        """Change a rule's cap amount and/or active flag.

        Raises:
            RuleNotFoundError: If no rule has this id
        """
        with self.db.cursor():
            rule = self.get_rule(rule_id)

            updates: list[str] = []
            values: list[Any] = []
            if request.cap_amount is not None:
                updates.append("cap_amount = ?")
                values.append(request.cap_amount)
            if request.active is not None:
                updates.append("active = ?")
                values.append(request.active)

            if not updates:
                return rule

            values.append(rule_id)
            self.db.execute(
                f"UPDATE rules SET {', '.join(updates)} WHERE rule_id = ?",  # noqa: S608
                values,
            )
            logger.info("Updated rule %s: %s", rule_id, ", ".join(updates))
            return self.get_rule(rule_id)

    def delete_rule(self, rule_id: int) -> None:
        """Remove a rule.

        Raises:
            RuleNotFoundError: If no rule has this id
        """
        with self.db.cursor():
            self.get_rule(rule_id)
            self.db.execute("DELETE FROM rules WHERE rule_id = ?", [rule_id])
        logger.info("Deleted rule %s", rule_id)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def check_cap_status(self, merchant_id: int) -> CapStatus:
        """Evaluate a merchant's month-to-date spend against its effective cap.

        Unknown merchants and merchants without a cap get an all-clear status.
        """
        row = self.db.fetch_one(
            f"""
            WITH {EFFECTIVE_CAPS_CTE}
            SELECT
                m.merchant_id,
                COALESCE((
                    SELECT SUM(t.amount)
                    FROM transactions t
                    WHERE t.merchant_id = m.merchant_id AND t.ts >= ?
                ), 0) AS mtd_spend,
                mc.cap_amount AS merchant_cap,
                cc.cap_amount AS category_cap
            FROM merchants m
            LEFT JOIN merchant_caps mc ON mc.merchant_id = m.merchant_id
            LEFT JOIN category_caps cc ON cc.category = m.category
            WHERE m.merchant_id = ?
            """,  # noqa: S608
            [month_start(self.db.now()), merchant_id],
        )

        if row is None:
            return CapStatus()

        current_spend = float(row["mtd_spend"])
        cap_type, cap_amount = effective_cap(row["merchant_cap"], row["category_cap"])
        percentage = current_spend / cap_amount * 100 if cap_amount > 0 else 0.0

        return CapStatus(
            near_cap=self.near_cap_threshold <= percentage < self.over_cap_threshold,
            over_cap=cap_amount > 0 and percentage >= self.over_cap_threshold,
            cap_type=cap_type,
            cap_amount=cap_amount,
            current_spend=round(current_spend, 2),
            percentage=round(percentage, 2),
        )

    # ------------------------------------------------------------------
    # Override flags
    # ------------------------------------------------------------------

    def set_override_flag(self, merchant_id: int, enabled: bool = True) -> None:
        """Allow the next purchase at this merchant past a cap or lock.

        Raises:
            MerchantNotFoundError: If the merchant does not exist
        """
        self._require_merchant(merchant_id)
        with self._override_lock:
            self._override_flags[merchant_id] = enabled
        logger.info("Override for merchant %s set to %s", merchant_id, enabled)

    def get_override_flag(self, merchant_id: int) -> bool:
        with self._override_lock:
            return self._override_flags.get(merchant_id, False)

    def clear_override_flag(self, merchant_id: int) -> None:
        with self._override_lock:
            self._override_flags.pop(merchant_id, None)

    def _require_merchant(self, merchant_id: int | None) -> None:
        exists = self.db.fetch_value(
            "SELECT COUNT(*) FROM merchants WHERE merchant_id = ?", [merchant_id]
        )
        if not exists:
            raise MerchantNotFoundError(merchant_id)
