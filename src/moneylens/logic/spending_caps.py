"""Period-based spending caps for app users.

Unlike the monthly rules evaluated per merchant, these caps belong to a user
and reset daily, weekly, monthly or yearly. A cap can target one merchant,
one category, or all spending (GLOBAL).
"""

import json
import logging
import uuid
from datetime import timedelta
from enum import Enum
from typing import Any

from ..database import DatabaseManager
from ..exceptions import (
    DuplicateSpendingCapError,
    SpendingCapNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from ..models import (
    CapProgressStatus,
    CapScope,
    CreateSpendingCapRequest,
    MerchantSpend,
    SpendingCap,
    SpendingCapProgress,
    UpdateSpendingCapRequest,
    User,
)
from .periods import MAX_LOOKBACK_DAYS, period_start

logger = logging.getLogger(__name__)

MERCHANT_HISTORY_LIMIT = 50


def _row_to_cap(row: dict[str, Any]) -> SpendingCap:
    return SpendingCap(
        id=row["id"],
        user_id=row["user_id"],
        type=row["type"],
        name=row["name"],
        limit=row["limit_amount"],
        period=row["period"],
        category=row["category"],
        merchant=row["merchant"],
        enabled=row["enabled"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_user(row: dict[str, Any]) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        monthly_budget_goal=row["monthly_budget_goal"],
        preferences=json.loads(row["preferences"]) if row["preferences"] else {},
    )


class SpendingCapService:
    """CRUD and progress tracking for user spending caps."""

    def __init__(
        self,
        db: DatabaseManager,
        warning_threshold: float = 80.0,
        exceeded_threshold: float = 100.0,
    ):
        self.db = db
        self.warning_threshold = warning_threshold
        self.exceeded_threshold = exceeded_threshold

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_user(self, user_id: str) -> User:
        row = self.db.fetch_one("SELECT * FROM app.users WHERE id = ?", [user_id])
        if row is None:
            raise UserNotFoundError(user_id)
        return _row_to_user(row)

    def find_user_by_email(self, email: str) -> User | None:
        row = self.db.fetch_one("SELECT * FROM app.users WHERE email = ?", [email])
        return _row_to_user(row) if row else None

    # ------------------------------------------------------------------
    # Caps
    # ------------------------------------------------------------------

    def list_caps(self, user_id: str) -> list[SpendingCapProgress]:
        """All of a user's caps with current-period progress, newest first."""
        self.get_user(user_id)
        rows = self.db.fetch_all(
            """
            SELECT * FROM app.spending_caps
            WHERE user_id = ?
            ORDER BY created_at DESC, name
            """,
            [user_id],
        )
        return [self.cap_progress(_row_to_cap(row)) for row in rows]

    def get_cap(self, user_id: str, cap_id: str) -> SpendingCap:
        row = self.db.fetch_one(
            "SELECT * FROM app.spending_caps WHERE id = ? AND user_id = ?",
            [cap_id, user_id],
        )
        if row is None:
            raise SpendingCapNotFoundError(cap_id)
        return _row_to_cap(row)

    def cap_progress(self, cap: SpendingCap) -> SpendingCapProgress:
        """Spend against a cap since the start of its current period."""
        conditions = ["user_id = ?", "status = 'COMPLETED'", "occurred_at >= ?"]
        params: list[Any] = [cap.user_id, period_start(cap.period, self.db.now())]

        if cap.type is CapScope.CATEGORY:
            conditions.append("category = ?")
            params.append(cap.category)
        elif cap.type is CapScope.MERCHANT:
            conditions.append("merchant = ?")
            params.append(cap.merchant)

        spent = float(
            self.db.fetch_value(
                f"""
                SELECT COALESCE(SUM(amount), 0)
                FROM app.transactions
                WHERE {' AND '.join(conditions)}
                """,  # noqa: S608
                params,
            )
        )
        percentage = spent / cap.limit * 100

        if percentage >= self.exceeded_threshold:
            status = CapProgressStatus.EXCEEDED
        elif percentage >= self.warning_threshold:
            status = CapProgressStatus.WARNING
        else:
            status = CapProgressStatus.SAFE

        return SpendingCapProgress(
            **cap.model_dump(),
            spent=round(spent, 2),
            percentage=round(min(percentage, 100.0), 2),
            remaining=round(max(cap.limit - spent, 0.0), 2),
            status=status,
        )

    def create_cap(self, user_id: str, request: CreateSpendingCapRequest) -> SpendingCap:
        """Create a cap; a user may hold one cap per scope and target.

        Raises:
            UserNotFoundError: If the user does not exist
            DuplicateSpendingCapError: If an equivalent cap already exists
        """
        category = request.category if request.type is CapScope.CATEGORY else None
        merchant = request.merchant if request.type is CapScope.MERCHANT else None

        with self.db.cursor():
            self.get_user(user_id)

            duplicate = self.db.fetch_value(
                """
                SELECT COUNT(*) FROM app.spending_caps
                WHERE user_id = ? AND type = ?
                  AND category IS NOT DISTINCT FROM ?
                  AND merchant IS NOT DISTINCT FROM ?
                """,
                [user_id, request.type.value, category, merchant],
            )
            if duplicate:
                raise DuplicateSpendingCapError()

            cap_id = str(uuid.uuid4())
            now = self.db.now()
            self.db.execute(
                """
                INSERT INTO app.spending_caps
                    (id, user_id, type, name, limit_amount, period,
                     category, merchant, enabled, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, true, ?, ?)
                """,
                [
                    cap_id,
                    user_id,
                    request.type.value,
                    request.name,
                    request.limit,
                    request.period.value,
                    category,
                    merchant,
                    now,
                    now,
                ],
            )

        logger.info("Created %s cap '%s' for user %s", request.type.value, request.name, user_id)
        return self.get_cap(user_id, cap_id)

    def update_cap(
        self, user_id: str, cap_id: str, request: UpdateSpendingCapRequest
    ) -> SpendingCap:
        """Apply a partial update to a cap.

        Raises:
            SpendingCapNotFoundError: If the cap does not belong to the user
            ValidationError: If the update strips a scoped cap of its target
        """
        changes = request.model_dump(exclude_unset=True)

        with self.db.cursor():
            cap = self.get_cap(user_id, cap_id)
            if not changes:
                return cap

            if cap.type is CapScope.CATEGORY and "category" in changes and not changes["category"]:
                raise ValidationError("Category is required for category-type caps")
            if cap.type is CapScope.MERCHANT and "merchant" in changes and not changes["merchant"]:
                raise ValidationError("Merchant is required for merchant-type caps")

            columns = {"limit": "limit_amount"}
            assignments: list[str] = []
            values: list[Any] = []
            for field, value in changes.items():
                if value is None and field in ("name", "limit", "period", "enabled"):
                    continue
                assignments.append(f"{columns.get(field, field)} = ?")
                values.append(value.value if isinstance(value, Enum) else value)

            assignments.append("updated_at = ?")
            values.extend([self.db.now(), cap_id])
            self.db.execute(
                f"UPDATE app.spending_caps SET {', '.join(assignments)} WHERE id = ?",  # noqa: S608
                values,
            )

        logger.info("Updated cap %s: %s", cap_id, ", ".join(sorted(changes)))
        return self.get_cap(user_id, cap_id)

    def toggle_cap(self, user_id: str, cap_id: str) -> SpendingCap:
        """Flip a cap between enabled and disabled."""
        with self.db.cursor():
            cap = self.get_cap(user_id, cap_id)
            self.db.execute(
                "UPDATE app.spending_caps SET enabled = ?, updated_at = ? WHERE id = ?",
                [not cap.enabled, self.db.now(), cap_id],
            )
        return self.get_cap(user_id, cap_id)

    def delete_cap(self, user_id: str, cap_id: str) -> None:
        with self.db.cursor():
            self.get_cap(user_id, cap_id)
            self.db.execute("DELETE FROM app.spending_caps WHERE id = ?", [cap_id])
        logger.info("Deleted cap %s", cap_id)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def merchant_history(self, user_id: str, days: int = 90) -> list[MerchantSpend]:
        """Merchants the user spent the most at over the last `days` days."""
        if not 1 <= days <= MAX_LOOKBACK_DAYS:
            raise ValidationError(
                f"period must be between 1 and {MAX_LOOKBACK_DAYS} days", days=days
            )

        self.get_user(user_id)
        rows = self.db.fetch_all(
            f"""
            SELECT merchant, SUM(amount) AS total_spent, COUNT(*) AS transaction_count
            FROM app.transactions
            WHERE user_id = ?
              AND status = 'COMPLETED'
              AND occurred_at >= ?
            GROUP BY merchant
            ORDER BY total_spent DESC, merchant
            LIMIT {MERCHANT_HISTORY_LIMIT}
            """,  # noqa: S608
            [user_id, self.db.now() - timedelta(days=days)],
        )
        return [
            MerchantSpend(
                name=row["merchant"],
                total_spent=round(row["total_spent"], 2),
                transaction_count=row["transaction_count"],
                average_spent=round(row["total_spent"] / row["transaction_count"], 2),
            )
            for row in rows
        ]
