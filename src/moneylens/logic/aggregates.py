"""Spend aggregates behind the map and the budget panels.

All windows are computed relative to the database clock: "last 30 days"
means transactions at or after now minus 30 days, "month to date" means at
or after midnight on the first of the current month.
"""

import logging
from datetime import timedelta
from typing import Any

from ..database import DatabaseManager
from ..exceptions import MerchantNotFoundError, ValidationError
from ..models import (
    CategoryAmount,
    MerchantAmount,
    MerchantWithAggregates,
    MonthlyCategorySpend,
    TransactionSummary,
)
from .periods import MAX_LOOKBACK_DAYS, month_start, parse_window
from .rules_engine import EFFECTIVE_CAPS_CTE, effective_cap

logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6_371_000
DEFAULT_RADIUS_METERS = 600
TOP_MERCHANT_LIMIT = 5

# Haversine distance from ($lat, $lng) to the merchant row `m`
_DISTANCE_SQL = f"""
    2 * {EARTH_RADIUS_METERS} * asin(sqrt(
        pow(sin(radians(m.lat - $lat) / 2), 2)
        + cos(radians($lat)) * cos(radians(m.lat))
        * pow(sin(radians(m.lng - $lng) / 2), 2)
    ))
"""

_MERCHANT_AGGREGATES_SQL = f"""
    WITH {EFFECTIVE_CAPS_CTE},
    spend AS (
        SELECT
            merchant_id,
            SUM(CASE WHEN ts >= $last30_start THEN amount ELSE 0 END) AS last30_spend,
            SUM(CASE WHEN ts >= $month_start THEN amount ELSE 0 END) AS mtd_spend
        FROM transactions
        GROUP BY merchant_id
    )
    SELECT
        m.merchant_id,
        m.name,
        m.category,
        m.lat,
        m.lng,
        COALESCE(s.last30_spend, 0) AS last30_spend,
        COALESCE(s.mtd_spend, 0) AS mtd_spend,
        mc.cap_amount AS merchant_cap,
        cc.cap_amount AS category_cap,
        COALESCE(cl.locked, false) AS locked,
        {{distance}} AS distance_meters
    FROM merchants m
    LEFT JOIN spend s ON s.merchant_id = m.merchant_id
    LEFT JOIN merchant_caps mc ON mc.merchant_id = m.merchant_id
    LEFT JOIN category_caps cc ON cc.category = m.category
    LEFT JOIN card_locks cl ON cl.merchant_id = m.merchant_id
"""


def _round_cents(value: float) -> float:
    return round(float(value), 2)


def _to_merchant_aggregates(row: dict[str, Any]) -> MerchantWithAggregates:
    _, cap_amount = effective_cap(row["merchant_cap"], row["category_cap"])
    mtd_spend = float(row["mtd_spend"])
    distance = row["distance_meters"]

    return MerchantWithAggregates(
        merchant_id=row["merchant_id"],
        name=row["name"],
        category=row["category"],
        lat=row["lat"],
        lng=row["lng"],
        last30_spend=_round_cents(row["last30_spend"]),
        mtd_spend=_round_cents(mtd_spend),
        monthly_budget_left=_round_cents(max(0.0, cap_amount - mtd_spend)),
        over_cap=cap_amount > 0 and mtd_spend >= cap_amount,
        locked=bool(row["locked"]),
        distance_meters=round(distance, 1) if distance is not None else None,
    )


class AggregatesService:
    """Read-side queries over merchants, transactions, rules and locks."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def _window_params(self) -> dict[str, Any]:
        now = self.db.now()
        return {
            "last30_start": now - timedelta(days=30),
            "month_start": month_start(now),
        }

    def merchants_nearby(
        self,
        lat: float,
        lng: float,
        radius_meters: float = DEFAULT_RADIUS_METERS,
    ) -> list[MerchantWithAggregates]:
        """Merchants within `radius_meters` of a point, nearest first.

        Raises:
            ValidationError: If the coordinates or radius are out of range
        """
        if not -90 <= lat <= 90 or not -180 <= lng <= 180:
            raise ValidationError("Invalid lat/lng parameters", lat=lat, lng=lng)
        if radius_meters <= 0:
            raise ValidationError("radiusMeters must be positive", radius=radius_meters)

        sql = _MERCHANT_AGGREGATES_SQL.format(distance=_DISTANCE_SQL)
        rows = self.db.fetch_all(
            f"""
            SELECT * FROM ({sql})
            WHERE distance_meters <= $radius
            ORDER BY distance_meters, merchant_id
            """,  # noqa: S608
            {**self._window_params(), "lat": lat, "lng": lng, "radius": radius_meters},
        )
        logger.debug(
            "Found %d merchants within %sm of (%s, %s)", len(rows), radius_meters, lat, lng
        )
        return [_to_merchant_aggregates(row) for row in rows]

    def merchant_aggregates(self, merchant_id: int) -> MerchantWithAggregates:
        """Spend and cap position of a single merchant.

        Raises:
            MerchantNotFoundError: If the merchant does not exist
        """
        sql = _MERCHANT_AGGREGATES_SQL.format(distance="NULL::DOUBLE")
        row = self.db.fetch_one(
            f"{sql} WHERE m.merchant_id = $merchant_id",
            {**self._window_params(), "merchant_id": merchant_id},
        )
        if row is None:
            raise MerchantNotFoundError(merchant_id)
        return _to_merchant_aggregates(row)

    def transaction_summary(self, window: str = "30d") -> TransactionSummary:
        """Spend per category and the top merchants over a window.

        Args:
            window: "<N>d" for the last N days, or "all"
        """
        days = parse_window(window)
        if days is None:
            date_filter, params = "", {}
        else:
            date_filter = "WHERE t.ts >= $start"
            params = {"start": self.db.now() - timedelta(days=days)}

        by_category = self.db.fetch_all(
            f"""
            SELECT t.category, SUM(t.amount) AS amount
            FROM transactions t
            {date_filter}
            GROUP BY t.category
            ORDER BY amount DESC, t.category
            """,  # noqa: S608
            params,
        )
        top_merchants = self.db.fetch_all(
            f"""
            SELECT t.merchant_id, m.name, SUM(t.amount) AS amount
            FROM transactions t
            JOIN merchants m ON t.merchant_id = m.merchant_id
            {date_filter}
            GROUP BY t.merchant_id, m.name
            ORDER BY amount DESC, t.merchant_id
            LIMIT {TOP_MERCHANT_LIMIT}
            """,  # noqa: S608
            params,
        )

        return TransactionSummary(
            by_category=[
                CategoryAmount(category=r["category"], amount=_round_cents(r["amount"]))
                for r in by_category
            ],
            top_merchants=[
                MerchantAmount(
                    merchant_id=r["merchant_id"],
                    name=r["name"],
                    amount=_round_cents(r["amount"]),
                )
                for r in top_merchants
            ],
        )

    def monthly_spend_by_category(self, days: int = 90) -> list[MonthlyCategorySpend]:
        """Spend per calendar month and category over the last `days` days."""
        if not 1 <= days <= MAX_LOOKBACK_DAYS:
            raise ValidationError(
                f"days must be between 1 and {MAX_LOOKBACK_DAYS}", days=days
            )

        rows = self.db.fetch_all(
            """
            SELECT strftime(ts, '%Y-%m') AS year_month, category, SUM(amount) AS amount
            FROM transactions
            WHERE ts >= $start
            GROUP BY year_month, category
            ORDER BY year_month, category
            """,
            {"start": self.db.now() - timedelta(days=days)},
        )
        return [
            MonthlyCategorySpend(
                month=r["year_month"],
                category=r["category"],
                amount=_round_cents(r["amount"]),
            )
            for r in rows
        ]
