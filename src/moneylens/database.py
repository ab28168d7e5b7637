"""DuckDB database management for the MoneyLens service.

This module owns the single DuckDB connection used by the API: it creates the
schema from the canonical SQL files, serializes access from worker threads,
and seeds the mock merchants and transactions the map and rules run against.
"""

import logging
import random
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path
from threading import RLock
from typing import Any, NamedTuple

import duckdb
import polars as pl

from .config import IN_MEMORY

logger = logging.getLogger(__name__)

QueryParams = list[Any] | dict[str, Any]

SQL_DIR = Path(__file__).parent / "sql" / "schema"

SCHEMA_FILES = [
    "main_merchants.sql",
    "main_transactions.sql",
    "main_rules.sql",
    "main_card_locks.sql",
    "app_schema.sql",
    "app_users.sql",
    "app_transactions.sql",
    "app_spending_caps.sql",
    "app_merchants.sql",
    "app_notifications.sql",
]


class SeedMerchant(NamedTuple):
    merchant_id: int
    name: str
    category: str
    lat: float
    lng: float


SEED_MERCHANTS = [
    SeedMerchant(1, "Blacksburg Coffee", "Dining", 37.2296, -80.4139),
    SeedMerchant(2, "Corner Bar", "Bars", 37.2298, -80.4142),
    SeedMerchant(3, "VT Grocers", "Groceries", 37.2301, -80.4135),
    SeedMerchant(4, "Pizza House", "Dining", 37.2292, -80.4129),
    SeedMerchant(5, "Green Market", "Groceries", 37.2310, -80.4150),
    SeedMerchant(6, "Tech Store", "Electronics", 37.2305, -80.4145),
    SeedMerchant(7, "Gas Station", "Transportation", 37.2315, -80.4160),
    SeedMerchant(8, "Bookstore", "Education", 37.2285, -80.4120),
    SeedMerchant(9, "Gym", "Health", 37.2320, -80.4155),
    SeedMerchant(10, "Pharmacy", "Health", 37.2290, -80.4130),
]

# (minimum, spread) of a typical purchase per category, in dollars
CATEGORY_AMOUNT_RANGES: dict[str, tuple[float, float]] = {
    "Dining": (5.0, 25.0),
    "Bars": (10.0, 40.0),
    "Groceries": (20.0, 80.0),
    "Electronics": (50.0, 200.0),
    "Transportation": (20.0, 60.0),
    "Education": (20.0, 100.0),
    "Health": (10.0, 50.0),
}
DEFAULT_AMOUNT_RANGE = (5.0, 30.0)


def utc_now() -> datetime:
    """Current UTC time as a naive timestamp, matching DuckDB TIMESTAMP columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class DatabaseManager:
    """Owns the DuckDB connection shared by every service.

    DuckDB connections are not safe for concurrent use, and FastAPI runs
    sync endpoints on a thread pool, so every query goes through a
    re-entrant lock. Services that need check-then-write atomicity hold
    `cursor()` across several statements.
    """

    def __init__(
        self,
        path: str | Path = IN_MEMORY,
        clock: Callable[[], datetime] | None = None,
    ):
        """Open the database and make sure the schema exists.

        Args:
            path: DuckDB file path, or ':memory:' for an in-process database
            clock: Source of "now"; injectable so tests can freeze time
        """
        self.path = str(path)
        self.clock = clock or utc_now
        self._lock = RLock()

        if self.path != IN_MEMORY:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        logger.info("Opening DuckDB database: %s", self.path)
        self._conn: duckdb.DuckDBPyConnection | None = duckdb.connect(self.path)
        self.initialize_tables()

    # ------------------------------------------------------------------
    # Connection access
    # ------------------------------------------------------------------

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        """The live connection.

        Raises:
            RuntimeError: If the database has been closed.
        """
        if self._conn is None:
            raise RuntimeError("Database connection is closed")
        return self._conn

    @contextmanager
    def cursor(self) -> Iterator[duckdb.DuckDBPyConnection]:
        """Hold the database lock for a block of statements."""
        with self._lock:
            yield self.connection

    def execute(self, sql: str, params: QueryParams | None = None) -> None:
        """Execute a statement that returns no rows."""
        with self.cursor() as conn:
            conn.execute(sql, params or [])

    def fetch_all(self, sql: str, params: QueryParams | None = None) -> list[dict[str, Any]]:
        """Execute a query and return every row as a dict."""
        with self.cursor() as conn:
            result = conn.execute(sql, params or [])
            columns = [desc[0] for desc in result.description]
            return [dict(zip(columns, row, strict=True)) for row in result.fetchall()]

    def fetch_one(self, sql: str, params: QueryParams | None = None) -> dict[str, Any] | None:
        """Execute a query and return the first row as a dict, or None."""
        with self.cursor() as conn:
            result = conn.execute(sql, params or [])
            columns = [desc[0] for desc in result.description]
            row = result.fetchone()
            return dict(zip(columns, row, strict=True)) if row else None

    def fetch_value(self, sql: str, params: QueryParams | None = None) -> Any:
        """Execute a query and return the first column of the first row."""
        with self.cursor() as conn:
            row = conn.execute(sql, params or []).fetchone()
            return row[0] if row else None

    def now(self) -> datetime:
        """Current time according to the configured clock."""
        return self.clock()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def initialize_tables(self) -> None:
        """Create every table by executing the SQL schema files in order.

        Raises:
            FileNotFoundError: If a schema file is missing from the package.
        """
        with self.cursor() as conn:
            for sql_file in SCHEMA_FILES:
                sql_path = SQL_DIR / sql_file
                if not sql_path.exists():
                    raise FileNotFoundError(f"SQL schema file not found: {sql_path}")
                conn.execute(sql_path.read_text())
                logger.debug("Executed schema file: %s", sql_file)

        logger.info("Database schema ready")

    def table_counts(self) -> dict[str, int]:
        """Row counts for every user table, keyed by schema-qualified name."""
        tables = self.fetch_all("""
            SELECT schema_name, table_name
            FROM duckdb_tables()
            WHERE NOT internal
            ORDER BY schema_name, table_name
        """)

        counts: dict[str, int] = {}
        for table in tables:
            schema, name = table["schema_name"], table["table_name"]
            # Names come from the catalog, not from user input
            counts[f"{schema}.{name}"] = self.fetch_value(
                f'SELECT COUNT(*) FROM "{schema}"."{name}"'  # noqa: S608
            )
        return counts

    # ------------------------------------------------------------------
    # Mock data
    # ------------------------------------------------------------------

    def seed_data(
        self,
        random_seed: int | None = None,
        transaction_count: int = 150,
        history_days: int = 90,
    ) -> dict[str, int]:
        """Replace merchants and transactions with fresh mock data.

        Args:
            random_seed: Seed for the generator; the same seed and clock give
                the same data
            transaction_count: Number of transactions to generate
            history_days: Transactions are spread over this many past days

        Returns:
            dict: Row counts for the seeded tables
        """
        logger.info("Seeding mock merchants and transactions")

        merchants = self._merchant_frame()
        transactions = self._transaction_frame(
            random.Random(random_seed), transaction_count, history_days
        )

        # Autocommit statements: DuckDB rejects re-inserting a deleted key
        # inside the same transaction
        with self.cursor() as conn:
            conn.execute("DELETE FROM transactions")
            conn.execute("DELETE FROM merchants")

            conn.register("seed_merchants", merchants.to_arrow())
            conn.register("seed_transactions", transactions.to_arrow())
            try:
                conn.execute("""
                    INSERT INTO merchants (merchant_id, name, category, lat, lng)
                    SELECT merchant_id, name, category, lat, lng
                    FROM seed_merchants
                """)
                conn.execute("""
                    INSERT INTO transactions (txn_id, merchant_id, amount, ts, category)
                    SELECT txn_id, merchant_id, amount, ts, category
                    FROM seed_transactions
                """)
            finally:
                conn.unregister("seed_merchants")
                conn.unregister("seed_transactions")

        counts = {"merchants": len(merchants), "transactions": len(transactions)}
        logger.info(
            "Seeded %d merchants and %d transactions",
            counts["merchants"],
            counts["transactions"],
        )
        return counts

    @staticmethod
    def _merchant_frame() -> pl.DataFrame:
        return pl.DataFrame(
            [m._asdict() for m in SEED_MERCHANTS],
            schema={
                "merchant_id": pl.Int32,
                "name": pl.Utf8,
                "category": pl.Utf8,
                "lat": pl.Float64,
                "lng": pl.Float64,
            },
        )

    def _transaction_frame(
        self, rng: random.Random, count: int, history_days: int
    ) -> pl.DataFrame:
        now = self.now()
        rows: list[dict[str, Any]] = []

        for txn_id in range(1, count + 1):
            merchant = rng.choice(SEED_MERCHANTS)
            low, spread = CATEGORY_AMOUNT_RANGES.get(
                merchant.category, DEFAULT_AMOUNT_RANGE
            )
            ts = now - timedelta(
                days=rng.randrange(history_days),
                hours=rng.randrange(24),
                minutes=rng.randrange(60),
            )
            rows.append({
                "txn_id": txn_id,
                "merchant_id": merchant.merchant_id,
                "amount": round(rng.random() * spread + low, 2),
                "ts": ts,
                "category": merchant.category,
            })

        return pl.DataFrame(
            rows,
            schema={
                "txn_id": pl.Int64,
                "merchant_id": pl.Int32,
                "amount": pl.Float64,
                "ts": pl.Datetime("us"),
                "category": pl.Utf8,
            },
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the DuckDB connection if open."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info("DuckDB connection closed")

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
