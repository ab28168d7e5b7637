"""Deterministic demo records for the relational app schema.

Seeding creates a demo user with three spending caps, a handful of recent
transactions, merchant profiles and notifications. Record ids are derived
from stable names, so running the seed again replaces the same rows instead
of piling up duplicates. An existing demo user is left untouched, password
included.
"""

import json
import logging
import uuid
from datetime import datetime, timedelta
from typing import Any

import bcrypt

from .database import DatabaseManager
from .logic.periods import start_of_day

logger = logging.getLogger(__name__)

DEMO_EMAIL = "test@moneylens.com"
DEMO_PASSWORD = "password123"
BCRYPT_ROUNDS = 12

_NAMESPACE = uuid.UUID("5b0f3c4e-8d7a-4c1e-9a57-6d2b1f0e9c11")

DEMO_PREFERENCES = {
    "notifications": {
        "capAlerts": True,
        "weeklyReports": True,
        "budgetWarnings": True,
        "transactionAlerts": False,
    },
    "map": {
        "defaultLocation": "Blacksburg, VA",
        "showHeatmap": True,
        "showMerchantPins": True,
    },
    "theme": "light",
}

# type, name, limit, period, category, merchant
DEMO_CAPS = [
    ("GLOBAL", "Monthly Budget", 3500.0, "MONTHLY", None, None),
    ("CATEGORY", "Food & Dining", 500.0, "MONTHLY", "Food & Dining", None),
    ("MERCHANT", "Starbucks Coffee", 100.0, "MONTHLY", None, "Starbucks Coffee"),
]

# merchant, amount, category, description, location, lat, lng, (days ago, hour, minute)
DEMO_TRANSACTIONS = [
    ("Starbucks Coffee", 5.47, "Food & Dining", "Morning coffee",
     "Main St, Blacksburg", 37.2296, -80.4139, (0, 8, 30)),
    ("Amazon", 129.99, "Shopping", "Online purchase",
     "Online", None, None, (1, 14, 20)),
    ("Shell Gas Station", 45.20, "Transportation", "Gas fill-up",
     "University Blvd, Blacksburg", 37.2431, -80.4242, (1, 16, 45)),
    ("Electric Company", 156.78, "Utilities", "Monthly electric bill",
     "Monthly Bill", None, None, (2, 9, 0)),
    ("McDonald's", 12.34, "Food & Dining", "Lunch",
     "South Main St, Blacksburg", 37.2176, -80.4118, (2, 12, 15)),
    ("Target", 89.45, "Shopping", "Groceries and household items",
     "University Blvd, Blacksburg", 37.2431, -80.4242, (3, 15, 30)),
]

# name, category, address, lat, lng, average spent, visits
DEMO_MERCHANTS = [
    ("Starbucks Coffee", "Food & Dining", "123 Main St, Blacksburg, VA",
     37.2296, -80.4139, 5.47, 1),
    ("Shell Gas Station", "Transportation", "789 South Main St, Blacksburg, VA",
     37.2176, -80.4118, 45.20, 1),
    ("Target", "Shopping", "456 University Blvd, Blacksburg, VA",
     37.2431, -80.4242, 89.45, 1),
]

# type, title, message
DEMO_NOTIFICATIONS = [
    ("CAP_ALERT", "Spending Cap Alert",
     "You've spent 85% of your Food & Dining budget this month"),
    ("BUDGET_WARNING", "Budget Warning",
     "You're approaching your monthly budget limit"),
]


def stable_id(*parts: object) -> str:
    """UUID derived from the given parts, identical across runs."""
    return str(uuid.uuid5(_NAMESPACE, "/".join(str(p) for p in parts)))


def hash_password(password: str) -> str:
    return bcrypt.hashpw(
        password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    ).decode("utf-8")


def seed_demo_records(
    db: DatabaseManager, reference: datetime | None = None
) -> dict[str, int]:
    """Populate the app schema with the demo user's data.

    Args:
        db: Target database
        reference: Transactions are dated in the days before this moment;
            defaults to the database clock

    Returns:
        dict: Number of rows written per table
    """
    reference = reference or db.now()
    today = start_of_day(reference)
    user_id = stable_id("user", DEMO_EMAIL)
    counts: dict[str, int] = {}

    logger.info("🌱 Seeding demo records for %s", DEMO_EMAIL)

    # Autocommit statements: deleted rows are re-inserted with the same ids
    with db.cursor():
        counts["users"] = _upsert_user(db, user_id, reference)

        db.execute("DELETE FROM app.spending_caps WHERE user_id = ?", [user_id])
        db.execute("DELETE FROM app.transactions WHERE user_id = ?", [user_id])
        db.execute("DELETE FROM app.notifications WHERE user_id = ?", [user_id])

        for cap_type, name, limit, period, category, merchant in DEMO_CAPS:
            db.execute(
                """
                INSERT INTO app.spending_caps
                    (id, user_id, type, name, limit_amount, period,
                     category, merchant, enabled, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, true, ?, ?)
                """,
                [
                    stable_id("cap", user_id, cap_type, name),
                    user_id,
                    cap_type,
                    name,
                    limit,
                    period,
                    category,
                    merchant,
                    reference,
                    reference,
                ],
            )
        counts["spending_caps"] = len(DEMO_CAPS)
        logger.info("✅ Spending caps created: %d", counts["spending_caps"])

        for index, row in enumerate(DEMO_TRANSACTIONS):
            merchant, amount, category, description, location, lat, lng, when = row
            days_ago, hour, minute = when
            occurred_at = today - timedelta(days=days_ago) + timedelta(hours=hour, minutes=minute)
            db.execute(
                """
                INSERT INTO app.transactions
                    (id, user_id, merchant, amount, category, description,
                     location, latitude, longitude, status, is_simulated, occurred_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 'COMPLETED', false, ?)
                """,
                [
                    stable_id("txn", user_id, index),
                    user_id,
                    merchant,
                    amount,
                    category,
                    description,
                    location,
                    lat,
                    lng,
                    occurred_at,
                ],
            )
        counts["transactions"] = len(DEMO_TRANSACTIONS)
        logger.info("✅ Sample transactions created: %d", counts["transactions"])

        counts["merchants"] = _upsert_merchants(db)
        logger.info("✅ Sample merchants created: %d", counts["merchants"])

        for index, (kind, title, message) in enumerate(DEMO_NOTIFICATIONS):
            db.execute(
                """
                INSERT INTO app.notifications
                    (id, user_id, type, title, message, is_read, created_at)
                VALUES (?, ?, ?, ?, ?, false, ?)
                """,
                [
                    stable_id("notification", user_id, index),
                    user_id,
                    kind,
                    title,
                    message,
                    reference - timedelta(minutes=index),
                ],
            )
        counts["notifications"] = len(DEMO_NOTIFICATIONS)
        logger.info("✅ Sample notifications created: %d", counts["notifications"])

    logger.info("🎉 Demo records seeded for %s", DEMO_EMAIL)
    return counts


def _upsert_user(db: DatabaseManager, user_id: str, reference: datetime) -> int:
    existing = db.fetch_value("SELECT COUNT(*) FROM app.users WHERE email = ?", [DEMO_EMAIL])
    if existing:
        logger.info("Demo user already exists: %s", DEMO_EMAIL)
        return 0

    db.execute(
        """
        INSERT INTO app.users
            (id, email, password_hash, first_name, last_name,
             monthly_budget_goal, preferences, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            user_id,
            DEMO_EMAIL,
            hash_password(DEMO_PASSWORD),
            "John",
            "Doe",
            3500.0,
            json.dumps(DEMO_PREFERENCES),
            reference,
        ],
    )
    logger.info("✅ User created: %s", DEMO_EMAIL)
    return 1


def _upsert_merchants(db: DatabaseManager) -> int:
    for name, category, address, lat, lng, average_spent, visits in DEMO_MERCHANTS:
        values: list[Any] = [category, address, lat, lng, average_spent, visits]
        existing = db.fetch_value("SELECT id FROM app.merchants WHERE name = ?", [name])
        if existing:
            db.execute(
                """
                UPDATE app.merchants
                SET category = ?, address = ?, latitude = ?, longitude = ?,
                    average_spent = ?, visit_count = ?
                WHERE id = ?
                """,
                [*values, existing],
            )
        else:
            db.execute(
                """
                INSERT INTO app.merchants
                    (id, name, category, address, latitude, longitude,
                     average_spent, visit_count)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [stable_id("merchant", name), name, *values],
            )
    return len(DEMO_MERCHANTS)
