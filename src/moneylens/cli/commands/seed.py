"""Seed a DuckDB database with mock and demo data."""

import logging
from pathlib import Path

import typer

from moneylens.config import IN_MEMORY, get_settings
from moneylens.database import DatabaseManager
from moneylens.seed import seed_demo_records

logger = logging.getLogger(__name__)


def seed(
    database: Path | None = typer.Option(
        None,
        "--database",
        "-d",
        help="Target DuckDB database file (default: from config)",
    ),
    mock: bool = typer.Option(
        True,
        "--mock/--no-mock",
        help="Also replace merchants and transactions with generated mock data",
    ),
    random_seed: int | None = typer.Option(
        None,
        "--random-seed",
        help="Seed for the mock data generator (default: from config)",
    ),
) -> None:
    """Create the schema and write the demo user, caps and notifications.

    Examples:
        moneylens seed --database data/moneylens.duckdb
        moneylens seed -d data/moneylens.duckdb --no-mock
        moneylens seed -d data/moneylens.duckdb --random-seed 42
    """
    try:
        settings = get_settings()
        path = str(database) if database else settings.database.path
        if path == IN_MEMORY:
            logger.error("❌ Seeding needs a database file")
            logger.info("💡 Pass --database or set MONEYLENS_DATABASE__PATH")
            raise typer.Exit(1)

        logger.info(f"🌱 Seeding database: {path}")
        with DatabaseManager(path) as db:
            results: dict[str, int] = {}
            if mock:
                results.update({
                    f"main.{table}": count
                    for table, count in db.seed_data(
                        random_seed=random_seed
                        if random_seed is not None
                        else settings.seed.random_seed,
                        transaction_count=settings.seed.transaction_count,
                        history_days=settings.seed.history_days,
                    ).items()
                })
            results.update({
                f"app.{table}": count for table, count in seed_demo_records(db).items()
            })

        logger.info("📊 Seeding Results:")
        for table_name, count in results.items():
            logger.info(f"  {table_name}: {count:,} records")
        logger.info("✅ Database seeded")

    except typer.Exit:
        raise
    except Exception as e:
        logger.error(f"❌ Seeding failed: {e}")
        raise typer.Exit(1) from e
