"""Database inspection commands for MoneyLens CLI.

This module provides commands for checking what a DuckDB database holds and
running read-only SQL queries against it.
"""

import logging
from pathlib import Path

import duckdb
import typer

from moneylens.config import IN_MEMORY, get_database_path
from moneylens.database import DatabaseManager

app = typer.Typer(help="Database inspection commands")
logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("table", "csv", "json")


def _resolve_database(database: Path | None) -> Path:
    """Pick the database file and make sure it exists.

    Raises:
        typer.Exit: If no file database is configured or the file is missing
    """
    path = str(database) if database else get_database_path()
    if path == IN_MEMORY:
        logger.error("❌ No database file configured")
        logger.info("💡 Pass --database or set MONEYLENS_DATABASE__PATH")
        raise typer.Exit(1)

    db_path = Path(path)
    if not db_path.exists():
        logger.error(f"❌ Database file not found: {db_path}")
        logger.info("💡 Run 'moneylens seed' to create and populate the database first")
        raise typer.Exit(1)
    return db_path


@app.command("status")
def status(
    database: Path | None = typer.Option(
        None,
        "--database",
        "-d",
        help="Path to DuckDB database file (default: from config)",
    ),
) -> None:
    """List every table with its row count.

    Examples:
        moneylens db status --database data/moneylens.duckdb
    """
    db_path = _resolve_database(database)

    try:
        with DatabaseManager(db_path) as db:
            counts = db.table_counts()
    except Exception as e:
        logger.error(f"❌ Failed to read database: {e}")
        raise typer.Exit(1) from e

    logger.info(f"🦆 Database: {db_path}")
    for table_name, count in counts.items():
        typer.echo(f"{table_name}\t{count}")


@app.command("query")
def run_query(
    sql: str = typer.Argument(..., help="SQL query to execute"),
    database: Path | None = typer.Option(
        None,
        "--database",
        "-d",
        help="Path to DuckDB database file (default: from config)",
    ),
    output_format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format: table, csv, json",
    ),
) -> None:
    """Execute a read-only SQL query against the database.

    Examples:
        # Locked cards
        moneylens db query "SELECT * FROM card_locks WHERE locked"

        # Export to CSV
        moneylens db query "SELECT * FROM transactions" --format csv > output.csv
    """
    if output_format not in OUTPUT_FORMATS:
        logger.error(
            f"❌ Unknown format '{output_format}', use one of: {', '.join(OUTPUT_FORMATS)}"
        )
        raise typer.Exit(1)

    db_path = _resolve_database(database)

    try:
        with duckdb.connect(str(db_path), read_only=True) as conn:
            df = conn.execute(sql).pl()
    except duckdb.Error as e:
        logger.error(f"❌ Query failed: {e}")
        raise typer.Exit(1) from e

    if output_format == "csv":
        typer.echo(df.write_csv(), nl=False)
    elif output_format == "json":
        typer.echo(df.write_json())
    else:
        typer.echo(str(df))
