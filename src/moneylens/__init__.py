"""MoneyLens: personal spending awareness service.

This package provides the backend for the MoneyLens app:
- DuckDB-backed mock merchant and transaction data
- Merchant and category spending caps with near/over-cap evaluation
- Simulated card locks and one-shot overrides
- Period-based spending caps, notifications and a deterministic demo seed
- FastAPI REST interface and a Typer CLI
"""

__version__ = "0.1.0"
