"""CLI command modules for MoneyLens."""
