"""HTTP API for MoneyLens."""

from .app import create_app

__all__ = ["create_app"]
