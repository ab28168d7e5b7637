"""MoneyLens CLI package.

This package provides the command-line interface for running the API server,
seeding databases and inspecting their contents.
"""

from .main import app, main

__all__ = ["app", "main"]
