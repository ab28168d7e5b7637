"""Fixtures for API tests: an app over the shared in-memory database."""

from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from moneylens.api import create_app
from moneylens.config import MoneyLensSettings, SeedConfig
from moneylens.database import DatabaseManager


@pytest.fixture
def settings() -> MoneyLensSettings:
    """Settings that leave seeding to the fixtures."""
    return MoneyLensSettings(seed=SeedConfig(on_startup=False))


@pytest.fixture
def app(
    db: DatabaseManager, spend_history: None, demo_user: str, settings: MoneyLensSettings
) -> FastAPI:
    return create_app(settings, db)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client
