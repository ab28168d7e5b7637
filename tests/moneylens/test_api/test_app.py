"""Tests for the application factory, health check and error handling."""

from datetime import datetime

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pytest_mock import MockerFixture

from moneylens.api import create_app
from moneylens.config import MoneyLensSettings, SeedConfig, ServerConfig
from moneylens.database import DatabaseManager


class TestHealth:
    """GET /health."""

    @pytest.mark.unit
    def test_health(self, client: TestClient, now: datetime) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "timestamp": now.isoformat()}


class TestLifespan:
    """Startup seeding and shutdown."""

    @pytest.mark.integration
    def test_seeds_on_startup(self, empty_db: DatabaseManager) -> None:
        settings = MoneyLensSettings(
            seed=SeedConfig(random_seed=7, transaction_count=20, on_startup=True)
        )

        with TestClient(create_app(settings, empty_db)) as client:
            assert client.get("/transactions/summary?window=all").status_code == 200
            assert len(client.get("/caps").json()) == 3
            assert empty_db.fetch_value("SELECT COUNT(*) FROM transactions") == 20
            assert empty_db.fetch_value("SELECT COUNT(*) FROM merchants") == 10

    @pytest.mark.integration
    def test_closes_database_on_shutdown(self, app: FastAPI, db: DatabaseManager) -> None:
        with TestClient(app):
            pass

        with pytest.raises(RuntimeError, match="closed"):
            db.fetch_value("SELECT 1")

    @pytest.mark.unit
    def test_cors(self, empty_db: DatabaseManager) -> None:
        settings = MoneyLensSettings(
            seed=SeedConfig(on_startup=False),
            server=ServerConfig(cors_origins=["http://localhost:5173"]),
        )

        with TestClient(create_app(settings, empty_db)) as client:
            response = client.get("/health", headers={"Origin": "http://localhost:5173"})

        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


class TestErrorHandling:
    """Errors answer with a JSON `error` message."""

    @pytest.mark.unit
    def test_domain_error(self, client: TestClient) -> None:
        response = client.get("/merchants/999")

        assert response.status_code == 404
        assert response.json() == {"error": "Merchant not found", "merchant_id": 999}

    @pytest.mark.unit
    def test_request_validation_is_400(self, client: TestClient) -> None:
        response = client.get("/merchants/nearby", params={"lng": -80.4})

        assert response.status_code == 400
        body = response.json()
        assert body["error"]
        assert body["details"][0]["loc"] == ["query", "lat"]

    @pytest.mark.unit
    def test_malformed_body_is_400(self, client: TestClient) -> None:
        response = client.post(
            "/rules", content="not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400

    @pytest.mark.unit
    def test_unexpected_error_is_500(self, app: FastAPI, mocker: MockerFixture) -> None:
        mocker.patch.object(
            app.state.services.aggregates,
            "transaction_summary",
            side_effect=RuntimeError("disk on fire"),
        )

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/transactions/summary")

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
