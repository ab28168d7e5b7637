"""Tests for the spending cap and notification endpoints."""

import pytest
from fastapi.testclient import TestClient


def cap_named(client: TestClient, name: str) -> dict:
    return next(cap for cap in client.get("/caps").json() if cap["name"] == name)


class TestCapRoutes:
    """/caps for the demo user."""

    @pytest.mark.unit
    def test_list(self, client: TestClient) -> None:
        response = client.get("/caps")

        assert response.status_code == 200
        caps = response.json()
        assert [c["name"] for c in caps] == ["Food & Dining", "Monthly Budget", "Starbucks Coffee"]
        assert caps[1]["spent"] == 439.23
        assert caps[1]["status"] == "safe"

    @pytest.mark.unit
    def test_create(self, client: TestClient, demo_user: str) -> None:
        response = client.post(
            "/caps",
            json={
                "type": "MERCHANT",
                "name": "Amazon",
                "limit": 100,
                "period": "MONTHLY",
                "merchant": "Amazon",
            },
        )

        assert response.status_code == 201
        cap = response.json()
        assert cap["user_id"] == demo_user
        assert cap["limit"] == 100.0
        assert cap_named(client, "Amazon")["status"] == "exceeded"

    @pytest.mark.unit
    def test_negative_limit_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/caps",
            json={"type": "GLOBAL", "name": "Budget", "limit": -100, "period": "MONTHLY"},
        )

        assert response.status_code == 400
        assert "greater than 0" in response.json()["error"]
        assert len(client.get("/caps").json()) == 3

    @pytest.mark.unit
    @pytest.mark.parametrize("literal", ["Infinity", "NaN"])
    def test_non_finite_limit_rejected(self, client: TestClient, literal: str) -> None:
        response = client.post(
            "/caps",
            content=(
                '{"type": "GLOBAL", "name": "Budget", "period": "MONTHLY", '
                f'"limit": {literal}}}'
            ),
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert len(client.get("/caps").json()) == 3

    @pytest.mark.unit
    def test_update_non_finite_limit_rejected(self, client: TestClient) -> None:
        cap_id = cap_named(client, "Starbucks Coffee")["id"]

        response = client.put(
            f"/caps/{cap_id}",
            content='{"limit": Infinity}',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert client.get(f"/caps/{cap_id}").json()["limit"] == 100.0

    @pytest.mark.unit
    def test_category_cap_needs_category(self, client: TestClient) -> None:
        response = client.post(
            "/caps",
            json={"type": "CATEGORY", "name": "Fun", "limit": 50, "period": "WEEKLY"},
        )
        assert response.status_code == 400
        assert "Category is required" in response.json()["error"]

    @pytest.mark.unit
    def test_duplicate_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/caps",
            json={
                "type": "CATEGORY",
                "name": "Dining again",
                "limit": 50,
                "period": "WEEKLY",
                "category": "Food & Dining",
            },
        )
        assert response.status_code == 400

    @pytest.mark.unit
    def test_get_update_toggle_delete(self, client: TestClient) -> None:
        cap_id = cap_named(client, "Starbucks Coffee")["id"]

        detail = client.get(f"/caps/{cap_id}").json()
        assert detail["spent"] == 5.47

        updated = client.put(f"/caps/{cap_id}", json={"limit": 10, "name": "Coffee"})
        assert updated.status_code == 200
        assert updated.json()["name"] == "Coffee"
        assert client.get(f"/caps/{cap_id}").json()["percentage"] == 54.7

        toggled = client.patch(f"/caps/{cap_id}/toggle")
        assert toggled.json()["enabled"] is False

        assert client.delete(f"/caps/{cap_id}").json() == {"success": True}
        assert client.get(f"/caps/{cap_id}").status_code == 404

    @pytest.mark.unit
    def test_update_invalid_limit(self, client: TestClient) -> None:
        cap_id = cap_named(client, "Starbucks Coffee")["id"]
        assert client.put(f"/caps/{cap_id}", json={"limit": 0}).status_code == 400

    @pytest.mark.unit
    def test_unknown_cap(self, client: TestClient) -> None:
        response = client.get("/caps/not-a-cap")

        assert response.status_code == 404
        assert response.json() == {"error": "Spending cap not found", "cap_id": "not-a-cap"}

    @pytest.mark.unit
    def test_user_header(self, client: TestClient, demo_user: str) -> None:
        assert len(client.get("/caps", headers={"X-User-Id": demo_user}).json()) == 3

        response = client.get("/caps", headers={"X-User-Id": "stranger"})
        assert response.status_code == 404
        assert response.json()["error"] == "User not found"

    @pytest.mark.unit
    def test_merchant_history(self, client: TestClient) -> None:
        response = client.get("/caps/merchants", params={"days": 30})

        assert response.status_code == 200
        assert response.json()[0] == {
            "name": "Electric Company",
            "total_spent": 156.78,
            "transaction_count": 1,
            "average_spent": 156.78,
        }

    @pytest.mark.unit
    @pytest.mark.parametrize("days", [0, 36501, 99999999999])
    def test_merchant_history_invalid_days(self, client: TestClient, days: int) -> None:
        response = client.get("/caps/merchants", params={"days": days})

        assert response.status_code == 400
        assert response.json()["days"] == days

    @pytest.mark.unit
    def test_alerts(self, client: TestClient) -> None:
        client.post(
            "/caps",
            json={
                "type": "CATEGORY",
                "name": "Shopping",
                "limit": 250,
                "period": "MONTHLY",
                "category": "Shopping",
            },
        )

        first = client.post("/caps/alerts").json()
        assert [a["message"] for a in first] == [
            "You've spent 88% of your Shopping budget this month"
        ]
        assert client.post("/caps/alerts").json() == []


class TestNotificationRoutes:
    """/notifications for the demo user."""

    @pytest.mark.unit
    def test_list_and_mark_read(self, client: TestClient) -> None:
        inbox = client.get("/notifications").json()
        assert [n["type"] for n in inbox] == ["CAP_ALERT", "BUDGET_WARNING"]

        response = client.patch(f"/notifications/{inbox[0]['id']}/read")
        assert response.status_code == 200
        assert response.json()["read"] is True

        unread = client.get("/notifications", params={"unread": True}).json()
        assert [n["type"] for n in unread] == ["BUDGET_WARNING"]

    @pytest.mark.unit
    def test_mark_unknown_read(self, client: TestClient) -> None:
        assert client.patch("/notifications/missing/read").status_code == 404
