"""Tests for notifications and cap alerts."""

import json

import pytest

from moneylens.database import DatabaseManager
from moneylens.exceptions import NotificationNotFoundError
from moneylens.logic import NotificationService, SpendingCapService
from moneylens.models import (
    CapPeriod,
    CapScope,
    CreateSpendingCapRequest,
    NotificationType,
)
from moneylens.seed import DEMO_PREFERENCES


@pytest.fixture
def caps(db: DatabaseManager) -> SpendingCapService:
    return SpendingCapService(db)


@pytest.fixture
def notifications(db: DatabaseManager, caps: SpendingCapService) -> NotificationService:
    return NotificationService(db, caps)


class TestInbox:
    """Listing and reading notifications."""

    @pytest.mark.unit
    def test_demo_notifications_newest_first(
        self, notifications: NotificationService, demo_user: str
    ) -> None:
        inbox = notifications.list_notifications(demo_user)

        assert [n.type for n in inbox] == [
            NotificationType.CAP_ALERT,
            NotificationType.BUDGET_WARNING,
        ]
        assert inbox[0].message == "You've spent 85% of your Food & Dining budget this month"
        assert not any(n.read for n in inbox)

    @pytest.mark.unit
    def test_mark_read(self, notifications: NotificationService, demo_user: str) -> None:
        first = notifications.list_notifications(demo_user)[0]

        marked = notifications.mark_read(demo_user, first.id)

        assert marked.read is True
        unread = notifications.list_notifications(demo_user, unread_only=True)
        assert len(unread) == 1
        assert unread[0].id != first.id

    @pytest.mark.unit
    def test_mark_read_other_users_notification(
        self, notifications: NotificationService, demo_user: str
    ) -> None:
        first = notifications.list_notifications(demo_user)[0]
        with pytest.raises(NotificationNotFoundError):
            notifications.mark_read("someone-else", first.id)

    @pytest.mark.unit
    def test_create(
        self, db: DatabaseManager, notifications: NotificationService, demo_user: str
    ) -> None:
        created = notifications.create_notification(
            demo_user, NotificationType.SYSTEM, "Welcome", "Your account is ready"
        )

        assert created.type is NotificationType.SYSTEM
        assert created.created_at == db.now()
        assert created.cap_id is None
        assert created.id in {n.id for n in notifications.list_notifications(demo_user)}


class TestCapAlerts:
    """Alerts for caps at warning or exceeded status."""

    @pytest.mark.unit
    def test_no_alerts_while_safe(
        self, notifications: NotificationService, demo_user: str
    ) -> None:
        assert notifications.evaluate_alerts(demo_user) == []

    @pytest.mark.unit
    def test_warning_and_exceeded(
        self,
        caps: SpendingCapService,
        notifications: NotificationService,
        demo_user: str,
    ) -> None:
        amazon = caps.create_cap(
            demo_user,
            CreateSpendingCapRequest(
                type=CapScope.MERCHANT, name="Amazon", limit=100,
                period=CapPeriod.MONTHLY, merchant="Amazon",
            ),
        )
        caps.create_cap(
            demo_user,
            CreateSpendingCapRequest(
                type=CapScope.CATEGORY, name="Shopping", limit=250,
                period=CapPeriod.MONTHLY, category="Shopping",
            ),
        )

        alerts = notifications.evaluate_alerts(demo_user)

        assert [a.message for a in alerts] == [
            "You've exceeded your Amazon budget this month",
            "You've spent 88% of your Shopping budget this month",
        ]
        assert all(a.type is NotificationType.CAP_ALERT for a in alerts)
        assert alerts[0].cap_id == amazon.id

    @pytest.mark.unit
    def test_once_per_period(
        self,
        caps: SpendingCapService,
        notifications: NotificationService,
        demo_user: str,
    ) -> None:
        caps.create_cap(
            demo_user,
            CreateSpendingCapRequest(
                type=CapScope.MERCHANT, name="Amazon", limit=100,
                period=CapPeriod.MONTHLY, merchant="Amazon",
            ),
        )

        assert len(notifications.evaluate_alerts(demo_user)) == 1
        assert notifications.evaluate_alerts(demo_user) == []
        assert len(notifications.list_notifications(demo_user)) == 3

    @pytest.mark.unit
    def test_disabled_caps_skipped(
        self,
        caps: SpendingCapService,
        notifications: NotificationService,
        demo_user: str,
    ) -> None:
        cap = caps.create_cap(
            demo_user,
            CreateSpendingCapRequest(
                type=CapScope.MERCHANT, name="Amazon", limit=100,
                period=CapPeriod.MONTHLY, merchant="Amazon",
            ),
        )
        caps.toggle_cap(demo_user, cap.id)

        assert notifications.evaluate_alerts(demo_user) == []

    @pytest.mark.unit
    def test_cap_alerts_preference_off(
        self,
        db: DatabaseManager,
        caps: SpendingCapService,
        notifications: NotificationService,
        demo_user: str,
    ) -> None:
        caps.create_cap(
            demo_user,
            CreateSpendingCapRequest(
                type=CapScope.MERCHANT, name="Amazon", limit=100,
                period=CapPeriod.MONTHLY, merchant="Amazon",
            ),
        )
        preferences = {**DEMO_PREFERENCES, "notifications": {"capAlerts": False}}
        db.execute(
            "UPDATE app.users SET preferences = ? WHERE id = ?",
            [json.dumps(preferences), demo_user],
        )

        assert notifications.evaluate_alerts(demo_user) == []
        assert len(notifications.list_notifications(demo_user)) == 2
