"""User notifications and spending cap alerts."""

import logging
import uuid
from datetime import datetime
from typing import Any

from ..database import DatabaseManager
from ..exceptions import NotificationNotFoundError
from ..models import (
    CapPeriod,
    CapProgressStatus,
    Notification,
    NotificationType,
    SpendingCapProgress,
)
from .periods import period_start
from .spending_caps import SpendingCapService

logger = logging.getLogger(__name__)

_PERIOD_NOUNS = {
    CapPeriod.DAILY: "today",
    CapPeriod.WEEKLY: "this week",
    CapPeriod.MONTHLY: "this month",
    CapPeriod.YEARLY: "this year",
}


def _row_to_notification(row: dict[str, Any]) -> Notification:
    return Notification(
        id=row["id"],
        user_id=row["user_id"],
        type=row["type"],
        title=row["title"],
        message=row["message"],
        read=row["is_read"],
        cap_id=row["cap_id"],
        created_at=row["created_at"],
    )


def cap_alert_message(progress: SpendingCapProgress) -> str:
    when = _PERIOD_NOUNS[progress.period]
    if progress.status is CapProgressStatus.EXCEEDED:
        return f"You've exceeded your {progress.name} budget {when}"
    return f"You've spent {progress.percentage:.0f}% of your {progress.name} budget {when}"


class NotificationService:
    """Stores notifications and raises alerts for caps nearing their limit."""

    def __init__(self, db: DatabaseManager, caps: SpendingCapService):
        self.db = db
        self.caps = caps

    def create_notification(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        cap_id: str | None = None,
        period: datetime | None = None,
    ) -> Notification:
        notification_id = str(uuid.uuid4())
        self.db.execute(
            """
            INSERT INTO app.notifications
                (id, user_id, type, title, message, is_read, cap_id, period_start, created_at)
            VALUES (?, ?, ?, ?, ?, false, ?, ?, ?)
            """,
            [
                notification_id,
                user_id,
                notification_type.value,
                title,
                message,
                cap_id,
                period,
                self.db.now(),
            ],
        )
        return self.get_notification(user_id, notification_id)

    def get_notification(self, user_id: str, notification_id: str) -> Notification:
        row = self.db.fetch_one(
            "SELECT * FROM app.notifications WHERE id = ? AND user_id = ?",
            [notification_id, user_id],
        )
        if row is None:
            raise NotificationNotFoundError(notification_id)
        return _row_to_notification(row)

    def list_notifications(
        self, user_id: str, unread_only: bool = False
    ) -> list[Notification]:
        """A user's notifications, newest first."""
        self.caps.get_user(user_id)
        unread_filter = "AND NOT is_read" if unread_only else ""
        rows = self.db.fetch_all(
            f"""
            SELECT * FROM app.notifications
            WHERE user_id = ? {unread_filter}
            ORDER BY created_at DESC, id
            """,  # noqa: S608
            [user_id],
        )
        return [_row_to_notification(row) for row in rows]

    def mark_read(self, user_id: str, notification_id: str) -> Notification:
        with self.db.cursor():
            self.get_notification(user_id, notification_id)
            self.db.execute(
                "UPDATE app.notifications SET is_read = true WHERE id = ?",
                [notification_id],
            )
        return self.get_notification(user_id, notification_id)

    def evaluate_alerts(self, user_id: str) -> list[Notification]:
        """Alert on enabled caps at warning or exceeded status.

        Each cap alerts at most once per period; an exceeded cap that already
        sent a warning this period does not alert again. Users whose
        `notifications.capAlerts` preference is false get no alerts.

        Returns:
            The notifications created by this call
        """
        user = self.caps.get_user(user_id)
        if not user.preferences.get("notifications", {}).get("capAlerts", True):
            logger.debug("Cap alerts are turned off for user %s", user_id)
            return []

        created: list[Notification] = []
        now = self.db.now()

        with self.db.cursor():
            for progress in self.caps.list_caps(user_id):
                if not progress.enabled or progress.status is CapProgressStatus.SAFE:
                    continue

                current_period = period_start(progress.period, now)
                already_sent = self.db.fetch_value(
                    """
                    SELECT COUNT(*) FROM app.notifications
                    WHERE cap_id = ? AND period_start = ?
                    """,
                    [progress.id, current_period],
                )
                if already_sent:
                    continue

                created.append(
                    self.create_notification(
                        user_id,
                        NotificationType.CAP_ALERT,
                        "Spending Cap Alert",
                        cap_alert_message(progress),
                        cap_id=progress.id,
                        period=current_period,
                    )
                )

        if created:
            logger.info("Raised %d cap alert(s) for user %s", len(created), user_id)
        return created
