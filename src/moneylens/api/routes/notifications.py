"""Notification inbox endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query

from ...models import Notification
from ..dependencies import NotificationsDep, UserIdDep

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[Notification])
def list_notifications(
    user_id: UserIdDep,
    notifications: NotificationsDep,
    unread: Annotated[bool, Query()] = False,
) -> list[Notification]:
    return notifications.list_notifications(user_id, unread_only=unread)


@router.patch("/{notification_id}/read", response_model=Notification)
def mark_read(
    notification_id: str, user_id: UserIdDep, notifications: NotificationsDep
) -> Notification:
    return notifications.mark_read(user_id, notification_id)
