"""Per-user spending caps over the relational schema.

The caller is identified by the X-User-Id header, falling back to the
configured demo user.
"""

from typing import Annotated

from fastapi import APIRouter, Query, status

from ...models import (
    CreateSpendingCapRequest,
    MerchantSpend,
    Notification,
    SpendingCap,
    SpendingCapProgress,
    UpdateSpendingCapRequest,
)
from ..dependencies import NotificationsDep, SpendingCapsDep, UserIdDep

router = APIRouter(prefix="/caps", tags=["caps"])


@router.get("", response_model=list[SpendingCapProgress])
def list_caps(user_id: UserIdDep, caps: SpendingCapsDep) -> list[SpendingCapProgress]:
    return caps.list_caps(user_id)


@router.post("", response_model=SpendingCap, status_code=status.HTTP_201_CREATED)
def create_cap(
    request: CreateSpendingCapRequest, user_id: UserIdDep, caps: SpendingCapsDep
) -> SpendingCap:
    return caps.create_cap(user_id, request)


@router.get("/merchants", response_model=list[MerchantSpend])
def merchant_history(
    user_id: UserIdDep,
    caps: SpendingCapsDep,
    days: Annotated[int, Query()] = 90,
) -> list[MerchantSpend]:
    """Where the user spent most, to suggest merchant caps."""
    return caps.merchant_history(user_id, days)


@router.post("/alerts", response_model=list[Notification])
def evaluate_alerts(user_id: UserIdDep, notifications: NotificationsDep) -> list[Notification]:
    return notifications.evaluate_alerts(user_id)


@router.get("/{cap_id}", response_model=SpendingCapProgress)
def get_cap(cap_id: str, user_id: UserIdDep, caps: SpendingCapsDep) -> SpendingCapProgress:
    return caps.cap_progress(caps.get_cap(user_id, cap_id))


@router.put("/{cap_id}", response_model=SpendingCap)
def update_cap(
    cap_id: str,
    request: UpdateSpendingCapRequest,
    user_id: UserIdDep,
    caps: SpendingCapsDep,
) -> SpendingCap:
    return caps.update_cap(user_id, cap_id, request)


@router.patch("/{cap_id}/toggle", response_model=SpendingCap)
def toggle_cap(cap_id: str, user_id: UserIdDep, caps: SpendingCapsDep) -> SpendingCap:
    return caps.toggle_cap(user_id, cap_id)


@router.delete("/{cap_id}")
def delete_cap(cap_id: str, user_id: UserIdDep, caps: SpendingCapsDep) -> dict:
    caps.delete_cap(user_id, cap_id)
    return {"success": True}
