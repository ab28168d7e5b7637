"""Domain errors for the MoneyLens service.

Each error carries the HTTP status the API layer answers with, so services
can raise them without knowing anything about FastAPI.
"""

from typing import Any


class MoneyLensError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 500

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """JSON body for the API response."""
        return {"error": self.message, **self.details}


class ValidationError(MoneyLensError):
    """Request data failed a business rule."""

    status_code = 400


class NotFoundError(MoneyLensError):
    """A referenced record does not exist."""

    status_code = 404


class MerchantNotFoundError(NotFoundError):
    def __init__(self, merchant_id: int):
        super().__init__("Merchant not found", merchant_id=merchant_id)


class RuleNotFoundError(NotFoundError):
    def __init__(self, rule_id: int):
        super().__init__("Rule not found", rule_id=rule_id)


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str):
        super().__init__("User not found", user_id=user_id)


class SpendingCapNotFoundError(NotFoundError):
    def __init__(self, cap_id: str):
        super().__init__("Spending cap not found", cap_id=cap_id)


class NotificationNotFoundError(NotFoundError):
    def __init__(self, notification_id: str):
        super().__init__("Notification not found", notification_id=notification_id)


class DuplicateSpendingCapError(ValidationError):
    def __init__(self) -> None:
        super().__init__("A spending cap already exists for this type and target")


class TransactionBlockedError(MoneyLensError):
    """A simulated purchase was refused by a cap or a card lock."""

    status_code = 400

    def __init__(self, reason: str, cap_status: dict[str, Any]):
        if reason == "card_locked":
            message = "Transaction blocked: card is locked for this merchant"
        else:
            message = "Transaction blocked: spending cap exceeded"
        super().__init__(message, reason=reason, capStatus=cap_status)
        self.reason = reason
        self.cap_status = cap_status
