"""Pydantic models for MoneyLens records, requests and responses.

Field names follow the JSON the web client already consumes: snake_case for
records, camelCase for the cap status block and the `radiusMeters` query.
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class RuleType(str, Enum):
    """Kinds of monthly cap rules."""

    MERCHANT_CAP = "merchant_cap"
    CATEGORY_CAP = "category_cap"


class CapType(str, Enum):
    """Which rule produced the effective cap for a merchant."""

    MERCHANT = "merchant"
    CATEGORY = "category"
    NONE = "none"


class CapScope(str, Enum):
    """What a period-based spending cap applies to."""

    MERCHANT = "MERCHANT"
    CATEGORY = "CATEGORY"
    GLOBAL = "GLOBAL"


class CapPeriod(str, Enum):
    """Reset period of a spending cap."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class CapProgressStatus(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    EXCEEDED = "exceeded"


class NotificationType(str, Enum):
    CAP_ALERT = "CAP_ALERT"
    BUDGET_WARNING = "BUDGET_WARNING"
    TRANSACTION = "TRANSACTION"
    SYSTEM = "SYSTEM"


# ---------------------------------------------------------------------------
# Service records
# ---------------------------------------------------------------------------


class Merchant(BaseModel):
    merchant_id: int
    name: str
    category: str
    lat: float
    lng: float


class Rule(BaseModel):
    rule_id: int
    type: RuleType
    target_id: int | None = None
    category: str | None = None
    cap_amount: float
    window: Literal["month"] = "month"
    active: bool = True


class CardLock(BaseModel):
    merchant_id: int
    locked: bool
    locked_at: datetime | None = None


class MerchantWithAggregates(Merchant):
    """A merchant with its spend and cap position."""

    last30_spend: float = 0.0
    mtd_spend: float = 0.0
    monthly_budget_left: float = 0.0
    over_cap: bool = False
    locked: bool = False
    distance_meters: float | None = None


class CategoryAmount(BaseModel):
    category: str
    amount: float


class MerchantAmount(BaseModel):
    merchant_id: int
    name: str
    amount: float


class TransactionSummary(BaseModel):
    by_category: list[CategoryAmount]
    top_merchants: list[MerchantAmount]


class MonthlyCategorySpend(BaseModel):
    month: str
    category: str
    amount: float


class CapStatus(BaseModel):
    """Month-to-date position of a merchant against its effective cap."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    near_cap: bool = False
    over_cap: bool = False
    cap_type: CapType = CapType.NONE
    cap_amount: float = 0.0
    current_spend: float = 0.0
    percentage: float = 0.0


class SimulationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    transaction_id: int
    merchant: MerchantWithAggregates | None
    cap_status: CapStatus = Field(..., alias="capStatus")
    overrode: bool


# ---------------------------------------------------------------------------
# Service requests
# ---------------------------------------------------------------------------


class SimulateTransactionRequest(BaseModel):
    merchant_id: int
    amount: float = Field(..., gt=0, allow_inf_nan=False)


class CreateRuleRequest(BaseModel):
    type: RuleType
    target_id: int | None = None
    category: str | None = None
    cap_amount: float = Field(..., gt=0, allow_inf_nan=False)
    window: Literal["month"] = "month"
    active: bool = True

    @model_validator(mode="after")
    def validate_target(self) -> "CreateRuleRequest":
        """Each rule type needs its own target field."""
        if self.type is RuleType.MERCHANT_CAP and not self.target_id:
            raise ValueError("target_id required for merchant_cap")
        if self.type is RuleType.CATEGORY_CAP and not self.category:
            raise ValueError("category required for category_cap")
        return self


class UpdateRuleRequest(BaseModel):
    cap_amount: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    active: bool | None = None


class CardLockRequest(BaseModel):
    merchant_id: int
    locked: bool


class OverrideRequest(BaseModel):
    merchant_id: int


# ---------------------------------------------------------------------------
# Relational demo schema
# ---------------------------------------------------------------------------


class User(BaseModel):
    id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    monthly_budget_goal: float | None = None
    preferences: dict = Field(default_factory=dict)


class SpendingCap(BaseModel):
    id: str
    user_id: str
    type: CapScope
    name: str
    limit: float
    period: CapPeriod
    category: str | None = None
    merchant: str | None = None
    enabled: bool = True
    created_at: datetime
    updated_at: datetime


class SpendingCapProgress(SpendingCap):
    spent: float
    percentage: float
    remaining: float
    status: CapProgressStatus


class CreateSpendingCapRequest(BaseModel):
    type: CapScope
    name: str = Field(..., min_length=1)
    limit: float = Field(..., gt=0, allow_inf_nan=False)
    period: CapPeriod
    category: str | None = None
    merchant: str | None = None

    @model_validator(mode="after")
    def validate_scope_target(self) -> "CreateSpendingCapRequest":
        """Category and merchant caps must name what they limit."""
        if self.type is CapScope.CATEGORY and not self.category:
            raise ValueError("Category is required for category-type caps")
        if self.type is CapScope.MERCHANT and not self.merchant:
            raise ValueError("Merchant is required for merchant-type caps")
        return self


class UpdateSpendingCapRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    limit: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    period: CapPeriod | None = None
    enabled: bool | None = None
    category: str | None = None
    merchant: str | None = None


class MerchantSpend(BaseModel):
    name: str
    total_spent: float
    transaction_count: int
    average_spent: float


class Notification(BaseModel):
    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    read: bool = False
    cap_id: str | None = None
    created_at: datetime
