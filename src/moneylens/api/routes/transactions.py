"""Spend summaries and simulated purchases."""

from typing import Annotated

from fastapi import APIRouter, Query

from ...models import (
    MonthlyCategorySpend,
    SimulateTransactionRequest,
    SimulationResult,
    TransactionSummary,
)
from ..dependencies import AggregatesDep, SimulatorDep

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("/summary", response_model=TransactionSummary)
def transaction_summary(
    aggregates: AggregatesDep,
    window: Annotated[str, Query()] = "30d",
) -> TransactionSummary:
    """Spend by category and top merchants; window is "<N>d" or "all"."""
    return aggregates.transaction_summary(window)


@router.get("/monthly", response_model=list[MonthlyCategorySpend])
def monthly_spend(
    aggregates: AggregatesDep,
    days: Annotated[int, Query()] = 90,
) -> list[MonthlyCategorySpend]:
    return aggregates.monthly_spend_by_category(days)


@router.post("/simulate", response_model=SimulationResult)
def simulate_transaction(
    request: SimulateTransactionRequest, simulator: SimulatorDep
) -> SimulationResult:
    """Attempt a card purchase.

    Answers 400 with the merchant's `capStatus` when a cap or card lock
    refuses the purchase.
    """
    return simulator.simulate(request)
