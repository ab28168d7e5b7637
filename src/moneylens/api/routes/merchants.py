"""Merchant map endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query

from ...models import MerchantWithAggregates
from ..dependencies import AggregatesDep

router = APIRouter(prefix="/merchants", tags=["merchants"])


@router.get("/nearby", response_model=list[MerchantWithAggregates])
def merchants_nearby(
    aggregates: AggregatesDep,
    lat: Annotated[float, Query(allow_inf_nan=False)],
    lng: Annotated[float, Query(allow_inf_nan=False)],
    radius_meters: Annotated[float, Query(alias="radiusMeters", allow_inf_nan=False)] = 600,
) -> list[MerchantWithAggregates]:
    """Merchants around a point with their spend and cap position."""
    return aggregates.merchants_nearby(lat, lng, radius_meters)


@router.get("/{merchant_id}", response_model=MerchantWithAggregates)
def get_merchant(merchant_id: int, aggregates: AggregatesDep) -> MerchantWithAggregates:
    return aggregates.merchant_aggregates(merchant_id)
