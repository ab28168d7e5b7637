"""Shared service instances and request-scoped dependencies for the routers."""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, Request

from ..config import MoneyLensSettings
from ..database import DatabaseManager
from ..exceptions import UserNotFoundError
from ..logic import (
    AggregatesService,
    LocksService,
    NotificationService,
    RulesEngine,
    SpendingCapService,
    TransactionSimulator,
)


@dataclass
class Services:
    """Every service the API uses, built once per application."""

    settings: MoneyLensSettings
    db: DatabaseManager
    aggregates: AggregatesService
    rules: RulesEngine
    locks: LocksService
    simulator: TransactionSimulator
    caps: SpendingCapService
    notifications: NotificationService

    @classmethod
    def build(cls, settings: MoneyLensSettings, db: DatabaseManager) -> "Services":
        aggregates = AggregatesService(db)
        rules = RulesEngine(
            db,
            near_cap_threshold=settings.rules.near_cap_threshold,
            over_cap_threshold=settings.rules.over_cap_threshold,
        )
        locks = LocksService(db)
        caps = SpendingCapService(
            db,
            warning_threshold=settings.rules.near_cap_threshold,
            exceeded_threshold=settings.rules.over_cap_threshold,
        )
        return cls(
            settings=settings,
            db=db,
            aggregates=aggregates,
            rules=rules,
            locks=locks,
            simulator=TransactionSimulator(db, rules, locks, aggregates),
            caps=caps,
            notifications=NotificationService(db, caps),
        )


def get_services(request: Request) -> Services:
    return request.app.state.services


ServicesDep = Annotated[Services, Depends(get_services)]


def get_aggregates(services: ServicesDep) -> AggregatesService:
    return services.aggregates


def get_rules_engine(services: ServicesDep) -> RulesEngine:
    return services.rules


def get_locks(services: ServicesDep) -> LocksService:
    return services.locks


def get_simulator(services: ServicesDep) -> TransactionSimulator:
    return services.simulator


def get_spending_caps(services: ServicesDep) -> SpendingCapService:
    return services.caps


def get_notifications(services: ServicesDep) -> NotificationService:
    return services.notifications


def current_user_id(
    services: ServicesDep,
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """The caller's user id: the X-User-Id header, else the demo user."""
    if x_user_id:
        return x_user_id

    email = services.settings.demo_user_email
    user = services.caps.find_user_by_email(email)
    if user is None:
        raise UserNotFoundError(email)
    return user.id


AggregatesDep = Annotated[AggregatesService, Depends(get_aggregates)]
RulesEngineDep = Annotated[RulesEngine, Depends(get_rules_engine)]
LocksDep = Annotated[LocksService, Depends(get_locks)]
SimulatorDep = Annotated[TransactionSimulator, Depends(get_simulator)]
SpendingCapsDep = Annotated[SpendingCapService, Depends(get_spending_caps)]
NotificationsDep = Annotated[NotificationService, Depends(get_notifications)]
UserIdDep = Annotated[str, Depends(current_user_id)]
