"""Business logic for caps, card locks, aggregates and notifications."""

from .aggregates import AggregatesService
from .locks import LocksService
from .notifications import NotificationService
from .rules_engine import RulesEngine
from .simulator import TransactionSimulator
from .spending_caps import SpendingCapService

__all__ = [
    "AggregatesService",
    "LocksService",
    "NotificationService",
    "RulesEngine",
    "SpendingCapService",
    "TransactionSimulator",
]
