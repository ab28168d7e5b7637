"""API routers, one per resource."""

from . import caps, card, merchants, notifications, rules, transactions

ROUTERS = [
    merchants.router,
    transactions.router,
    rules.router,
    card.router,
    caps.router,
    notifications.router,
]

__all__ = ["ROUTERS"]
