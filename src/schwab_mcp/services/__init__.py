"""Service helpers that keep `server.SchwabContext` slim."""

from .account_service import AccountService
from .market_data_service import MarketDataService
from .order_service import OrderService

__all__ = [
    "AccountService",
    "MarketDataService",
    "OrderService",
]
