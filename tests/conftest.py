"""Shared pytest fixtures for schwab-mcp tests."""

from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from schwab_mcp.client import SchwabClient
from schwab_mcp.common.models import Position


def build_raw_position(
    symbol: str,
    underlying: Optional[str] = "SPX",
    short_quantity: float = 0.0,
    long_quantity: float = 0.0,
    average_price: float = 0.0,
    asset_type: str = "OPTION",
) -> Dict[str, Any]:
    """Position payload shaped like the trader API's accounts response."""
    instrument: Dict[str, Any] = {
        "assetType": asset_type,
        "cusip": "0SPX..",
        "symbol": symbol,
        "description": f"{symbol} description",
        "instrumentId": 1,
        "type": "PUT" if asset_type == "OPTION" else "",
    }
    if underlying is not None:
        instrument["underlyingSymbol"] = underlying
    return {
        "shortQuantity": short_quantity,
        "longQuantity": long_quantity,
        "averagePrice": average_price,
        "marketValue": 0.0,
        "currentDayProfitLoss": 0.0,
        "maintenanceRequirement": 0.0,
        "instrument": instrument,
    }


def build_raw_account(
    account_number: str,
    positions: List[Dict[str, Any]],
    liquidation_value: float = 100_000.0,
) -> Dict[str, Any]:
    return {
        "securitiesAccount": {
            "accountNumber": account_number,
            "positions": positions,
            "currentBalances": {
                "equity": liquidation_value,
                "availableFunds": 50_000.0,
                "buyingPower": 75_000.0,
                "cashBalance": 25_000.0,
                "liquidationValue": liquidation_value,
            },
        }
    }


@pytest.fixture
def raw_position() -> Callable[..., Dict[str, Any]]:
    """Factory for raw position payloads."""
    return build_raw_position


@pytest.fixture
def raw_account() -> Callable[..., Dict[str, Any]]:
    """Factory for raw account payloads."""
    return build_raw_account


@pytest.fixture
def make_position() -> Callable[..., Position]:
    """Factory for parsed Position records."""

    def _make(symbol: str, account_number: str = "11111111", **kwargs: Any) -> Position:
        return Position.from_api(build_raw_position(symbol, **kwargs), account_number=account_number)

    return _make


class MockSchwabApi:
    """Routes requests by path to canned responses and records every request."""

    def __init__(self) -> None:
        self.routes: Dict[tuple, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        json: Any = None,
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        def _respond(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, json=json, headers=headers)

        self.routes[(method, path)] = _respond

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "not found"})
        return route(request)

    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def api() -> MockSchwabApi:
    return MockSchwabApi()


@pytest.fixture
def client(api: MockSchwabApi) -> SchwabClient:
    """SchwabClient wired to the in-memory API; MockTransport holds no sockets."""
    return SchwabClient("test-token", transport=httpx.MockTransport(api.handler))
