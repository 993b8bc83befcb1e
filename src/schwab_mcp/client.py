"""Async client for the Schwab market data and trader REST APIs."""

from __future__ import annotations

import asyncio
import math
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Union
from urllib.parse import quote, urlencode

import httpx
from loguru import logger

from schwab_mcp.common.api_types import (
    InstrumentResponse,
    MoversFrequency,
    MoversResponse,
    MoversSort,
    Order,
    QuoteResponse,
    SearchProjection,
    Transaction,
    UserPreference,
)
from schwab_mcp.common.history import difference_in_days, select_period
from schwab_mcp.common.models import (
    Account,
    AccountBalances,
    AccountNumber,
    AccountOrders,
    AccountTransactionHistory,
    OptionQuote,
    OrderRequest,
    PlacedOrder,
    Position,
    PriceHistoryCandle,
    PutCreditSpread,
)
from schwab_mcp.common.positions import filter_positions
from schwab_mcp.common.spreads import reconstruct_put_credit_spreads
from schwab_mcp.errors import SchwabApiError, SchwabAuthError, SchwabDataError

SCHWAB_API_BASE_URL = "https://api.schwabapi.com"
DEFAULT_TIMEOUT = 30.0
DEFAULT_HISTORY_DAYS = 30
RISK_FREE_SYMBOL = "$IRX"
RISK_FREE_ALIASES = ("$IRX", "IRX", "$IRX.X")
VIX_SYMBOL = "$VIX"
ACCOUNTS_ENDPOINT = "/trader/v1/accounts?fields=positions"


def _to_utc_iso(value: datetime) -> str:
    """Render ``value`` as ``YYYY-MM-DDTHH:MM:SS.mmmZ``; naive values are local time."""
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def _quote_price(payload: Optional[Mapping[str, Any]]) -> Optional[float]:
    if not payload:
        return None
    data = payload.get("quote") or {}
    value = data.get("mark")
    if value is None:
        value = data.get("lastPrice")
    return value


class SchwabClient:
    """Schwab Market Data and Trader API client.

    Example::

        async with SchwabClient(access_token) as client:
            quotes = await client.get_quotes(["AAPL", "GOOGL"])
    """

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = SCHWAB_API_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not access_token:
            raise ValueError("Access token is required")
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def __aenter__(self) -> "SchwabClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def today(self) -> datetime:
        return datetime.now()

    # ------------------------------------------------------------------
    # Market data
    # ------------------------------------------------------------------

    async def get_quotes(self, symbols: Sequence[str]) -> Dict[str, QuoteResponse]:
        symbols_str = ",".join(quote(symbol, safe="") for symbol in symbols)
        return await self._request("GET", f"/marketdata/v1/quotes?symbols={symbols_str}")

    async def get_risk_free_rate(self, as_of: Optional[date] = None) -> float:
        """Annualised risk-free rate from the 13-week T-bill yield (``$IRX``).

        ``as_of`` is accepted for interface stability; the live quote is used.
        """
        quotes = await self.get_quotes([RISK_FREE_SYMBOL])
        irx_quote = next((quotes[key] for key in RISK_FREE_ALIASES if key in quotes), None)
        if irx_quote is None and len(quotes) == 1:
            irx_quote = next(iter(quotes.values()))

        rate_percent = _quote_price(irx_quote)
        if rate_percent is None or math.isnan(rate_percent):
            raise SchwabDataError("Unable to fetch risk-free rate from $IRX quote data")
        return rate_percent / 100

    async def get_vix_level(self) -> Optional[float]:
        quotes = await self.get_quotes([VIX_SYMBOL])
        return _quote_price(quotes.get(VIX_SYMBOL))

    async def get_price_history(
        self,
        symbol: str,
        days: Optional[int] = None,
        start_date: Optional[int] = None,
        end_date: Optional[int] = None,
    ) -> List[PriceHistoryCandle]:
        """Daily candles for ``symbol``; dates are epoch milliseconds."""
        if end_date is None:
            end_date = int(self.today().timestamp() * 1000)
        if days is not None:
            effective_days = days
        elif start_date:
            effective_days = difference_in_days(end_date, start_date)
        else:
            effective_days = DEFAULT_HISTORY_DAYS
        period_type, period = select_period(effective_days)

        params: Dict[str, str] = {
            "symbol": symbol,
            "periodType": period_type,
            "period": str(period),
            "frequencyType": "daily",
            "frequency": "1",
            "endDate": str(end_date),
        }
        if start_date:
            params["startDate"] = str(start_date)

        data = await self._request("GET", f"/marketdata/v1/pricehistory?{urlencode(params)}")
        if data.get("empty"):
            return []
        try:
            candles = [PriceHistoryCandle.from_api(raw) for raw in data.get("candles") or []]
        except ValueError as exc:
            raise SchwabDataError(f"Malformed price history for {symbol}: {exc}") from exc
        return sorted(candles, key=lambda candle: candle.datetime)

    async def get_available_expiries(
        self,
        symbol: str,
        contract_type: Literal["PUT", "CALL"],
        from_date: str,
        to_date: str,
    ) -> List[date]:
        """Expiration dates listed between ``from_date`` and ``to_date`` (``YYYY-MM-DD``)."""
        params = {
            "symbol": symbol,
            "contractType": contract_type,
            "fromDate": from_date,
            "toDate": to_date,
        }
        data = await self._request("GET", f"/marketdata/v1/chains?{urlencode(params)}")
        map_key = "callExpDateMap" if contract_type == "CALL" else "putExpDateMap"
        exp_date_map = data.get(map_key)
        if not exp_date_map:
            return []

        # Keys look like "2024-01-19:30" (date:days to expiration).
        expiries = [
            datetime.strptime(key.split(":")[0], "%Y-%m-%d").date()
            for key in exp_date_map
        ]
        return sorted(expiries)

    async def get_option_chain(self, symbol: str, expiry: date) -> List[OptionQuote]:
        expiry_str = expiry.strftime("%Y-%m-%d")
        params = {"symbol": symbol, "fromDate": expiry_str, "toDate": expiry_str}
        data = await self._request("GET", f"/marketdata/v1/chains?{urlencode(params)}")

        options: List[OptionQuote] = []
        for map_key, is_call in (("callExpDateMap", True), ("putExpDateMap", False)):
            for strike_map in (data.get(map_key) or {}).values():
                for contracts in (strike_map or {}).values():
                    for contract in contracts or []:
                        try:
                            options.append(OptionQuote.from_chain_contract(contract, is_call=is_call))
                        except ValueError as exc:
                            raise SchwabDataError(f"Malformed option chain for {symbol}: {exc}") from exc
        logger.debug(
            "Fetched option chain | symbol={symbol} expiry={expiry} contracts={count}",
            symbol=symbol,
            expiry=expiry_str,
            count=len(options),
        )
        return options

    async def get_option_quote(
        self,
        symbol: str,
        expiry: date,
        strike: float,
        option_type: Literal["call", "put"],
    ) -> Optional[OptionQuote]:
        is_call = option_type == "call"
        chain = await self.get_option_chain(symbol, expiry)
        return next(
            (option for option in chain if option.strike == strike and option.is_call == is_call),
            None,
        )

    async def search_instruments(
        self,
        symbol: str,
        projection: SearchProjection,
    ) -> List[InstrumentResponse]:
        params = {"symbol": symbol, "projection": projection}
        response = await self._request("GET", f"/marketdata/v1/instruments?{urlencode(params)}")
        instruments = response.get("instruments") or {}
        # Keyed by symbol in some responses, a plain list in others.
        if isinstance(instruments, Mapping):
            return list(instruments.values())
        return list(instruments)

    async def get_movers(
        self,
        symbol_id: str,
        sort: Optional[MoversSort] = None,
        frequency: Optional[MoversFrequency] = None,
    ) -> MoversResponse:
        """Top movers for an index such as ``$DJI``, ``$SPX`` or ``NASDAQ``."""
        params: Dict[str, str] = {}
        if sort:
            params["sort"] = sort
        if frequency is not None:
            params["frequency"] = str(frequency)
        endpoint = f"/marketdata/v1/movers/{quote(symbol_id, safe='')}"
        if params:
            endpoint = f"{endpoint}?{urlencode(params)}"
        return await self._request("GET", endpoint)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def get_accounts(self) -> List[Account]:
        raw_accounts = await self._request("GET", ACCOUNTS_ENDPOINT)
        accounts: List[Account] = []
        for raw in raw_accounts or []:
            try:
                accounts.append(Account.from_api(raw))
            except ValueError as exc:
                raise SchwabDataError(f"Malformed account payload: {exc}") from exc
        return accounts

    async def _first_account(self) -> Account:
        # Assumes exactly one linked account is the one of interest.
        accounts = await self.get_accounts()
        if not accounts:
            raise SchwabDataError("No Schwab account found")
        return accounts[0]

    async def get_account_equity(self) -> float:
        account = await self._first_account()
        return account.balances.liquidation_value

    async def get_account_balances(self) -> AccountBalances:
        account = await self._first_account()
        return account.balances

    async def get_positions(self, symbol: Optional[str] = None) -> List[Position]:
        accounts = await self.get_accounts()
        all_positions = [position for account in accounts for position in account.positions]
        return filter_positions(all_positions, symbol)

    async def get_put_credit_spreads(self, symbol: str) -> List[PutCreditSpread]:
        """Put credit spreads on ``symbol``; legs are only paired within one account."""
        accounts = await self.get_accounts()
        spreads: List[PutCreditSpread] = []
        for account in accounts:
            spreads.extend(reconstruct_put_credit_spreads(account.positions, symbol))
        logger.info(
            "Found {count} put credit spreads | symbol={symbol} accounts={accounts}",
            count=len(spreads),
            symbol=symbol,
            accounts=len(accounts),
        )
        return spreads

    async def fetch_account_numbers(self) -> List[AccountNumber]:
        raw = await self._request("GET", "/trader/v1/accounts/accountNumbers")
        try:
            return [AccountNumber.from_api(item) for item in raw or []]
        except ValueError as exc:
            raise SchwabDataError(f"Malformed account number payload: {exc}") from exc

    async def fetch_transaction_history(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[AccountTransactionHistory]:
        account_numbers = await self.fetch_account_numbers()
        logger.info(
            "Fetching transaction history | accounts={count}",
            count=len(account_numbers),
        )
        histories = await asyncio.gather(
            *(
                self.fetch_account_transaction_history(account.hash_value, start_date, end_date)
                for account in account_numbers
            )
        )
        return [
            AccountTransactionHistory(account_number=account.account_number, transactions=list(history or []))
            for account, history in zip(account_numbers, histories)
        ]

    async def fetch_account_transaction_history(
        self,
        account_hash: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[Transaction]:
        if not account_hash:
            raise ValueError("Account hash is required to fetch transaction history")
        today = self.today()
        if start_date is None:
            start_date = today.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
        if end_date is None:
            end_date = today
        params = {"startDate": _to_utc_iso(start_date), "endDate": _to_utc_iso(end_date)}
        return await self._request(
            "GET",
            f"/trader/v1/accounts/{account_hash}/transactions?{urlencode(params)}",
        )

    async def fetch_orders(
        self,
        from_entered_time: datetime,
        to_entered_time: datetime,
        max_results: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[AccountOrders]:
        account_numbers = await self.fetch_account_numbers()
        logger.info("Fetching orders | accounts={count}", count=len(account_numbers))
        orders_per_account = await asyncio.gather(
            *(
                self.fetch_account_orders(
                    account.hash_value,
                    from_entered_time,
                    to_entered_time,
                    max_results=max_results,
                    status=status,
                )
                for account in account_numbers
            )
        )
        return [
            AccountOrders(account_number=account.account_number, orders=list(orders or []))
            for account, orders in zip(account_numbers, orders_per_account)
        ]

    async def fetch_account_orders(
        self,
        account_hash: str,
        from_entered_time: datetime,
        to_entered_time: datetime,
        max_results: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[Order]:
        if not account_hash:
            raise ValueError("Account hash is required to fetch orders")
        params = {
            "fromEnteredTime": _to_utc_iso(from_entered_time),
            "toEnteredTime": _to_utc_iso(to_entered_time),
        }
        if max_results:
            params["maxResults"] = str(max_results)
        if status:
            params["status"] = status
        return await self._request(
            "GET",
            f"/trader/v1/accounts/{account_hash}/orders?{urlencode(params)}",
        )

    async def place_order(
        self,
        account_hash: str,
        order: Union[OrderRequest, Mapping[str, Any]],
    ) -> PlacedOrder:
        """Submit ``order``; the order id comes from the ``Location`` header."""
        if not account_hash:
            raise ValueError("Account hash is required to place an order")
        body = order.to_payload() if isinstance(order, OrderRequest) else dict(order)
        endpoint = f"/trader/v1/accounts/{account_hash}/orders"

        response = await self._send("POST", endpoint, json=body)
        if not response.is_success:
            if response.status_code == 401:
                self._raise_unauthorized(endpoint)
            raise SchwabApiError(
                f"Failed to place order: {response.status_code} {response.reason_phrase} - {response.text}",
                status_code=response.status_code,
                endpoint=endpoint,
            )

        location = response.headers.get("Location") or ""
        order_id = location.rstrip("/").split("/")[-1] or "unknown"
        logger.info("Order placed | order_id={order_id}", order_id=order_id)
        return PlacedOrder(order_id=order_id)

    async def get_user_preference(self) -> UserPreference:
        return await self._request("GET", "/trader/v1/userPreference")

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _send(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        url = f"{self._base_url}/{endpoint.lstrip('/')}"
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {self._access_token}"
        logger.debug("Schwab request | method={method} endpoint={endpoint}", method=method, endpoint=endpoint)
        return await self._http.request(method, url, headers=headers, **kwargs)

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        response = await self._send(method, endpoint, **kwargs)
        if not response.is_success:
            if response.status_code == 401:
                self._raise_unauthorized(endpoint)
            raise SchwabApiError(
                f"Failed to fetch {endpoint}: {response.reason_phrase}",
                status_code=response.status_code,
                endpoint=endpoint,
            )
        return response.json()

    @staticmethod
    def _raise_unauthorized(endpoint: str) -> None:
        raise SchwabAuthError(
            "Unauthorized - access token may be expired or invalid",
            status_code=401,
            endpoint=endpoint,
        )


__all__ = ["SchwabClient", "SCHWAB_API_BASE_URL"]
