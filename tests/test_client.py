"""
Tests for SchwabClient against an in-memory Schwab API.
"""

import json
from datetime import date, datetime, timezone

import pytest

from schwab_mcp.client import SchwabClient
from schwab_mcp.common.models import OrderInstrument, OrderLeg, OrderRequest
from schwab_mcp.errors import SchwabApiError, SchwabAuthError, SchwabDataError

from conftest import build_raw_account, build_raw_position


def _chain_contract(symbol, strike, expiry="2024-12-20T21:00:00.000+00:00", **extra):
    contract = {
        "symbol": symbol,
        "strikePrice": strike,
        "expirationDate": expiry,
        "bid": 1.0,
        "ask": 1.2,
        "mark": 1.1,
        "delta": -0.1,
    }
    contract.update(extra)
    return contract


class TestClientConstruction:
    """Test client construction and transport details."""

    def test_empty_token_rejected(self):
        """Test a missing access token is refused up front."""
        with pytest.raises(ValueError, match="Access token is required"):
            SchwabClient("")

    @pytest.mark.asyncio
    async def test_bearer_header_and_base_url(self, client, api):
        """Test every request carries the bearer token against the API host."""
        api.add("GET", "/trader/v1/userPreference", json={"accounts": []})

        await client.get_user_preference()

        request = api.last()
        assert request.headers["Authorization"] == "Bearer test-token"
        assert request.url.host == "api.schwabapi.com"

    @pytest.mark.asyncio
    async def test_unauthorized_raises_auth_error(self, client, api):
        """Test a 401 is reported as an authentication failure."""
        api.add("GET", "/trader/v1/userPreference", json={}, status_code=401)

        with pytest.raises(SchwabAuthError) as excinfo:
            await client.get_user_preference()

        assert excinfo.value.status_code == 401
        assert "access token may be expired" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_server_error_raises_api_error(self, client, api):
        """Test non-2xx statuses carry the endpoint and status text."""
        api.add("GET", "/trader/v1/userPreference", json={}, status_code=500)

        with pytest.raises(SchwabApiError) as excinfo:
            await client.get_user_preference()

        assert not isinstance(excinfo.value, SchwabAuthError)
        assert excinfo.value.status_code == 500
        assert str(excinfo.value) == "Failed to fetch /trader/v1/userPreference: Internal Server Error"


class TestMarketData:
    """Test market data operations."""

    @pytest.mark.asyncio
    async def test_get_quotes_joins_encoded_symbols(self, client, api):
        """Test symbols are percent-encoded and comma joined."""
        api.add("GET", "/marketdata/v1/quotes", json={"AAPL": {"symbol": "AAPL"}})

        quotes = await client.get_quotes(["AAPL", "$SPX"])

        assert "AAPL" in quotes
        assert "symbols=AAPL,%24SPX" in str(api.last().url)

    @pytest.mark.asyncio
    async def test_risk_free_rate_from_mark(self, client, api):
        """Test the IRX mark is converted from percent."""
        api.add("GET", "/marketdata/v1/quotes", json={"$IRX": {"quote": {"mark": 4.5, "lastPrice": 4.4}}})

        rate = await client.get_risk_free_rate()

        assert rate == pytest.approx(0.045)
        assert api.last().url.params["symbols"] == "$IRX"

    @pytest.mark.asyncio
    async def test_risk_free_rate_alias_and_last_price(self, client, api):
        """Test alias keys are accepted and lastPrice backs up mark."""
        api.add("GET", "/marketdata/v1/quotes", json={"$IRX.X": {"quote": {"lastPrice": 5.0}}, "OTHER": {}})

        assert await client.get_risk_free_rate() == pytest.approx(0.05)

    @pytest.mark.asyncio
    async def test_risk_free_rate_single_unknown_key(self, client, api):
        """Test a lone entry under an unexpected key is still used."""
        api.add("GET", "/marketdata/v1/quotes", json={"^IRX": {"quote": {"mark": 3.0}}})

        assert await client.get_risk_free_rate() == pytest.approx(0.03)

    @pytest.mark.asyncio
    async def test_risk_free_rate_missing_raises(self, client, api):
        """Test missing prices raise a data error."""
        api.add("GET", "/marketdata/v1/quotes", json={"$IRX": {"quote": {}}})

        with pytest.raises(SchwabDataError, match="risk-free rate"):
            await client.get_risk_free_rate()

    @pytest.mark.asyncio
    async def test_vix_level(self, client, api):
        """Test the VIX mark is returned as-is, or None when absent."""
        api.add("GET", "/marketdata/v1/quotes", json={"$VIX": {"quote": {"mark": 17.2}}})
        assert await client.get_vix_level() == pytest.approx(17.2)

        api.add("GET", "/marketdata/v1/quotes", json={})
        assert await client.get_vix_level() is None

    @pytest.mark.asyncio
    async def test_price_history_params_and_sorting(self, client, api):
        """Test period selection from days and ascending candle order."""
        api.add(
            "GET",
            "/marketdata/v1/pricehistory",
            json={
                "symbol": "AAPL",
                "empty": False,
                "candles": [
                    {"datetime": 2000, "open": 2, "high": 2, "low": 2, "close": 2, "volume": 5},
                    {"datetime": 1000, "open": 1, "high": 1, "low": 1, "close": 1, "volume": 5},
                ],
            },
        )

        candles = await client.get_price_history("AAPL", days=40, end_date=5000)

        assert [c.datetime for c in candles] == [1000, 2000]
        params = api.last().url.params
        assert params["periodType"] == "month"
        assert params["period"] == "2"
        assert params["frequencyType"] == "daily"
        assert params["endDate"] == "5000"
        assert "startDate" not in params

    @pytest.mark.asyncio
    async def test_price_history_days_from_date_range(self, client, api):
        """Test the lookback is derived from start and end when days is absent."""
        api.add("GET", "/marketdata/v1/pricehistory", json={"candles": [], "empty": True})
        day = 86_400_000

        candles = await client.get_price_history("AAPL", start_date=day, end_date=201 * day)

        assert candles == []
        params = api.last().url.params
        assert params["periodType"] == "year"
        assert params["period"] == "1"
        assert params["startDate"] == str(day)

    @pytest.mark.asyncio
    async def test_available_expiries_reads_requested_side(self, client, api):
        """Test expiries come from the map matching the contract type, sorted."""
        api.add(
            "GET",
            "/marketdata/v1/chains",
            json={
                "putExpDateMap": {"2024-02-16:30": {}, "2024-01-19:2": {}},
                "callExpDateMap": {"2024-03-15:60": {}},
            },
        )

        puts = await client.get_available_expiries("SPX", "PUT", "2024-01-01", "2024-04-01")
        calls = await client.get_available_expiries("SPX", "CALL", "2024-01-01", "2024-04-01")

        assert puts == [date(2024, 1, 19), date(2024, 2, 16)]
        assert calls == [date(2024, 3, 15)]
        assert api.last().url.params["contractType"] == "CALL"

    @pytest.mark.asyncio
    async def test_option_chain_and_quote(self, client, api):
        """Test both chain sides are flattened and a contract can be selected."""
        api.add(
            "GET",
            "/marketdata/v1/chains",
            json={
                "callExpDateMap": {
                    "2024-12-20:30": {"5900.0": [_chain_contract("SPX   241220C05900000", 5900.0, delta=0.5)]}
                },
                "putExpDateMap": {
                    "2024-12-20:30": {
                        "5900.0": [_chain_contract("SPX   241220P05900000", 5900.0)],
                        "5800.0": [_chain_contract("SPX   241220P05800000", 5800.0, bid=0)],
                    }
                },
            },
        )

        chain = await client.get_option_chain("SPX", date(2024, 12, 20))
        put = await client.get_option_quote("SPX", date(2024, 12, 20), 5800.0, "put")
        missing = await client.get_option_quote("SPX", date(2024, 12, 20), 5800.0, "call")

        assert [(q.strike, q.is_call) for q in chain] == [(5900.0, True), (5900.0, False), (5800.0, False)]
        assert api.last().url.params["fromDate"] == "2024-12-20"
        assert put is not None
        assert put.symbol == "SPX   241220P05800000"
        assert put.bid is None
        assert missing is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "instruments",
        [
            {"AAPL": {"symbol": "AAPL", "assetType": "EQUITY"}},
            [{"symbol": "AAPL", "assetType": "EQUITY"}],
        ],
    )
    async def test_search_instruments_accepts_both_shapes(self, client, api, instruments):
        """Test keyed and list responses both yield a list."""
        api.add("GET", "/marketdata/v1/instruments", json={"instruments": instruments})

        result = await client.search_instruments("AAPL", "symbol-search")

        assert result == [{"symbol": "AAPL", "assetType": "EQUITY"}]
        assert api.last().url.params["projection"] == "symbol-search"

    @pytest.mark.asyncio
    async def test_movers_encodes_index_and_sends_zero_frequency(self, client, api):
        """Test the index is a path segment and frequency 0 is still sent."""
        api.add("GET", "/marketdata/v1/movers/$DJI", json={"screeners": []})

        result = await client.get_movers("$DJI", sort="VOLUME", frequency=0)

        assert result == {"screeners": []}
        request = api.last()
        assert "/movers/%24DJI" in str(request.url)
        assert request.url.params["sort"] == "VOLUME"
        assert request.url.params["frequency"] == "0"


class TestAccounts:
    """Test account, position and spread operations."""

    @pytest.mark.asyncio
    async def test_account_balances_from_first_account(self, client, api):
        """Test balances and equity come from the first account."""
        api.add(
            "GET",
            "/trader/v1/accounts",
            json=[build_raw_account("1", [], liquidation_value=120_000), build_raw_account("2", [])],
        )

        balances = await client.get_account_balances()
        equity = await client.get_account_equity()

        assert balances.liquidation_value == 120_000
        assert equity == 120_000
        assert api.last().url.params["fields"] == "positions"

    @pytest.mark.asyncio
    async def test_no_accounts_raises(self, client, api):
        """Test an empty account list is a data error."""
        api.add("GET", "/trader/v1/accounts", json=[])

        with pytest.raises(SchwabDataError, match="No Schwab account found"):
            await client.get_account_equity()

    @pytest.mark.asyncio
    async def test_malformed_account_raises(self, client, api):
        """Test an account without securitiesAccount is a data error."""
        api.add("GET", "/trader/v1/accounts", json=[{"aggregatedBalance": {}}])

        with pytest.raises(SchwabDataError, match="Malformed account"):
            await client.get_accounts()

    @pytest.mark.asyncio
    async def test_positions_filtered_across_accounts(self, client, api):
        """Test positions from all accounts are merged then filtered."""
        api.add(
            "GET",
            "/trader/v1/accounts",
            json=[
                build_raw_account("1", [build_raw_position("SPX   241220P05900000", short_quantity=1)]),
                build_raw_account(
                    "2",
                    [
                        build_raw_position("SPX   241220P05800000", long_quantity=1),
                        build_raw_position("AAPL", underlying=None, long_quantity=5, asset_type="EQUITY"),
                    ],
                ),
            ],
        )

        everything = await client.get_positions()
        spx = await client.get_positions("SPX")

        assert len(everything) == 3
        assert [(p.account_number, p.symbol) for p in spx] == [
            ("1", "SPX   241220P05900000"),
            ("2", "SPX   241220P05800000"),
        ]

    @pytest.mark.asyncio
    async def test_put_credit_spreads_pair_within_account(self, client, api):
        """Test legs split across accounts are never paired."""
        api.add(
            "GET",
            "/trader/v1/accounts",
            json=[
                build_raw_account(
                    "1",
                    [
                        build_raw_position("SPX   241220P05900000", short_quantity=1, average_price=12.5),
                        build_raw_position("SPX   241220P05800000", long_quantity=1, average_price=7.0),
                    ],
                ),
                build_raw_account("2", [build_raw_position("SPX   241220P05950000", short_quantity=1)]),
                build_raw_account("3", [build_raw_position("SPX   241220P05850000", long_quantity=1)]),
            ],
        )

        spreads = await client.get_put_credit_spreads("SPX")

        assert len(spreads) == 1
        assert spreads[0].short_strike == 5900
        assert spreads[0].credit == pytest.approx(5.5)


class TestTraderHistory:
    """Test transactions, orders and order placement."""

    @pytest.mark.asyncio
    async def test_transaction_history_fans_out(self, client, api):
        """Test one transactions call per account with ISO UTC bounds."""
        api.add(
            "GET",
            "/trader/v1/accounts/accountNumbers",
            json=[{"accountNumber": "111", "hashValue": "HASH1"}, {"accountNumber": "222", "hashValue": "HASH2"}],
        )
        api.add("GET", "/trader/v1/accounts/HASH1/transactions", json=[{"activityId": 1}])
        api.add("GET", "/trader/v1/accounts/HASH2/transactions", json=[])

        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        end = datetime(2024, 1, 31, 23, 59, 59, tzinfo=timezone.utc)
        histories = await client.fetch_transaction_history(start, end)

        assert [(h.account_number, len(h.transactions)) for h in histories] == [("111", 1), ("222", 0)]
        history_requests = {r.url.path: r for r in api.requests if r.url.path.endswith("/transactions")}
        assert len(history_requests) == 2
        params = history_requests["/trader/v1/accounts/HASH1/transactions"].url.params
        assert params["startDate"] == "2024-01-01T00:00:00.000Z"
        assert params["endDate"] == "2024-01-31T23:59:59.000Z"

    @pytest.mark.asyncio
    async def test_transaction_history_requires_hash(self, client):
        """Test an empty account hash is refused."""
        with pytest.raises(ValueError):
            await client.fetch_account_transaction_history("")

    @pytest.mark.asyncio
    async def test_orders_optional_params(self, client, api):
        """Test maxResults and status are only sent when given."""
        api.add("GET", "/trader/v1/accounts/accountNumbers", json=[{"accountNumber": "111", "hashValue": "HASH1"}])
        api.add("GET", "/trader/v1/accounts/HASH1/orders", json=[{"orderId": 42}])
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        end = datetime(2024, 1, 8, tzinfo=timezone.utc)

        orders = await client.fetch_orders(start, end)
        params = api.last().url.params
        assert orders[0].orders == [{"orderId": 42}]
        assert "maxResults" not in params
        assert "status" not in params

        await client.fetch_orders(start, end, max_results=10, status="FILLED")
        params = api.last().url.params
        assert params["maxResults"] == "10"
        assert params["status"] == "FILLED"

    @pytest.mark.asyncio
    async def test_place_order_reads_location(self, client, api):
        """Test the order id is the last Location path segment."""
        api.add(
            "POST",
            "/trader/v1/accounts/HASH1/orders",
            status_code=201,
            headers={"Location": "https://api.schwabapi.com/trader/v1/accounts/HASH1/orders/98765"},
        )
        order = OrderRequest(
            order_type="NET_CREDIT",
            price=1.5,
            legs=[
                OrderLeg("SELL_TO_OPEN", 1, OrderInstrument("SPX   241220P05900000")),
                OrderLeg("BUY_TO_OPEN", 1, OrderInstrument("SPX   241220P05800000")),
            ],
        )

        placed = await client.place_order("HASH1", order)

        assert placed.order_id == "98765"
        body = json.loads(api.last().content)
        assert body["orderType"] == "NET_CREDIT"
        assert len(body["orderLegCollection"]) == 2

    @pytest.mark.asyncio
    async def test_place_order_without_location(self, client, api):
        """Test a missing Location header yields an unknown id."""
        api.add("POST", "/trader/v1/accounts/HASH1/orders", status_code=201)

        placed = await client.place_order("HASH1", {"orderType": "MARKET"})

        assert placed.order_id == "unknown"

    @pytest.mark.asyncio
    async def test_place_order_failure_includes_body(self, client, api):
        """Test a rejected order surfaces status and response text."""
        api.add("POST", "/trader/v1/accounts/HASH1/orders", json={"message": "bad leg"}, status_code=400)

        with pytest.raises(SchwabApiError) as excinfo:
            await client.place_order("HASH1", {"orderType": "MARKET"})

        assert str(excinfo.value).startswith("Failed to place order: 400 Bad Request - ")
        assert "bad leg" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_place_order_unauthorized(self, client, api):
        """Test a 401 on order placement is an auth error."""
        api.add("POST", "/trader/v1/accounts/HASH1/orders", status_code=401)

        with pytest.raises(SchwabAuthError):
            await client.place_order("HASH1", {"orderType": "MARKET"})


class TestMalformedPayloads:
    """Test responses missing required fields surface as data errors."""

    @pytest.mark.asyncio
    async def test_option_chain_contract_without_expiry(self, client, api):
        """Test a chain contract lacking expirationDate raises SchwabDataError."""
        contract = _chain_contract("SPX   241220P05900000", 5900.0)
        del contract["expirationDate"]
        api.add("GET", "/marketdata/v1/chains", json={"putExpDateMap": {"2024-12-20:30": {"5900.0": [contract]}}})

        with pytest.raises(SchwabDataError, match="expirationDate"):
            await client.get_option_chain("SPX", date(2024, 12, 20))

    @pytest.mark.asyncio
    async def test_price_history_candle_without_close(self, client, api):
        """Test a candle lacking close raises SchwabDataError."""
        api.add(
            "GET",
            "/marketdata/v1/pricehistory",
            json={"candles": [{"datetime": 1000, "open": 1, "high": 1, "low": 1}], "empty": False},
        )

        with pytest.raises(SchwabDataError, match="close"):
            await client.get_price_history("AAPL", days=10, end_date=5000)

    @pytest.mark.asyncio
    async def test_account_number_without_hash(self, client, api):
        """Test an account number entry lacking hashValue raises SchwabDataError."""
        api.add("GET", "/trader/v1/accounts/accountNumbers", json=[{"accountNumber": "111"}])

        with pytest.raises(SchwabDataError, match="hashValue"):
            await client.fetch_account_numbers()
