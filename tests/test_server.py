"""
Tests for server wiring: client construction, lifespan context and tool registration.
"""

import pytest

import schwab_mcp
from schwab_mcp.client import SchwabClient
from schwab_mcp.server import SchwabContext, cors_origins, create_client, mcp
from schwab_mcp.services import AccountService, MarketDataService, OrderService


EXPECTED_TOOLS = {
    "get_quotes",
    "get_risk_free_rate",
    "get_vix_level",
    "get_price_history",
    "get_available_expiries",
    "get_option_chain",
    "get_option_quote",
    "search_instruments",
    "get_movers",
    "get_account_balances",
    "get_positions",
    "get_put_credit_spreads",
    "get_account_numbers",
    "get_transaction_history",
    "get_user_preference",
    "get_orders",
    "place_order",
}


class TestCreateClient:
    """Test create_client."""

    def test_requires_access_token(self, monkeypatch):
        """Test a missing token stops start-up."""
        monkeypatch.delenv("SCHWAB_ACCESS_TOKEN", raising=False)

        with pytest.raises(ValueError, match="SCHWAB_ACCESS_TOKEN"):
            create_client()

    def test_builds_client(self, monkeypatch):
        """Test the token from the environment is used."""
        monkeypatch.setenv("SCHWAB_ACCESS_TOKEN", "env-token")

        client = create_client()

        assert isinstance(client, SchwabClient)


class TestSchwabContext:
    """Test SchwabContext."""

    def test_services_share_client(self):
        """Test every service is bound to the same client."""
        client = SchwabClient("token")

        context = SchwabContext(client=client)

        assert isinstance(context.account_service, AccountService)
        assert isinstance(context.market_data_service, MarketDataService)
        assert isinstance(context.order_service, OrderService)
        assert context.account_service.client is client
        assert context.order_service.client is client


class TestToolRegistration:
    """Test MCP tool registration."""

    @pytest.mark.asyncio
    async def test_all_tools_registered(self):
        """Test importing the package registers every tool."""
        assert schwab_mcp.mcp is mcp

        tools = await mcp.list_tools()

        assert EXPECTED_TOOLS <= {tool.name for tool in tools}


class TestCorsOrigins:
    """Test cors_origins."""

    def test_wildcard(self):
        """Test the wildcard is passed through."""
        assert cors_origins("*") == ["*"]

    def test_comma_separated(self):
        """Test blanks around and between origins are dropped."""
        assert cors_origins(" http://a.test, ,http://b.test ") == ["http://a.test", "http://b.test"]
