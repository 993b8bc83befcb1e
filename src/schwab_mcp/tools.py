"""
schwab-mcp MCP tools entrypoints.

This module exposes thin MCP tool wrappers that delegate to the services
held by the shared SchwabContext in ``schwab_mcp.server``.
"""

from typing import Any, Dict, Optional, cast
from mcp.server.fastmcp import Context
from schwab_mcp.server import SchwabContext, mcp


def _ctx(ctx: Context) -> SchwabContext:
    """Helper to extract the strongly-typed SchwabContext from FastMCP Context."""
    return cast(SchwabContext, ctx.request_context.lifespan_context)


@mcp.tool(description="Retrieve quotes for one or more symbols")
async def get_quotes(ctx: Context, symbols: list[str]) -> Dict[str, Any]:
    return await _ctx(ctx).market_data_service.get_quotes(symbols)


@mcp.tool(description="Risk-free rate derived from the 13-week T-bill yield ($IRX)")
async def get_risk_free_rate(ctx: Context) -> Dict[str, Any]:
    return await _ctx(ctx).market_data_service.get_risk_free_rate()


@mcp.tool(description="Current VIX level")
async def get_vix_level(ctx: Context) -> Dict[str, Any]:
    return await _ctx(ctx).market_data_service.get_vix_level()


@mcp.tool(description="Daily price history for a symbol")
async def get_price_history(
    ctx: Context,
    symbol: str,
    days: Optional[int] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Daily candles for a symbol.

    Either give a lookback in ``days`` or a ``start_date``/``end_date`` range
    (YYYY-MM-DD). Without either the last 30 days are returned.
    """
    return await _ctx(ctx).market_data_service.get_price_history(
        symbol=symbol,
        days=days,
        start_date=start_date,
        end_date=end_date,
    )


@mcp.tool(description="List option expirations for a symbol between two dates")
async def get_available_expiries(
    ctx: Context,
    symbol: str,
    contract_type: str = "PUT",
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
) -> Dict[str, Any]:
    return await _ctx(ctx).market_data_service.get_available_expiries(
        symbol=symbol,
        contract_type=contract_type,
        from_date=from_date,
        to_date=to_date,
    )


@mcp.tool(description="Fetch the option chain of a symbol for one expiration")
async def get_option_chain(ctx: Context, symbol: str, expiry: str) -> Dict[str, Any]:
    return await _ctx(ctx).market_data_service.get_option_chain(symbol=symbol, expiry=expiry)


@mcp.tool(description="Quote a single option contract")
async def get_option_quote(
    ctx: Context,
    symbol: str,
    expiry: str,
    strike: float,
    option_type: str,
) -> Dict[str, Any]:
    return await _ctx(ctx).market_data_service.get_option_quote(
        symbol=symbol,
        expiry=expiry,
        strike=strike,
        option_type=option_type,
    )


@mcp.tool(description="Search instruments by symbol or description")
async def search_instruments(
    ctx: Context,
    symbol: str,
    projection: str = "symbol-search",
) -> Dict[str, Any]:
    return await _ctx(ctx).market_data_service.search_instruments(symbol=symbol, projection=projection)


@mcp.tool(description="Top movers for an index")
async def get_movers(
    ctx: Context,
    index: str,
    sort: Optional[str] = None,
    frequency: Optional[int] = None,
) -> Dict[str, Any]:
    return await _ctx(ctx).market_data_service.get_movers(index=index, sort=sort, frequency=frequency)


@mcp.tool(description="Balances of the primary account")
async def get_account_balances(ctx: Context) -> Dict[str, Any]:
    return await _ctx(ctx).account_service.get_account_balances()


@mcp.tool(description="Retrieve normalised positions grouped by account")
async def get_positions(ctx: Context, symbol: str = "") -> Dict[str, Any]:
    """
    Get normalised positions for all linked accounts.

    With a symbol, only positions whose symbol starts with it or whose
    underlying equals it are returned.
    """
    return await _ctx(ctx).account_service.get_positions(symbol)


@mcp.tool(description="Reconstruct put credit spreads held on an underlying")
async def get_put_credit_spreads(ctx: Context, symbol: str) -> Dict[str, Any]:
    """
    Pair short puts with lower-strike long puts of the same expiry.

    Every qualifying pair is reported, so one long put can back several
    short puts.
    """
    return await _ctx(ctx).account_service.get_put_credit_spreads(symbol)


@mcp.tool(description="List linked account numbers and their hashes")
async def get_account_numbers(ctx: Context) -> Dict[str, Any]:
    return await _ctx(ctx).account_service.get_account_numbers()


@mcp.tool(description="Retrieve transaction history for all linked accounts")
async def get_transaction_history(
    ctx: Context,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> Dict[str, Any]:
    return await _ctx(ctx).account_service.get_transaction_history(start_date=start_date, end_date=end_date)


@mcp.tool(description="Retrieve user preferences")
async def get_user_preference(ctx: Context) -> Dict[str, Any]:
    return await _ctx(ctx).account_service.get_user_preference()


@mcp.tool(description="Retrieve orders for all linked accounts")
async def get_orders(
    ctx: Context,
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
    max_results: Optional[int] = None,
    status: Optional[str] = None,
) -> Dict[str, Any]:
    return await _ctx(ctx).order_service.get_orders(
        from_date=from_date,
        to_date=to_date,
        max_results=max_results,
        status=status,
    )


@mcp.tool(description="Place an order for an account")
async def place_order(ctx: Context, account_hash: str, order: Dict[str, Any]) -> Dict[str, Any]:
    """
    Submit an order given in Schwab's order JSON format.

    Order type, instructions, session, duration and strategy type are checked
    before anything is sent.
    """
    return await _ctx(ctx).order_service.place_order(account_hash=account_hash, order=order)


__all__ = [
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
]
