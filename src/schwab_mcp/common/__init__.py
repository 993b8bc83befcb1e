"""Common utilities for schwab-mcp (symbols, records, spreads, positions).

This package hosts the domain logic that does not talk to the network, so
it can be used by the client, the MCP services and external callers alike.
"""

from .models import (  # noqa: F401
    Account,
    AccountBalances,
    AccountNumber,
    OptionQuote,
    OrderRequest,
    Position,
    PriceHistoryCandle,
    PutCreditSpread,
)
from .positions import NORMALISED_COLUMNS, filter_positions, positions_to_frame  # noqa: F401
from .spreads import reconstruct_put_credit_spreads  # noqa: F401
from .symbols import OptionSymbol, parse_option_symbol  # noqa: F401

__all__ = [
    "Account",
    "AccountBalances",
    "AccountNumber",
    "OptionQuote",
    "OrderRequest",
    "Position",
    "PriceHistoryCandle",
    "PutCreditSpread",
    "NORMALISED_COLUMNS",
    "filter_positions",
    "positions_to_frame",
    "reconstruct_put_credit_spreads",
    "OptionSymbol",
    "parse_option_symbol",
]
