"""Position filtering and normalisation utilities."""
from __future__ import annotations

from typing import Iterable, List, Optional

import pandas as pd
from loguru import logger

from .models import Position
from .symbols import parse_option_symbol


NORMALISED_COLUMNS = [
    "account",
    "underlying",
    "symbol",
    "asset_type",
    "expiry",
    "right",
    "strike",
    "quantity",
    "short_quantity",
    "long_quantity",
    "avg_price",
    "market_value",
    "day_pnl",
    "maintenance_requirement",
    "description",
]


def filter_positions(positions: Iterable[Position], symbol: Optional[str] = None) -> List[Position]:
    """Keep positions whose symbol starts with ``symbol`` or whose underlying equals it.

    Matching is case-insensitive. Without a symbol every position is kept.
    """
    items = list(positions)
    if not symbol:
        return items
    wanted = symbol.upper()
    matched: List[Position] = []
    for position in items:
        underlying = (position.underlying_symbol or "").upper()
        if position.symbol.upper().startswith(wanted) or underlying == wanted:
            matched.append(position)
    return matched


def positions_to_frame(positions: Iterable[Position]) -> pd.DataFrame:
    """Flatten positions into a DataFrame with :data:`NORMALISED_COLUMNS`."""
    rows: List[dict] = []
    for position in positions:
        parsed = parse_option_symbol(position.symbol) if position.asset_type == "OPTION" else None
        rows.append(
            {
                "account": position.account_number,
                "underlying": position.underlying_symbol or (parsed.root if parsed else position.symbol),
                "symbol": position.symbol,
                "asset_type": position.asset_type,
                "expiry": parsed.expiry.isoformat() if parsed else None,
                "right": parsed.right if parsed else None,
                "strike": parsed.strike if parsed else None,
                "quantity": position.net_quantity,
                "short_quantity": position.short_quantity,
                "long_quantity": position.long_quantity,
                "avg_price": position.average_price,
                "market_value": position.market_value,
                "day_pnl": position.current_day_profit_loss,
                "maintenance_requirement": position.maintenance_requirement,
                "description": position.instrument.description,
            }
        )
    if not rows:
        logger.warning("No portfolio positions were loaded")
        return pd.DataFrame(columns=NORMALISED_COLUMNS)
    df = pd.DataFrame(rows)
    df = _normalise(df)
    logger.info("Normalised {count} portfolio positions", count=len(df))
    return df


def _normalise(df: pd.DataFrame) -> pd.DataFrame:
    for column in NORMALISED_COLUMNS:
        if column not in df.columns:
            df[column] = None
    df["underlying"] = df["underlying"].astype(str).str.upper()
    df["symbol"] = df["symbol"].astype(str)
    df["account"] = df["account"].fillna("default").astype(str).replace({"": "default"})
    numeric_cols = [
        "strike",
        "quantity",
        "short_quantity",
        "long_quantity",
        "avg_price",
        "market_value",
        "day_pnl",
        "maintenance_requirement",
    ]
    for column in numeric_cols:
        df[column] = pd.to_numeric(df[column], errors="coerce")
    return df[NORMALISED_COLUMNS]


__all__ = ["NORMALISED_COLUMNS", "filter_positions", "positions_to_frame"]
