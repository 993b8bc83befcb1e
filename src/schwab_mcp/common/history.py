"""Price history helpers."""
from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Sequence

import pandas as pd

from .models import PriceHistoryCandle

CANDLE_COLUMNS = ["datetime", "open", "high", "low", "close", "volume"]

# Trading-day thresholds for the ``month`` period type.
MONTH_PERIOD_STEPS = ((22, 1), (44, 2), (66, 3))
MAX_MONTH_PERIOD_DAYS = 132
MS_PER_DAY = 86_400_000


def difference_in_days(end_ms: int, start_ms: int) -> int:
    """Whole days between two epoch-millisecond timestamps, truncated toward zero."""
    return int((end_ms - start_ms) / MS_PER_DAY)


def select_period(days: int) -> tuple[str, int]:
    """Map a lookback in days onto Schwab's ``periodType`` / ``period`` pair."""
    if days > MAX_MONTH_PERIOD_DAYS:
        return "year", 1
    for limit, period in MONTH_PERIOD_STEPS:
        if days <= limit:
            return "month", period
    return "month", 6


def candles_to_frame(candles: Sequence[PriceHistoryCandle]) -> pd.DataFrame:
    """Candles as a DataFrame indexed by UTC timestamp."""
    if not candles:
        frame = pd.DataFrame(columns=CANDLE_COLUMNS)
        frame.index = pd.DatetimeIndex([], tz="UTC", name="timestamp")
        return frame
    frame = pd.DataFrame([asdict(candle) for candle in candles], columns=CANDLE_COLUMNS)
    frame.index = pd.DatetimeIndex(pd.to_datetime(frame["datetime"], unit="ms", utc=True), name="timestamp")
    return frame.sort_index()


def candles_to_records(candles: Sequence[PriceHistoryCandle]) -> List[Dict[str, Any]]:
    """Candles as JSON-friendly dicts with an ISO ``timestamp`` field."""
    frame = candles_to_frame(candles)
    if frame.empty:
        return []
    frame = frame.reset_index()
    frame["timestamp"] = frame["timestamp"].map(lambda ts: ts.isoformat())
    return frame.to_dict(orient="records")


__all__ = [
    "CANDLE_COLUMNS",
    "candles_to_frame",
    "candles_to_records",
    "difference_in_days",
    "select_period",
]
