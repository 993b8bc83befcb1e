"""
Tests for position filtering, normalisation and price history helpers.
"""

import pandas as pd

from schwab_mcp.common.history import (
    candles_to_frame,
    candles_to_records,
    difference_in_days,
    select_period,
)
from schwab_mcp.common.models import PriceHistoryCandle
from schwab_mcp.common.positions import NORMALISED_COLUMNS, filter_positions, positions_to_frame


class TestFilterPositions:
    """Test filter_positions."""

    def test_no_symbol_keeps_everything(self, make_position):
        """Test an empty filter returns every position."""
        positions = [make_position("SPY", underlying=None, asset_type="EQUITY"), make_position("SPX   241220P05900000")]

        assert filter_positions(positions) == positions

    def test_prefix_or_underlying_match(self, make_position):
        """Test symbol prefix and underlying matches, case-insensitively."""
        spy = make_position("SPY", underlying=None, asset_type="EQUITY")
        spx_option = make_position("SPX   241220P05900000", underlying="SPX")
        spxw_option = make_position("SPXW  241220P05900000", underlying="SPXW")
        aapl = make_position("AAPL", underlying=None, asset_type="EQUITY")

        assert filter_positions([spy, spx_option, spxw_option, aapl], "spx") == [spx_option, spxw_option]
        assert filter_positions([spy, spx_option, spxw_option, aapl], "SPXW") == [spxw_option]


class TestPositionsToFrame:
    """Test positions_to_frame."""

    def test_normalises_option_fields(self, make_position):
        """Test option legs expose decoded expiry, right and strike."""
        frame = positions_to_frame(
            [
                make_position("SPX   241220P05900000", short_quantity=1, average_price=12.5),
                make_position("AAPL", account_number="22222222", underlying=None, long_quantity=10, asset_type="EQUITY"),
            ]
        )

        assert list(frame.columns) == NORMALISED_COLUMNS
        option = frame.iloc[0]
        assert option["expiry"] == "2024-12-20"
        assert option["right"] == "P"
        assert option["strike"] == 5900.0
        assert option["quantity"] == -1.0
        equity = frame.iloc[1]
        assert equity["underlying"] == "AAPL"
        assert equity["account"] == "22222222"
        assert pd.isna(equity["strike"])

    def test_empty_positions(self):
        """Test an empty input yields an empty frame with the expected columns."""
        frame = positions_to_frame([])

        assert frame.empty
        assert list(frame.columns) == NORMALISED_COLUMNS


class TestHistoryHelpers:
    """Test period selection and candle conversion."""

    def test_select_period(self):
        """Test lookback thresholds."""
        assert select_period(10) == ("month", 1)
        assert select_period(22) == ("month", 1)
        assert select_period(23) == ("month", 2)
        assert select_period(44) == ("month", 2)
        assert select_period(66) == ("month", 3)
        assert select_period(67) == ("month", 6)
        assert select_period(132) == ("month", 6)
        assert select_period(133) == ("year", 1)

    def test_difference_in_days_truncates(self):
        """Test partial days are dropped."""
        day = 86_400_000
        assert difference_in_days(10 * day + day // 2, 0) == 10

    def test_candles_to_frame_sorted_utc_index(self):
        """Test candles are indexed by UTC timestamp in order."""
        candles = [
            PriceHistoryCandle(datetime=1704240000000, open=2, high=2, low=2, close=2, volume=20),
            PriceHistoryCandle(datetime=1704153600000, open=1, high=1, low=1, close=1, volume=10),
        ]

        frame = candles_to_frame(candles)

        assert frame.index.is_monotonic_increasing
        assert str(frame.index.tz) == "UTC"
        assert list(frame["close"]) == [1, 2]

    def test_candles_to_records(self):
        """Test records carry ISO timestamps."""
        records = candles_to_records(
            [PriceHistoryCandle(datetime=1704153600000, open=1, high=1, low=1, close=1, volume=10)]
        )

        assert records[0]["timestamp"] == "2024-01-02T00:00:00+00:00"
        assert records[0]["volume"] == 10

    def test_candles_to_records_empty(self):
        """Test no candles gives no records."""
        assert candles_to_records([]) == []
