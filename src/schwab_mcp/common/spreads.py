"""Reconstruction of put credit spreads from raw option positions."""
from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from loguru import logger

from .models import Position, PutCreditSpread
from .symbols import OptionSymbol, expiry_from_code, parse_option_symbol

OPTION_ASSET_TYPE = "OPTION"

Leg = Tuple[Position, OptionSymbol]


def group_option_legs(positions: Iterable[Position], underlying: str) -> Dict[str, List[Leg]]:
    """Group the option positions on ``underlying`` by their ``YYMMDD`` expiry code.

    Positions that are not options, belong to another underlying, or carry a
    symbol that does not parse are left out.
    """
    groups: Dict[str, List[Leg]] = defaultdict(list)
    for position in positions:
        if position.asset_type != OPTION_ASSET_TYPE:
            continue
        if position.underlying_symbol != underlying:
            continue
        parsed = parse_option_symbol(position.symbol)
        if parsed is None:
            logger.debug(
                "Skipping unparseable option symbol | symbol={symbol}",
                symbol=position.symbol,
            )
            continue
        groups[parsed.expiry_code].append((position, parsed))
    return dict(groups)


def reconstruct_put_credit_spreads(
    positions: Iterable[Position],
    underlying: str,
) -> List[PutCreditSpread]:
    """Pair short puts with lower-strike long puts sharing an expiry.

    Every qualifying (short, long) pair within an expiry yields a spread, so
    several shorts against one long produce several spreads. Quantity is
    the smaller of the short leg's short quantity and the long leg's long
    quantity. A leg that is both short and long takes part on both sides.
    """
    spreads: List[PutCreditSpread] = []
    for expiry_code, legs in group_option_legs(positions, underlying).items():
        puts = [(position, parsed) for position, parsed in legs if parsed.is_put]
        shorts = [leg for leg in puts if leg[0].short_quantity > 0]
        longs = [leg for leg in puts if leg[0].long_quantity > 0]

        for short_position, short_symbol in shorts:
            short_strike = short_symbol.strike
            for long_position, long_symbol in longs:
                long_strike = long_symbol.strike
                if not long_strike < short_strike:
                    continue
                credit = short_position.average_price - long_position.average_price
                width = short_strike - long_strike
                spreads.append(
                    PutCreditSpread(
                        underlying=underlying,
                        expiry=expiry_from_code(expiry_code),
                        short_strike=short_strike,
                        long_strike=long_strike,
                        credit=credit,
                        quantity=min(short_position.short_quantity, long_position.long_quantity),
                        theoretical_max_loss_pts=width - credit,
                    )
                )

    logger.debug(
        "Reconstructed {count} put credit spreads | underlying={underlying}",
        count=len(spreads),
        underlying=underlying,
    )
    return spreads


__all__ = ["group_option_legs", "reconstruct_put_credit_spreads", "OPTION_ASSET_TYPE"]
