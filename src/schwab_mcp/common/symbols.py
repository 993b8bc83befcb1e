"""Parser for the option symbols Schwab reports on positions.

Schwab encodes option contracts in the OCC style, for example
``SPX   241220P05900000``::

    symbol  := root padding expiry right strike
    root    := word-char+        letters, digits or underscore
    padding := whitespace*
    expiry  := digit{6}          YYMMDD, must be a real calendar date
    right   := "P" | "C"
    strike  := digit+            3 implied decimals, normally 8 digits wide

The parser reads the fixed-width tail from the right (strike, right,
expiry) and treats whatever remains, minus the padding, as the root.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

EXPIRY_CODE_WIDTH = 6
STRIKE_SCALE = 1000
PUT = "P"
CALL = "C"


@dataclass(frozen=True, slots=True)
class OptionSymbol:
    """Components of an encoded option symbol."""

    root: str
    expiry_code: str
    right: str
    strike_code: str

    @property
    def is_put(self) -> bool:
        return self.right == PUT

    @property
    def is_call(self) -> bool:
        return self.right == CALL

    @property
    def strike(self) -> float:
        return int(self.strike_code) / STRIKE_SCALE

    @property
    def expiry(self) -> date:
        return expiry_from_code(self.expiry_code)


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_word_char(ch: str) -> bool:
    return ch == "_" or ch.isalnum()


def expiry_from_code(code: str) -> date:
    """Decode a ``YYMMDD`` expiry code into a calendar date (years 2000-2099)."""
    if len(code) != EXPIRY_CODE_WIDTH or not all(_is_digit(ch) for ch in code):
        raise ValueError(f"Invalid expiry code: {code!r}")
    return date(2000 + int(code[0:2]), int(code[2:4]), int(code[4:6]))


def parse_option_symbol(text: str) -> Optional[OptionSymbol]:
    """Parse ``text`` into an :class:`OptionSymbol`, or ``None`` if malformed."""
    if not text:
        return None

    end = len(text)
    pos = end
    while pos > 0 and _is_digit(text[pos - 1]):
        pos -= 1
    if pos == end:
        return None
    strike_code = text[pos:end]

    if pos == 0 or text[pos - 1] not in (PUT, CALL):
        return None
    right = text[pos - 1]
    pos -= 1

    start = pos - EXPIRY_CODE_WIDTH
    if start < 0:
        return None
    expiry_code = text[start:pos]
    if not all(_is_digit(ch) for ch in expiry_code):
        return None
    try:
        expiry_from_code(expiry_code)
    except ValueError:
        return None

    root = text[:start].rstrip()
    if not root or not all(_is_word_char(ch) for ch in root):
        return None

    return OptionSymbol(
        root=root,
        expiry_code=expiry_code,
        right=right,
        strike_code=strike_code,
    )


__all__ = ["OptionSymbol", "expiry_from_code", "parse_option_symbol", "PUT", "CALL"]
