"""Typed records built from Schwab API payloads.

Each ``from_api`` constructor validates the keys the library depends on
and raises ``ValueError`` when one is absent. Numeric fields the library
only passes through default to ``0.0`` when missing; optional text
fields default to ``""`` (or ``None`` where absence carries meaning, such
as an instrument without an underlying).
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from loguru import logger

from .api_types import (
    ALL_ASSET_TYPES,
    ALL_DURATIONS,
    ALL_INSTRUCTIONS,
    ALL_ORDER_STRATEGY_TYPES,
    ALL_ORDER_TYPES,
    ALL_SESSIONS,
    Order,
    Transaction,
)


def _require(payload: Mapping[str, Any], key: str, record: str) -> Any:
    if not isinstance(payload, Mapping):
        raise ValueError(f"{record} payload must be an object, got {type(payload).__name__}")
    value = payload.get(key)
    if value is None:
        raise ValueError(f"{record} payload is missing required field '{key}'")
    return value


def _number(payload: Mapping[str, Any], key: str, default: float = 0.0) -> float:
    value = payload.get(key)
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return number


def parse_iso_datetime(value: str) -> datetime:
    """Parse the ISO-8601 timestamps Schwab emits (``Z`` suffix included)."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass(frozen=True, slots=True)
class PositionInstrument:
    """Instrument block of an account position."""

    asset_type: str
    symbol: str
    underlying_symbol: Optional[str] = None
    cusip: str = ""
    description: str = ""
    instrument_id: Optional[int] = None
    type: str = ""

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "PositionInstrument":
        symbol = _require(payload, "symbol", "instrument")
        asset_type = _require(payload, "assetType", "instrument")
        instrument_id = payload.get("instrumentId")
        return cls(
            asset_type=str(asset_type),
            symbol=str(symbol),
            underlying_symbol=payload.get("underlyingSymbol"),
            cusip=str(payload.get("cusip") or ""),
            description=str(payload.get("description") or ""),
            instrument_id=int(instrument_id) if instrument_id is not None else None,
            type=str(payload.get("type") or ""),
        )


@dataclass(frozen=True, slots=True)
class Position:
    """One position line of a brokerage account."""

    instrument: PositionInstrument
    short_quantity: float = 0.0
    long_quantity: float = 0.0
    average_price: float = 0.0
    average_long_price: float = 0.0
    average_short_price: float = 0.0
    market_value: float = 0.0
    current_day_profit_loss: float = 0.0
    current_day_profit_loss_percentage: float = 0.0
    maintenance_requirement: float = 0.0
    long_open_profit_loss: float = 0.0
    short_open_profit_loss: float = 0.0
    account_number: Optional[str] = None

    @property
    def symbol(self) -> str:
        return self.instrument.symbol

    @property
    def underlying_symbol(self) -> Optional[str]:
        return self.instrument.underlying_symbol

    @property
    def asset_type(self) -> str:
        return self.instrument.asset_type

    @property
    def net_quantity(self) -> float:
        return self.long_quantity - self.short_quantity

    @classmethod
    def from_api(
        cls,
        payload: Mapping[str, Any],
        account_number: Optional[str] = None,
    ) -> "Position":
        instrument = PositionInstrument.from_api(_require(payload, "instrument", "position"))
        return cls(
            instrument=instrument,
            short_quantity=_number(payload, "shortQuantity"),
            long_quantity=_number(payload, "longQuantity"),
            average_price=_number(payload, "averagePrice"),
            average_long_price=_number(payload, "averageLongPrice"),
            average_short_price=_number(payload, "averageShortPrice"),
            market_value=_number(payload, "marketValue"),
            current_day_profit_loss=_number(payload, "currentDayProfitLoss"),
            current_day_profit_loss_percentage=_number(payload, "currentDayProfitLossPercentage"),
            maintenance_requirement=_number(payload, "maintenanceRequirement"),
            long_open_profit_loss=_number(payload, "longOpenProfitLoss"),
            short_open_profit_loss=_number(payload, "shortOpenProfitLoss"),
            account_number=account_number,
        )


@dataclass(frozen=True, slots=True)
class AccountBalances:
    """Current balances of a securities account."""

    liquidation_value: float = 0.0
    cash_balance: float = 0.0
    available_funds: float = 0.0
    buying_power: float = 0.0
    equity: float = 0.0

    @classmethod
    def from_api(cls, payload: Optional[Mapping[str, Any]]) -> "AccountBalances":
        payload = payload or {}
        return cls(
            liquidation_value=_number(payload, "liquidationValue"),
            cash_balance=_number(payload, "cashBalance"),
            available_funds=_number(payload, "availableFunds"),
            buying_power=_number(payload, "buyingPower"),
            equity=_number(payload, "equity"),
        )


@dataclass(frozen=True, slots=True)
class Account:
    """A securities account together with its positions and balances."""

    account_number: str
    hash_value: Optional[str]
    positions: List[Position]
    balances: AccountBalances

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "Account":
        securities = _require(payload, "securitiesAccount", "account")
        account_number = str(securities.get("accountNumber") or "")
        hash_value = payload.get("hashValue") or securities.get("hashValue")

        positions: List[Position] = []
        for raw in securities.get("positions") or []:
            try:
                positions.append(Position.from_api(raw, account_number=account_number))
            except ValueError as exc:
                logger.warning(
                    "Dropping malformed position | account={account} reason={error}",
                    account=account_number,
                    error=exc,
                )
        return cls(
            account_number=account_number,
            hash_value=hash_value,
            positions=positions,
            balances=AccountBalances.from_api(securities.get("currentBalances")),
        )


@dataclass(frozen=True, slots=True)
class AccountNumber:
    """Plain account number paired with the hash the trader API expects."""

    account_number: str
    hash_value: str

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "AccountNumber":
        return cls(
            account_number=str(_require(payload, "accountNumber", "account number")),
            hash_value=str(_require(payload, "hashValue", "account number")),
        )


@dataclass(frozen=True, slots=True)
class AccountTransactionHistory:
    account_number: str
    transactions: List[Transaction] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class AccountOrders:
    account_number: str
    orders: List[Order] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class PriceHistoryCandle:
    """Daily OHLCV bar; ``datetime`` is epoch milliseconds."""

    datetime: int
    open: float
    high: float
    low: float
    close: float
    volume: int = 0

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "PriceHistoryCandle":
        return cls(
            datetime=int(_require(payload, "datetime", "candle")),
            open=float(_require(payload, "open", "candle")),
            high=float(_require(payload, "high", "candle")),
            low=float(_require(payload, "low", "candle")),
            close=float(_require(payload, "close", "candle")),
            volume=int(payload.get("volume") or 0),
        )


@dataclass(frozen=True, slots=True)
class OptionQuote:
    """Single contract from an option chain."""

    symbol: str
    expiry: datetime
    strike: float
    is_call: bool
    bid: Optional[float]
    ask: Optional[float]
    mid: float
    delta: float

    @classmethod
    def from_chain_contract(cls, payload: Mapping[str, Any], is_call: bool) -> "OptionQuote":
        bid = _number(payload, "bid")
        ask = _number(payload, "ask")
        return cls(
            symbol=str(_require(payload, "symbol", "option contract")),
            expiry=parse_iso_datetime(str(_require(payload, "expirationDate", "option contract"))),
            strike=float(_require(payload, "strikePrice", "option contract")),
            is_call=is_call,
            bid=bid if bid > 0 else None,
            ask=ask if ask > 0 else None,
            mid=_number(payload, "mark"),
            delta=_number(payload, "delta"),
        )


@dataclass(frozen=True, slots=True)
class PutCreditSpread:
    """A short put paired with a lower-strike long put; prices are in points."""

    underlying: str
    expiry: date
    short_strike: float
    long_strike: float
    credit: float
    quantity: float
    theoretical_max_loss_pts: float

    @property
    def width(self) -> float:
        return self.short_strike - self.long_strike


@dataclass(frozen=True, slots=True)
class PlacedOrder:
    order_id: str


@dataclass(frozen=True, slots=True)
class OrderInstrument:
    symbol: str
    asset_type: str = "OPTION"

    def __post_init__(self) -> None:
        if self.asset_type not in ALL_ASSET_TYPES:
            raise ValueError(f"Unsupported asset type '{self.asset_type}'")

    def to_payload(self) -> Dict[str, Any]:
        return {"assetType": self.asset_type, "symbol": self.symbol}


@dataclass(frozen=True, slots=True)
class OrderLeg:
    instruction: str
    quantity: float
    instrument: OrderInstrument

    def __post_init__(self) -> None:
        if self.instruction not in ALL_INSTRUCTIONS:
            raise ValueError(f"Unsupported instruction '{self.instruction}'")
        if self.quantity <= 0:
            raise ValueError(f"Leg quantity must be positive, got {self.quantity}")

    def to_payload(self) -> Dict[str, Any]:
        return {
            "instruction": self.instruction,
            "quantity": self.quantity,
            "instrument": self.instrument.to_payload(),
        }


@dataclass(frozen=True, slots=True)
class OrderRequest:
    """Body of a place-order call."""

    order_type: str
    legs: List[OrderLeg]
    session: str = "NORMAL"
    duration: str = "DAY"
    order_strategy_type: str = "SINGLE"
    price: Optional[float] = None
    stop_price: Optional[float] = None
    stop_price_link_basis: Optional[str] = None
    stop_price_link_type: Optional[str] = None
    stop_price_offset: Optional[float] = None
    stop_type: Optional[str] = None

    def __post_init__(self) -> None:
        if self.order_type not in ALL_ORDER_TYPES:
            raise ValueError(f"Unsupported order type '{self.order_type}'")
        if self.session not in ALL_SESSIONS:
            raise ValueError(f"Unsupported session '{self.session}'")
        if self.duration not in ALL_DURATIONS:
            raise ValueError(f"Unsupported duration '{self.duration}'")
        if self.order_strategy_type not in ALL_ORDER_STRATEGY_TYPES:
            raise ValueError(f"Unsupported order strategy type '{self.order_strategy_type}'")
        if not self.legs:
            raise ValueError("An order needs at least one leg")

    def to_payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "session": self.session,
            "duration": self.duration,
            "orderType": self.order_type,
            "orderStrategyType": self.order_strategy_type,
            "orderLegCollection": [leg.to_payload() for leg in self.legs],
        }
        optional = {
            "price": self.price,
            "stopPrice": self.stop_price,
            "stopPriceLinkBasis": self.stop_price_link_basis,
            "stopPriceLinkType": self.stop_price_link_type,
            "stopPriceOffset": self.stop_price_offset,
            "stopType": self.stop_type,
        }
        body.update({key: value for key, value in optional.items() if value is not None})
        return body

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "OrderRequest":
        """Build a request from the camelCase JSON shape Schwab documents."""
        legs = [
            OrderLeg(
                instruction=str(_require(raw, "instruction", "order leg")),
                quantity=float(_require(raw, "quantity", "order leg")),
                instrument=OrderInstrument(
                    symbol=str(_require(_require(raw, "instrument", "order leg"), "symbol", "order instrument")),
                    asset_type=str(raw["instrument"].get("assetType") or "OPTION"),
                ),
            )
            for raw in _require(payload, "orderLegCollection", "order")
        ]
        return cls(
            order_type=str(_require(payload, "orderType", "order")),
            legs=legs,
            session=str(payload.get("session") or "NORMAL"),
            duration=str(payload.get("duration") or "DAY"),
            order_strategy_type=str(payload.get("orderStrategyType") or "SINGLE"),
            price=payload.get("price"),
            stop_price=payload.get("stopPrice"),
            stop_price_link_basis=payload.get("stopPriceLinkBasis"),
            stop_price_link_type=payload.get("stopPriceLinkType"),
            stop_price_offset=payload.get("stopPriceOffset"),
            stop_type=payload.get("stopType"),
        )


__all__ = [
    "Account",
    "AccountBalances",
    "AccountNumber",
    "AccountOrders",
    "AccountTransactionHistory",
    "OptionQuote",
    "OrderInstrument",
    "OrderLeg",
    "OrderRequest",
    "PlacedOrder",
    "Position",
    "PositionInstrument",
    "PriceHistoryCandle",
    "PutCreditSpread",
    "parse_iso_datetime",
]
