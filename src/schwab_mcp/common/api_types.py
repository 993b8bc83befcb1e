"""Shapes and vocabularies of Schwab API payloads.

Payloads that are handed back to callers unchanged (orders, transactions,
user preferences, instrument search results, movers and raw quotes) are
described here as ``TypedDict`` shapes. Payloads the client derives values
from are parsed into dataclasses in :mod:`schwab_mcp.common.models`.
"""
from __future__ import annotations

from typing import Dict, List, Literal, TypedDict, Union


# ---- Quotes ----

QuoteAssetMainType = Literal["EQUITY", "OPTION", "INDEX", "MUTUAL_FUND", "FUTURE", "FOREX"]


class QuoteReference(TypedDict, total=False):
    cusip: str
    description: str
    exchange: str
    exchangeName: str
    otcMarketTier: str
    contractType: Literal["C", "P"]
    daysToExpiration: int
    expirationDay: int
    expirationMonth: int
    expirationYear: int
    strikePrice: float
    underlying: str
    multiplier: float


# "52WeekHigh" is not a valid identifier, hence the functional syntax.
QuoteData = TypedDict(
    "QuoteData",
    {
        "52WeekHigh": float,
        "52WeekLow": float,
        "askPrice": float,
        "askSize": int,
        "bidPrice": float,
        "bidSize": int,
        "closePrice": float,
        "highPrice": float,
        "lowPrice": float,
        "lastPrice": float,
        "lastSize": int,
        "mark": float,
        "markChange": float,
        "markPercentChange": float,
        "netChange": float,
        "netPercentChange": float,
        "openPrice": float,
        "totalVolume": int,
        "tradeTime": int,
        "quoteTime": int,
        "securityStatus": str,
        "volatility": float,
        "delta": float,
        "gamma": float,
        "theta": float,
        "vega": float,
        "rho": float,
        "openInterest": int,
        "underlyingPrice": float,
    },
    total=False,
)


class QuoteRegular(TypedDict, total=False):
    regularMarketLastPrice: float
    regularMarketLastSize: int
    regularMarketNetChange: float
    regularMarketPercentChange: float
    regularMarketTradeTime: int


class QuoteFundamental(TypedDict, total=False):
    avg10DaysVolume: float
    avg1YearVolume: float
    divAmount: float
    divFreq: int
    divPayAmount: float
    divYield: float
    eps: float
    peRatio: float
    declarationDate: str
    divExDate: str
    divPayDate: str


class QuoteResponse(TypedDict, total=False):
    assetMainType: QuoteAssetMainType
    assetSubType: str
    symbol: str
    quoteType: str
    realtime: bool
    ssid: int
    reference: QuoteReference
    quote: QuoteData
    regular: QuoteRegular
    fundamental: QuoteFundamental


# ---- Order vocabularies ----

Session = Literal["NORMAL", "AM", "PM", "SEAMLESS"]

Duration = Literal[
    "DAY",
    "GOOD_TILL_CANCEL",
    "FILL_OR_KILL",
    "IMMEDIATE_OR_CANCEL",
    "END_OF_WEEK",
    "END_OF_MONTH",
    "NEXT_END_OF_MONTH",
    "UNKNOWN",
]

ALL_ORDER_TYPES = (
    "MARKET",
    "LIMIT",
    "STOP",
    "STOP_LIMIT",
    "TRAILING_STOP",
    "CABINET",
    "NON_MARKETABLE",
    "MARKET_ON_CLOSE",
    "EXERCISE",
    "TRAILING_STOP_LIMIT",
    "NET_DEBIT",
    "NET_CREDIT",
    "NET_ZERO",
    "LIMIT_ON_CLOSE",
    "UNKNOWN",
)

ALL_INSTRUCTIONS = (
    "BUY",
    "SELL",
    "BUY_TO_COVER",
    "SELL_SHORT",
    "BUY_TO_OPEN",
    "BUY_TO_CLOSE",
    "SELL_TO_OPEN",
    "SELL_TO_CLOSE",
    "EXCHANGE",
    "SELL_SHORT_EXEMPT",
)

ALL_SESSIONS = ("NORMAL", "AM", "PM", "SEAMLESS")

ALL_DURATIONS = (
    "DAY",
    "GOOD_TILL_CANCEL",
    "FILL_OR_KILL",
    "IMMEDIATE_OR_CANCEL",
    "END_OF_WEEK",
    "END_OF_MONTH",
    "NEXT_END_OF_MONTH",
    "UNKNOWN",
)

ALL_ORDER_STRATEGY_TYPES = (
    "SINGLE",
    "CANCEL",
    "RECALL",
    "PAIR",
    "FLATTEN",
    "TWO_DAY_SWAP",
    "BLAST_ALL",
    "OCO",
    "TRIGGER",
)

ALL_ORDER_STATUSES = (
    "AWAITING_PARENT_ORDER",
    "AWAITING_CONDITION",
    "AWAITING_STOP_CONDITION",
    "AWAITING_MANUAL_REVIEW",
    "ACCEPTED",
    "AWAITING_UR_OUT",
    "PENDING_ACTIVATION",
    "QUEUED",
    "WORKING",
    "REJECTED",
    "PENDING_CANCEL",
    "CANCELED",
    "PENDING_REPLACE",
    "REPLACED",
    "FILLED",
    "EXPIRED",
    "NEW",
    "AWAITING_RELEASE_TIME",
    "PENDING_ACKNOWLEDGEMENT",
    "PENDING_RECALL",
    "UNKNOWN",
)

ALL_ASSET_TYPES = (
    "EQUITY",
    "OPTION",
    "INDEX",
    "MUTUAL_FUND",
    "CASH_EQUIVALENT",
    "FIXED_INCOME",
    "CURRENCY",
    "COLLECTIVE_INVESTMENT",
)

# Open vocabularies: the API may add values, so these stay plain strings.
OrderType = str
Instruction = str
OrderStatus = str
AssetType = str

ComplexOrderStrategyType = Literal[
    "NONE",
    "COVERED",
    "VERTICAL",
    "BACK_RATIO",
    "CALENDAR",
    "DIAGONAL",
    "STRADDLE",
    "STRANGLE",
    "COLLAR_SYNTHETIC",
    "BUTTERFLY",
    "CONDOR",
    "IRON_CONDOR",
    "VERTICAL_ROLL",
    "COLLAR_WITH_STOCK",
    "DOUBLE_DIAGONAL",
    "UNBALANCED_BUTTERFLY",
    "UNBALANCED_CONDOR",
    "UNBALANCED_IRON_CONDOR",
    "UNBALANCED_VERTICAL_ROLL",
    "MUTUAL_FUND_SWAP",
    "CUSTOM",
]

PositionEffect = Literal["OPENING", "CLOSING", "AUTOMATIC"]
QuantityType = Literal["ALL_SHARES", "DOLLARS", "SHARES"]
PutCall = Literal["PUT", "CALL", "UNKNOWN"]


class OptionDeliverable(TypedDict, total=False):
    symbol: str
    deliverableUnits: float
    apiCurrencyType: Literal["USD", "CAD", "EUR", "JPY"]
    assetType: str
    putCall: PutCall
    optionMultiplier: float
    type: Literal["VANILLA", "BINARY", "BARRIER", "UNKNOWN"]
    underlyingSymbol: str


class AccountsInstrument(TypedDict, total=False):
    assetType: AssetType
    cusip: str
    symbol: str
    description: str
    instrumentId: int
    netChange: float
    type: str
    maturityDate: str
    factor: float
    variableRate: float
    optionDeliverables: List[OptionDeliverable]


class OrderLegPayload(TypedDict, total=False):
    orderLegType: str
    legId: int
    instrument: AccountsInstrument
    instruction: Instruction
    positionEffect: PositionEffect
    quantity: float
    quantityType: QuantityType
    divCapGains: Literal["REINVEST", "PAYOUT"]
    toSymbol: str


class ExecutionLeg(TypedDict, total=False):
    legId: int
    price: float
    quantity: float
    mismarkedQuantity: float
    instrumentId: int
    time: str


class OrderActivity(TypedDict, total=False):
    activityType: Literal["EXECUTION", "ORDER_ACTION"]
    executionType: Literal["FILL"]
    quantity: float
    orderRemainingQuantity: float
    executionLegs: List[ExecutionLeg]


class Order(TypedDict, total=False):
    session: Session
    duration: Duration
    orderType: OrderType
    cancelTime: str
    complexOrderStrategyType: ComplexOrderStrategyType
    quantity: float
    filledQuantity: float
    remainingQuantity: float
    requestedDestination: str
    destinationLinkName: str
    releaseTime: str
    stopPrice: float
    stopPriceLinkBasis: str
    stopPriceLinkType: Literal["VALUE", "PERCENT", "TICK"]
    stopPriceOffset: float
    stopType: Literal["STANDARD", "BID", "ASK", "LAST", "MARK"]
    priceLinkBasis: str
    priceLinkType: Literal["VALUE", "PERCENT", "TICK"]
    price: float
    taxLotMethod: str
    orderLegCollection: List[OrderLegPayload]
    activationPrice: float
    specialInstruction: Literal["ALL_OR_NONE", "DO_NOT_REDUCE", "ALL_OR_NONE_DO_NOT_REDUCE"]
    orderStrategyType: str
    orderId: int
    cancelable: bool
    editable: bool
    status: OrderStatus
    enteredTime: str
    closeTime: str
    tag: str
    accountNumber: int
    orderActivityCollection: List[OrderActivity]
    replacingOrderCollection: List[Union["Order", str]]
    childOrderStrategies: List[Union["Order", str]]
    statusDescription: str


# ---- Transactions ----


class TransactionInstrument(TypedDict, total=False):
    symbol: str
    description: str
    assetType: str
    type: str


class TransferItem(TypedDict, total=False):
    instrument: TransactionInstrument
    amount: float
    cost: float
    fee: float
    price: float
    quantity: float
    transferItemType: str
    positionEffect: str
    transactionId: int


class Transaction(TypedDict, total=False):
    activityId: int
    time: str
    accountNumber: str
    type: str
    status: str
    subAccount: str
    tradeDate: str
    positionId: int
    orderId: int
    netAmount: float
    description: str
    transferItems: List[TransferItem]


# ---- User preference ----


class UserPreferenceAccount(TypedDict, total=False):
    accountNumber: str
    primaryAccount: bool
    type: str
    nickName: str
    accountColor: str
    displayAcctId: str
    autoPositionEffect: bool


class StreamerInfo(TypedDict, total=False):
    streamerSocketUrl: str
    schwabClientCustomerId: str
    schwabClientCorrelId: str
    schwabClientChannel: str
    schwabClientFunctionId: str


class Offer(TypedDict, total=False):
    level2Permissions: bool
    mktDataPermission: str


class UserPreference(TypedDict, total=False):
    accounts: List[UserPreferenceAccount]
    streamerInfo: StreamerInfo
    offers: List[Offer]


# ---- Instrument search ----

ALL_SEARCH_PROJECTIONS = (
    "symbol-search",
    "symbol-regex",
    "desc-search",
    "desc-regex",
    "search",
    "fundamental",
)

SearchProjection = Literal[
    "symbol-search",
    "symbol-regex",
    "desc-search",
    "desc-regex",
    "search",
    "fundamental",
]


class BasicInstrument(TypedDict, total=False):
    cusip: str
    symbol: str
    description: str
    exchange: str
    assetType: str


class InstrumentResponse(TypedDict, total=False):
    cusip: str
    symbol: str
    description: str
    exchange: str
    assetType: str
    bondFactor: str
    bondMultiplier: str
    bondPrice: str
    fundamental: Dict[str, object]
    instrumentInfo: BasicInstrument
    bondInstrumentInfo: BasicInstrument


# ---- Movers ----

ALL_MOVER_INDICES = (
    "$DJI",
    "$COMPX",
    "$SPX",
    "NYSE",
    "NASDAQ",
    "OTCBB",
    "INDEX_ALL",
    "EQUITY_ALL",
    "OPTION_ALL",
    "OPTION_PUT",
    "OPTION_CALL",
)
ALL_MOVER_SORTS = ("VOLUME", "TRADES", "PERCENT_CHANGE_UP", "PERCENT_CHANGE_DOWN")
ALL_MOVER_FREQUENCIES = (0, 1, 5, 10, 30, 60)

MoversSort = Literal["VOLUME", "TRADES", "PERCENT_CHANGE_UP", "PERCENT_CHANGE_DOWN"]
MoversFrequency = Literal[0, 1, 5, 10, 30, 60]


class Mover(TypedDict, total=False):
    change: float
    description: str
    direction: Literal["up", "down"]
    lastPrice: float
    netChange: float
    netPercentChange: float
    symbol: str
    totalVolume: int
    volume: int


class MoversResponse(TypedDict, total=False):
    screeners: List[Mover]


__all__ = [
    "ALL_ASSET_TYPES",
    "ALL_DURATIONS",
    "ALL_INSTRUCTIONS",
    "ALL_MOVER_FREQUENCIES",
    "ALL_MOVER_INDICES",
    "ALL_MOVER_SORTS",
    "ALL_ORDER_STATUSES",
    "ALL_ORDER_STRATEGY_TYPES",
    "ALL_ORDER_TYPES",
    "ALL_SEARCH_PROJECTIONS",
    "ALL_SESSIONS",
    "InstrumentResponse",
    "Mover",
    "MoversFrequency",
    "MoversResponse",
    "MoversSort",
    "Order",
    "QuoteResponse",
    "SearchProjection",
    "Transaction",
    "UserPreference",
]
