"""Quote, price history and option chain helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from loguru import logger

from schwab_mcp.common.api_types import (
    ALL_MOVER_FREQUENCIES,
    ALL_MOVER_INDICES,
    ALL_MOVER_SORTS,
    ALL_SEARCH_PROJECTIONS,
)
from schwab_mcp.common.history import candles_to_records
from schwab_mcp.errors import SchwabError

from .base import SchwabService, to_jsonable

DATE_FORMAT = "%Y-%m-%d"


def _parse_date(value: str) -> datetime:
    return datetime.strptime(value, DATE_FORMAT)


def _epoch_ms(value: datetime) -> int:
    return int(value.replace(tzinfo=timezone.utc).timestamp() * 1000)


@dataclass(slots=True)
class MarketDataService(SchwabService):
    """Service wrapper that exposes market data retrieval through MCP."""

    async def get_quotes(self, symbols: Sequence[str]) -> Dict[str, Any]:
        normalized_symbols = self._normalise_symbols(symbols)
        if not normalized_symbols:
            return self._error("NO_SYMBOLS", "At least one symbol is required")
        try:
            quotes = await self.client.get_quotes(normalized_symbols)
        except SchwabError as exc:
            return self._api_failure(exc)
        missing = sorted(self._missing_symbols(normalized_symbols, quotes))
        return {
            "ok": True,
            "symbol_count": len(normalized_symbols),
            "quotes": quotes,
            "missing_symbols": missing,
        }

    async def get_risk_free_rate(self) -> Dict[str, Any]:
        try:
            rate = await self.client.get_risk_free_rate()
        except SchwabError as exc:
            return self._api_failure(exc)
        return {"ok": True, "source": "$IRX", "rate": rate}

    async def get_vix_level(self) -> Dict[str, Any]:
        try:
            level = await self.client.get_vix_level()
        except SchwabError as exc:
            return self._api_failure(exc)
        return {"ok": True, "vix": level}

    async def get_price_history(
        self,
        symbol: str,
        days: Optional[int] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Daily candles; ``start_date``/``end_date`` are ``YYYY-MM-DD`` (UTC)."""
        if not symbol:
            return self._error("NO_SYMBOL", "A symbol is required")
        try:
            start_ms = _epoch_ms(_parse_date(start_date)) if start_date else None
            end_ms = _epoch_ms(_parse_date(end_date) + timedelta(days=1)) if end_date else None
        except ValueError as exc:
            return self._error("INVALID_DATE_FORMAT", f"Date format must be YYYY-MM-DD: {exc}", symbol=symbol)
        if start_ms is not None and end_ms is not None and start_ms >= end_ms:
            return self._error(
                "INVALID_DATE_RANGE",
                f"Start date {start_date} must be before end date {end_date}",
                symbol=symbol,
            )
        if days is not None and days <= 0:
            return self._error("INVALID_DAYS", f"days must be positive, got {days}", symbol=symbol)

        try:
            candles = await self.client.get_price_history(
                symbol.strip().upper(),
                days=days,
                start_date=start_ms,
                end_date=end_ms,
            )
        except SchwabError as exc:
            return self._api_failure(exc, symbol=symbol)
        return {
            "ok": True,
            "symbol": symbol.strip().upper(),
            "candle_count": len(candles),
            "candles": candles_to_records(candles),
        }

    async def get_available_expiries(
        self,
        symbol: str,
        contract_type: str = "PUT",
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
    ) -> Dict[str, Any]:
        contract = (contract_type or "PUT").upper()
        if contract not in ("PUT", "CALL"):
            return self._error(
                "INVALID_CONTRACT_TYPE",
                f"Unsupported contract type '{contract_type}'. Use 'PUT' or 'CALL'.",
            )
        today = datetime.now()
        from_date = from_date or today.strftime(DATE_FORMAT)
        to_date = to_date or (today + timedelta(days=60)).strftime(DATE_FORMAT)
        try:
            if _parse_date(from_date) > _parse_date(to_date):
                return self._error(
                    "INVALID_DATE_RANGE",
                    f"Start date {from_date} must be before end date {to_date}",
                    symbol=symbol,
                )
        except ValueError as exc:
            return self._error("INVALID_DATE_FORMAT", f"Date format must be YYYY-MM-DD: {exc}", symbol=symbol)

        try:
            expiries = await self.client.get_available_expiries(symbol, contract, from_date, to_date)
        except SchwabError as exc:
            return self._api_failure(exc, symbol=symbol)
        return {
            "ok": True,
            "symbol": symbol,
            "contract_type": contract,
            "period": {"start": from_date, "end": to_date},
            "expiries": to_jsonable(expiries),
        }

    async def get_option_chain(self, symbol: str, expiry: str) -> Dict[str, Any]:
        try:
            expiry_date = _parse_date(expiry).date()
        except ValueError as exc:
            return self._error("INVALID_DATE_FORMAT", f"Date format must be YYYY-MM-DD: {exc}", symbol=symbol)

        logger.info(
            "Fetching option chain | symbol={symbol} expiry={expiry}",
            symbol=symbol,
            expiry=expiry,
        )
        try:
            options = await self.client.get_option_chain(symbol, expiry_date)
        except SchwabError as exc:
            return self._api_failure(exc, symbol=symbol)
        return {
            "ok": True,
            "symbol": symbol,
            "expiry": expiry,
            "option_count": len(options),
            "options": to_jsonable(options),
        }

    async def get_option_quote(
        self,
        symbol: str,
        expiry: str,
        strike: float,
        option_type: str,
    ) -> Dict[str, Any]:
        side = (option_type or "").lower()
        if side not in ("call", "put"):
            return self._error("INVALID_OPTION_TYPE", f"Unsupported option type '{option_type}'. Use 'call' or 'put'.")
        try:
            expiry_date = _parse_date(expiry).date()
        except ValueError as exc:
            return self._error("INVALID_DATE_FORMAT", f"Date format must be YYYY-MM-DD: {exc}", symbol=symbol)
        try:
            option = await self.client.get_option_quote(symbol, expiry_date, float(strike), side)
        except SchwabError as exc:
            return self._api_failure(exc, symbol=symbol)
        if option is None:
            return self._error(
                "NO_CONTRACT",
                f"No {side} found for {symbol} {expiry} strike {strike}",
                symbol=symbol,
            )
        return {"ok": True, "symbol": symbol, "option": to_jsonable(option)}

    async def search_instruments(self, symbol: str, projection: str = "symbol-search") -> Dict[str, Any]:
        if projection not in ALL_SEARCH_PROJECTIONS:
            return self._error(
                "INVALID_PROJECTION",
                f"Unsupported projection '{projection}'. Choose one of {list(ALL_SEARCH_PROJECTIONS)}.",
            )
        try:
            instruments = await self.client.search_instruments(symbol, projection)  # type: ignore[arg-type]
        except SchwabError as exc:
            return self._api_failure(exc, symbol=symbol)
        return {
            "ok": True,
            "query": symbol,
            "projection": projection,
            "instruments": instruments,
            "total_count": len(instruments),
        }

    async def get_movers(
        self,
        index: str,
        sort: Optional[str] = None,
        frequency: Optional[int] = None,
    ) -> Dict[str, Any]:
        if index not in ALL_MOVER_INDICES:
            return self._error(
                "INVALID_INDEX",
                f"Unsupported index '{index}'. Choose one of {list(ALL_MOVER_INDICES)}.",
            )
        if sort is not None and sort not in ALL_MOVER_SORTS:
            return self._error("INVALID_SORT", f"Unsupported sort '{sort}'. Choose one of {list(ALL_MOVER_SORTS)}.")
        if frequency is not None and frequency not in ALL_MOVER_FREQUENCIES:
            return self._error(
                "INVALID_FREQUENCY",
                f"Unsupported frequency {frequency}. Choose one of {list(ALL_MOVER_FREQUENCIES)}.",
            )
        try:
            movers = await self.client.get_movers(index, sort, frequency)  # type: ignore[arg-type]
        except SchwabError as exc:
            return self._api_failure(exc)
        screeners = movers.get("screeners") or []
        return {"ok": True, "index": index, "movers": screeners, "total_count": len(screeners)}

    @staticmethod
    def _normalise_symbols(symbols: Iterable[str]) -> List[str]:
        cleaned: List[str] = []
        for symbol in symbols:
            if not symbol:
                continue
            cleaned.append(symbol.strip().upper())
        # Preserve order but drop duplicates.
        seen: Set[str] = set()
        ordered: List[str] = []
        for symbol in cleaned:
            if symbol not in seen:
                seen.add(symbol)
                ordered.append(symbol)
        return ordered

    @staticmethod
    def _missing_symbols(symbols: Sequence[str], quotes: Dict[str, Any]) -> Set[str]:
        return {symbol for symbol in symbols if symbol not in quotes}
