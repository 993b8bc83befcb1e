"""Account and portfolio related helpers."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from loguru import logger

from schwab_mcp.common.positions import positions_to_frame
from schwab_mcp.errors import SchwabError

from .base import SchwabService, to_jsonable


@dataclass(slots=True)
class AccountService(SchwabService):
    """Encapsulates balances, positions, spreads and account history helpers."""

    async def get_account_balances(self) -> dict[str, Any]:
        try:
            balances = await self.client.get_account_balances()
        except SchwabError as exc:
            return self._api_failure(exc)
        return {"ok": True, "balances": to_jsonable(balances)}

    async def get_positions(self, symbol: str = "") -> dict[str, Any]:
        """Positions grouped by account number, optionally filtered by symbol."""
        try:
            positions = await self.client.get_positions(symbol or None)
        except SchwabError as exc:
            return self._api_failure(exc, symbol=symbol or None)

        frame = positions_to_frame(positions)
        grouped: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for row in frame.to_dict(orient="records"):
            normalized = to_jsonable(row)
            grouped[normalized["account"]].append(normalized)
        return {
            "ok": True,
            "symbol": symbol or None,
            "position_count": len(frame),
            "positions": dict(grouped),
        }

    async def get_put_credit_spreads(self, symbol: str) -> dict[str, Any]:
        if not symbol:
            return self._error("NO_SYMBOL", "An underlying symbol is required")
        try:
            spreads = await self.client.get_put_credit_spreads(symbol)
        except SchwabError as exc:
            return self._api_failure(exc, symbol=symbol)

        records = []
        for spread in spreads:
            record = to_jsonable(spread)
            record["width"] = spread.width
            records.append(record)
        return {
            "ok": True,
            "symbol": symbol,
            "spread_count": len(records),
            "spreads": records,
        }

    async def get_account_numbers(self) -> dict[str, Any]:
        try:
            accounts = await self.client.fetch_account_numbers()
        except SchwabError as exc:
            return self._api_failure(exc)
        return {"ok": True, "accounts": to_jsonable(accounts)}

    async def get_transaction_history(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> dict[str, Any]:
        """Transactions for every linked account between two ``YYYY-MM-DD`` dates."""
        try:
            start_dt = datetime.strptime(start_date, "%Y-%m-%d") if start_date else None
            end_dt = datetime.strptime(end_date, "%Y-%m-%d") if end_date else None
        except ValueError as exc:
            return self._error("INVALID_DATE_FORMAT", f"Date format must be YYYY-MM-DD: {exc}")
        if start_dt and end_dt and start_dt > end_dt:
            return self._error(
                "INVALID_DATE_RANGE",
                f"Start date {start_date} must be before end date {end_date}",
            )
        if end_dt is not None:
            # Include the whole end day.
            end_dt = end_dt.replace(hour=23, minute=59, second=59)

        logger.info(
            "Loading transaction history | start={start} end={end}",
            start=start_date or "start of year",
            end=end_date or "today",
        )
        try:
            histories = await self.client.fetch_transaction_history(start_dt, end_dt)
        except SchwabError as exc:
            return self._api_failure(exc)
        return {
            "ok": True,
            "period": {"start": start_date, "end": end_date},
            "accounts": to_jsonable(histories),
            "total_count": sum(len(history.transactions) for history in histories),
        }

    async def get_user_preference(self) -> dict[str, Any]:
        try:
            preference = await self.client.get_user_preference()
        except SchwabError as exc:
            return self._api_failure(exc)
        return {"ok": True, "preference": preference}
