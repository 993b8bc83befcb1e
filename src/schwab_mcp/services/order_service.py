"""Order history and order placement helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from loguru import logger

from schwab_mcp.common.api_types import ALL_ORDER_STATUSES
from schwab_mcp.common.models import OrderRequest
from schwab_mcp.errors import SchwabError

from .base import SchwabService, to_jsonable

DEFAULT_LOOKBACK_DAYS = 7
MAX_RESULTS_CAP = 3000


@dataclass(slots=True)
class OrderService(SchwabService):
    """Wraps order lookups across accounts and order submission."""

    async def get_orders(
        self,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
        max_results: Optional[int] = None,
        status: Optional[str] = None,
    ) -> Dict[str, Any]:
        now = datetime.now()
        try:
            to_dt = datetime.strptime(to_date, "%Y-%m-%d") + timedelta(days=1) if to_date else now
            from_dt = datetime.strptime(from_date, "%Y-%m-%d") if from_date else to_dt - timedelta(days=DEFAULT_LOOKBACK_DAYS)
        except ValueError as exc:
            return self._error("INVALID_DATE_FORMAT", f"Date format must be YYYY-MM-DD: {exc}")
        if from_dt > to_dt:
            return self._error(
                "INVALID_DATE_RANGE",
                f"Start date {from_dt:%Y-%m-%d} must be before end date {to_date or now.strftime('%Y-%m-%d')}",
            )
        if status is not None and status.upper() not in ALL_ORDER_STATUSES:
            return self._error("INVALID_STATUS", f"Unsupported order status '{status}'")
        if max_results is not None:
            max_results = max(1, min(MAX_RESULTS_CAP, max_results))

        try:
            per_account = await self.client.fetch_orders(
                from_dt,
                to_dt,
                max_results=max_results,
                status=status.upper() if status else None,
            )
        except SchwabError as exc:
            return self._api_failure(exc)
        return {
            "ok": True,
            "period": {"start": from_dt.isoformat(), "end": to_dt.isoformat()},
            "accounts": to_jsonable(per_account),
            "total_count": sum(len(item.orders) for item in per_account),
        }

    async def place_order(self, account_hash: str, order: Dict[str, Any]) -> Dict[str, Any]:
        """Validate ``order`` (Schwab's camelCase order JSON) and submit it."""
        if not account_hash:
            return self._error("NO_ACCOUNT", "Account hash is required to place an order")
        try:
            request = OrderRequest.from_payload(order)
        except (ValueError, TypeError, KeyError) as exc:
            return self._error("INVALID_ORDER", str(exc))

        logger.info(
            "Placing order | type={order_type} legs={legs}",
            order_type=request.order_type,
            legs=len(request.legs),
        )
        try:
            placed = await self.client.place_order(account_hash, request)
        except SchwabError as exc:
            return self._api_failure(exc)
        return {"ok": True, "order_id": placed.order_id, "order": request.to_payload()}
