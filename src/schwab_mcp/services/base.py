"""Shared helpers for Schwab service objects."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, is_dataclass
from datetime import date, datetime
from typing import Any, Dict

from loguru import logger

from schwab_mcp.client import SchwabClient
from schwab_mcp.errors import SchwabAuthError, SchwabError


@dataclass(slots=True)
class SchwabService:
    """Base class for small service helpers that need the shared Schwab client."""

    client: SchwabClient

    @staticmethod
    def _error(error_type: str, message: str, **extra: Any) -> Dict[str, Any]:
        return {"ok": False, "error_type": error_type, "message": message, **extra}

    @classmethod
    def _api_failure(cls, exc: SchwabError, **extra: Any) -> Dict[str, Any]:
        """Turn a client error into the error payload MCP callers receive."""
        logger.opt(exception=exc).error("Schwab request failed")
        error_type = "UNAUTHORIZED" if isinstance(exc, SchwabAuthError) else "API_ERROR"
        return cls._error(error_type, str(exc), **extra)


def to_jsonable(value: Any) -> Any:
    """Convert dataclasses, dates and NaNs into JSON-friendly values."""
    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value
