"""Exceptions raised by the Schwab client."""

from __future__ import annotations

from typing import Optional


class SchwabError(RuntimeError):
    """Base class for every error raised by this package."""


class SchwabApiError(SchwabError):
    """The Schwab API answered with a non-success HTTP status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class SchwabAuthError(SchwabApiError):
    """HTTP 401: the access token is missing, expired or revoked."""


class SchwabDataError(SchwabError):
    """A response did not contain the data an operation depends on."""


__all__ = ["SchwabError", "SchwabApiError", "SchwabAuthError", "SchwabDataError"]
