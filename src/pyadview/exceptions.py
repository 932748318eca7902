"""Custom exception hierarchy for pyadview."""

from __future__ import annotations


class AdViewError(Exception):
    """Base exception for all pyadview errors."""


class AdConfigError(AdViewError):
    """Invalid or missing configuration."""


class AnalyticsTransportError(AdViewError):
    """HTTP-level failure while delivering analytics events."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Connection failures, throttling and server errors may succeed later."""
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500
