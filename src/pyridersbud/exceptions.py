"""Custom exception hierarchy for pyridersbud."""

from __future__ import annotations


class RidersBudError(Exception):
    """Base exception for all pyridersbud errors."""


class RidersBudConfigError(RidersBudError):
    """Invalid or missing configuration."""


class RidersBudUsageError(RidersBudError, ValueError):
    """Invalid argument passed to a public API (e.g. an empty conversation id)."""


class RidersBudTransportError(RidersBudError):
    """Storage transport misuse or failure (not started, broker refused)."""

    def __init__(self, message: str, *, key: str = "") -> None:
        self.key = key
        super().__init__(message)


class RidersBudStoreError(RidersBudError):
    """HTTP-level failure talking to the booking store (network, non-2xx, invalid JSON)."""

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
