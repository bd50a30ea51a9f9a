"""Failure taxonomy shared by the data source adapters."""

from __future__ import annotations


class RadioPlayerError(Exception):
    """Base class for every adapter failure."""


class NotConfiguredError(RadioPlayerError):
    """External credentials are missing; callers degrade to demo/mock data."""


class NetworkError(RadioPlayerError):
    """Transport failure (connection refused, DNS, timeout...)."""


class UpstreamError(RadioPlayerError):
    """The remote service answered with a non-success status."""

    def __init__(self, status_code: int, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"upstream returned {status_code}: {detail}" if detail else f"upstream returned {status_code}")


class NotFoundError(RadioPlayerError):
    """The requested record or file does not exist."""
