"""
Error taxonomy for the NeoWs ingestion pipeline.

Unresolvable approaches are not errors; they are a resolution state
(see services/approach.py).
"""

from typing import Optional


class NeoWatchError(Exception):
    """Base class for every failure the pipeline raises on purpose."""


class InvalidArgument(NeoWatchError, ValueError):
    pass


class BudgetExceeded(NeoWatchError):
    """The request governor refused the call before any transport attempt."""

    def __init__(self, ceiling: int, message: Optional[str] = None):
        self.ceiling = ceiling
        super().__init__(message or f"NeoWs request budget exhausted ({ceiling} requests)")


class TransportFailure(NeoWatchError):
    """Non-2xx response or network error from the NeoWs transport."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RateLimited(TransportFailure):
    """Upstream answered 429. Callers should stop issuing calls for this batch."""

    def __init__(self, message: str = "NeoWs error 429: rate limit exceeded"):
        super().__init__(message, status_code=429)


class RunCancelled(NeoWatchError):
    """A pipeline run was superseded or cancelled; its results must be discarded."""
