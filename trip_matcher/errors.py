"""Central error types used across the application."""

from __future__ import annotations


class TripMatcherError(RuntimeError):
    """Base error for the trip matching engine."""


class PayloadError(TripMatcherError, ValueError):
    """Raised when a trip, item or profile payload is missing required fields."""


class StoreError(TripMatcherError):
    """Raised when a backing store (rejections, profiles, trips) fails."""


class TripGatewayError(StoreError):
    """Raised when an item cannot be appended to a trip."""


class TripNotFoundError(TripGatewayError):
    """Raised when the target trip no longer exists."""


__all__ = [
    "TripMatcherError",
    "PayloadError",
    "StoreError",
    "TripGatewayError",
    "TripNotFoundError",
]
