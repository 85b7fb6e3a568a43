"""
Custom exceptions for the scheduling engine.
"""

from typing import Any, Optional


class TripSlotError(Exception):
    """Base exception for tripslot."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ParseError(TripSlotError, ValueError):
    """Malformed wall-clock time string."""

    def __init__(self, message: str, value: Optional[Any] = None):
        super().__init__(message, details={"value": value})
        self.value = value


class ConfigurationError(TripSlotError):
    """Inconsistent scheduling configuration."""

    pass


class NotFoundError(TripSlotError):
    """Resource not found."""

    pass


class InfrastructureError(TripSlotError):
    """Persistence or other external collaborator failure."""

    pass
