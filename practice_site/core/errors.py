"""
Error taxonomy for the practice site core.

Every error carries a `kind` that matches the failure kinds the booking
backend reports, so client-detected and backend-reported failures can be
handled by the same code paths.
"""

from enum import Enum
from typing import Optional


class FailureKind(str, Enum):
    """Failure kinds shared with the booking backend."""

    INVALID_DATA = "INVALID_DATA"
    SLOT_NOT_AVAILABLE = "SLOT_NOT_AVAILABLE"
    GROUP_NOT_FOUND = "GROUP_NOT_FOUND"
    DOCTOR_NOT_FOUND = "DOCTOR_NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    @classmethod
    def parse(cls, value: Optional[str]) -> "FailureKind":
        """Map a backend error code to a kind; unknown codes are internal."""
        try:
            return cls(value)
        except ValueError:
            return cls.INTERNAL_ERROR


class PracticeSiteError(Exception):
    """Base class for all core errors."""

    kind: FailureKind = FailureKind.INTERNAL_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PracticeSiteError):
    """Client-detected invalid input. Never reaches the network."""

    kind = FailureKind.INVALID_DATA

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(PracticeSiteError):
    """Practice or doctor does not exist."""

    def __init__(self, message: str, kind: FailureKind = FailureKind.GROUP_NOT_FOUND):
        super().__init__(message)
        self.kind = kind


class ConflictError(PracticeSiteError):
    """Slot was taken between render and submit.

    Booking conflicts are reported as `BookingFailure(SLOT_NOT_AVAILABLE)` so
    the refreshed availability can travel with them; this class gives the
    same failure an exception form for the HTTP error mapping (409).
    """

    kind = FailureKind.SLOT_NOT_AVAILABLE


class TransportError(PracticeSiteError):
    """Network failure, bad status, or unparseable backend response."""

    kind = FailureKind.INTERNAL_ERROR


class UnknownIntentError(PracticeSiteError):
    """Lookup of an intent key that is not registered."""

    def __init__(self, key: str):
        super().__init__(f"Unknown intent: {key}")
        self.key = key


class ConfigurationError(PracticeSiteError):
    """Terminal misconfiguration (e.g. no practice slug). Not retryable."""
