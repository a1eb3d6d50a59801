from __future__ import annotations

from enum import IntEnum
from typing import Optional


class FieldSalesError(Exception):
    """Base class for all errors raised by this project."""


# -------------------------
# Location
# -------------------------
class LocationError(FieldSalesError):
    """Location could not be resolved; the submission must be blocked."""


class LocationUnavailable(LocationError):
    """The platform has no positioning capability at all. Never retried."""


class LocationAcquisitionFailed(LocationError):
    """Every attempt failed and not a single reading was collected."""

    def __init__(self, attempts: int, last_error: Optional["PositionError"] = None):
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error is not None else ""
        super().__init__(f"no location reading after {attempts} attempt(s){detail}")


class PositionErrorCode(IntEnum):
    # Same numbering as the W3C Geolocation PositionError codes
    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


class PositionError(FieldSalesError):
    """A single position request failed (device error or timeout)."""

    def __init__(self, code: PositionErrorCode | int, message: str = ""):
        self.code = PositionErrorCode(int(code))
        self.message = message or self.code.name.lower().replace("_", " ")
        super().__init__(f"{self.code.name}: {self.message}")


# -------------------------
# Backend / submission
# -------------------------
class BackendError(FieldSalesError):
    """The backend endpoint could not be reached or answered with an error."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message if status is None else f"{message} (HTTP {status})")


class VisitValidationError(FieldSalesError):
    """The visit form is incomplete. The message is shown to the agent as-is."""


class SubmissionBlocked(FieldSalesError):
    """Submission refused before anything was sent (e.g. no location)."""

    def __init__(self, user_message: str, cause: Optional[BaseException] = None):
        self.user_message = user_message
        self.cause = cause
        super().__init__(user_message)
