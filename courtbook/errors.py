"""
Booking error taxonomy.

Each error carries an HTTP-style ``status_code`` so a transport layer can map
it without inspecting the message, plus a machine-readable ``code`` and a
``details`` dict.
"""

from typing import Any, Optional


class BookingError(Exception):
    """Base exception for all booking errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "code": self.code, "details": self.details}


class ValidationError(BookingError):
    """Raised when input is malformed or out of range.

    ``errors`` maps each offending field to a human-readable message.
    """

    status_code = 400

    def __init__(self, errors: dict[str, str], message: str = "Invalid booking request") -> None:
        self.errors = dict(errors)
        super().__init__(message, code="VALIDATION_ERROR", details={"errors": self.errors})


class ConflictError(BookingError):
    """Raised when a lesson would overlap an existing confirmed booking."""

    status_code = 409

    def __init__(
        self,
        message: str = "Time conflict with an existing booking",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code="BOOKING_CONFLICT", details=details)


class NotFoundError(BookingError):
    """Raised when a booking id is unknown or belongs to another coach."""

    status_code = 404

    def __init__(self, booking_id: str) -> None:
        self.booking_id = booking_id
        super().__init__(
            f"Booking {booking_id} not found or already deleted",
            code="BOOKING_NOT_FOUND",
            details={"booking_id": booking_id},
        )


class InvalidTransitionError(BookingError):
    """Raised when a booking status change is not allowed."""

    status_code = 400


class StorageError(BookingError):
    """Raised when the booking store fails for reasons other than a conflict."""

    status_code = 500

    def __init__(self, message: str = "Unable to complete booking operation") -> None:
        super().__init__(message, code="STORAGE_ERROR")
