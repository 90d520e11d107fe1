"""
Booking repository contract.

Implementations own the final overlap guarantee: ``insert`` must check for a
conflicting confirmed booking and write the new row as one atomic step, so
two racing requests for the same interval cannot both succeed.
"""

from datetime import datetime
from typing import Any, Protocol

from courtbook.schemas.booking_schema import Booking, NewBooking


class BookingRepository(Protocol):
    """Storage operations the booking service depends on."""

    def list_confirmed(self, coach_id: str, start: datetime, end: datetime) -> list[Booking]:
        """Confirmed bookings with ``start <= start_time < end``, earliest first."""
        ...

    def list_all(self, coach_id: str) -> list[Booking]:
        """Every booking of the coach regardless of status, earliest first."""
        ...

    def get(self, coach_id: str, booking_id: str) -> Booking:
        """Raises NotFoundError if absent."""
        ...

    def insert(self, candidate: NewBooking) -> Booking:
        """Atomically check for overlap and store a confirmed booking.

        Raises ConflictError on overlap and StorageError on backend failure.
        """
        ...

    def update(self, coach_id: str, booking_id: str, fields: dict[str, Any]) -> Booking:
        """Apply field changes. Raises NotFoundError if absent."""
        ...

    def delete(self, coach_id: str, booking_id: str) -> None:
        """Remove a booking. Raises NotFoundError if absent or already deleted."""
        ...
