"""
In-process booking store.

Used for tests, demos and single-process deployments. The overlap check and
the write run under one lock, so concurrent requests for the same slot
cannot both succeed.
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any

from courtbook.errors import ConflictError, NotFoundError
from courtbook.schemas.booking_schema import Booking, BookingStatus, NewBooking
from courtbook.tools.timeutils import overlaps

logger = logging.getLogger(__name__)


class InMemoryBookingRepository:
    """Dict-backed repository keyed by booking id."""

    def __init__(self) -> None:
        self._bookings: dict[str, Booking] = {}
        self._lock = threading.Lock()

    def _get(self, coach_id: str, booking_id: str) -> Booking:
        booking = self._bookings.get(booking_id)
        if booking is None or booking.coach_id != coach_id:
            raise NotFoundError(booking_id)
        return booking

    def list_confirmed(self, coach_id: str, start: datetime, end: datetime) -> list[Booking]:
        with self._lock:
            matches = [
                b for b in self._bookings.values()
                if b.coach_id == coach_id and b.is_confirmed and start <= b.start_time < end
            ]
        return sorted(matches, key=lambda b: b.start_time)

    def list_all(self, coach_id: str) -> list[Booking]:
        with self._lock:
            matches = [b for b in self._bookings.values() if b.coach_id == coach_id]
        return sorted(matches, key=lambda b: b.start_time)

    def get(self, coach_id: str, booking_id: str) -> Booking:
        with self._lock:
            return self._get(coach_id, booking_id)

    def insert(self, candidate: NewBooking) -> Booking:
        with self._lock:
            for existing in self._bookings.values():
                if (
                    existing.coach_id == candidate.coach_id
                    and existing.is_confirmed
                    and overlaps(
                        existing.start_time, existing.end_time,
                        candidate.start_time, candidate.end_time,
                    )
                ):
                    raise ConflictError(details={"conflicting_booking_id": existing.id})

            booking = Booking(
                **candidate.model_dump(),
                id=uuid.uuid4().hex,
                status=BookingStatus.CONFIRMED,
                created_at=datetime.now(timezone.utc),
            )
            self._bookings[booking.id] = booking
        logger.debug("Stored booking %s in memory", booking.id)
        return booking

    def update(self, coach_id: str, booking_id: str, fields: dict[str, Any]) -> Booking:
        with self._lock:
            updated = self._get(coach_id, booking_id).model_copy(update=fields)
            self._bookings[booking_id] = updated
        return updated

    def delete(self, coach_id: str, booking_id: str) -> None:
        with self._lock:
            self._get(coach_id, booking_id)
            del self._bookings[booking_id]
