"""
Booking service: the single entry point for reading and writing lessons.

Every write runs the same pipeline: intake validation, then the slot rules,
then the repository's atomic conflict check and insert. Nothing is written
until all validation has passed.
"""

from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional

from courtbook.config import BookingConfig
from courtbook.errors import ConflictError, ValidationError
from courtbook.logging_context import get_request_logger
from courtbook.rules.intake import BookingIntake
from courtbook.rules.slot_rules import RuleResult, SlotRulePipeline
from courtbook.rules.status import transition
from courtbook.schemas.booking_schema import (
    Booking,
    BookingStatus,
    DateAvailability,
    NewBooking,
    SlotResponse,
)
from courtbook.storage.base import BookingRepository
from courtbook.tools.availability import MAX_DATES_RETURNED, get_available_dates, get_day_slots
from courtbook.tools.timeutils import day_bounds, parse_instant, shift

logger = get_request_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingService:
    """Availability queries and booking writes for one coach."""

    def __init__(self, repository: BookingRepository, config: BookingConfig, coach_id: str) -> None:
        self.repository = repository
        self.config = config
        self.coach_id = coach_id
        self.intake = BookingIntake(config)
        self.rules = SlotRulePipeline(config)

    # ------------------------------------------------------------------ #
    # Availability
    # ------------------------------------------------------------------ #

    def get_day_slots(self, day: date, now: Optional[datetime] = None) -> SlotResponse:
        return get_day_slots(day, self.repository, self.coach_id, self.config, now or _utcnow())

    def get_available_dates(
        self, now: Optional[datetime] = None, limit: int = MAX_DATES_RETURNED
    ) -> list[DateAvailability]:
        return get_available_dates(
            self.repository, self.coach_id, self.config, now or _utcnow(), limit
        )

    def check_slot(self, slot_start: datetime, now: Optional[datetime] = None) -> list[RuleResult]:
        """Every rule the slot fails, most user-relevant first. Empty means bookable."""
        day_start, day_end = day_bounds(slot_start.astimezone(self.config.tz).date(), self.config.tz)
        bookings = self.repository.list_confirmed(
            self.coach_id, shift(day_start, -self.config.lesson_duration), day_end
        )
        return self.rules.check_slot(slot_start, bookings, now or _utcnow())

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def create_booking(self, payload: Mapping[str, Any], now: Optional[datetime] = None) -> Booking:
        """
        Validate and store a new confirmed lesson.

        Raises:
            ValidationError: bad field values, or a start time that is in the
                past, beyond the horizon, after closing or outside availability.
            ConflictError: the lesson overlaps a confirmed booking.
            StorageError: the repository failed.
        """
        request = self.intake.validate_create(payload)
        violations = self.rules.check_timing(request.start_time, now or _utcnow())
        if violations:
            logger.warning(
                "Booking rejected at %s: %s",
                request.start_time.isoformat(), violations[0].violation_type,
            )
            raise ValidationError({"start_time": violations[0].message or "Slot unavailable"})

        candidate = NewBooking(
            **request.model_dump(),
            coach_id=self.coach_id,
            end_time=shift(request.start_time, self.config.lesson_duration),
        )
        try:
            booking = self.repository.insert(candidate)
        except ConflictError:
            logger.warning(
                "Booking conflict at %s for coach %s",
                candidate.start_time.isoformat(), self.coach_id,
            )
            raise
        logger.info(
            "Booking created: %s for %s at %s",
            booking.id, booking.student_name, booking.start_time.isoformat(),
        )
        return booking

    def update_booking(self, booking_id: str, payload: Mapping[str, Any]) -> Booking:
        """
        Edit the mutable fields of a booking. Start and end never change here.

        Raises:
            ValidationError: bad field values or an attempt to move the lesson.
            InvalidTransitionError: a disallowed status change.
            NotFoundError: unknown booking id.
        """
        changes = self.intake.validate_update(payload).model_dump(exclude_unset=True)
        if "status" in changes:
            current = self.repository.get(self.coach_id, booking_id)
            transition(current.status, changes["status"])
        booking = self.repository.update(self.coach_id, booking_id, changes)
        logger.info("Booking updated: %s (%s)", booking_id, ", ".join(sorted(changes)) or "no changes")
        return booking

    def cancel_booking(self, booking_id: str) -> Booking:
        """Mark a booking cancelled, freeing its slot but keeping the record."""
        return self.update_booking(booking_id, {"status": BookingStatus.CANCELLED.value})

    def delete_booking(self, booking_id: str) -> None:
        """Remove a booking. Raises NotFoundError if it is already gone."""
        self.repository.delete(self.coach_id, booking_id)
        logger.info("Booking deleted: %s", booking_id)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get_booking(self, booking_id: str) -> Booking:
        return self.repository.get(self.coach_id, booking_id)

    def list_bookings(self, start: Any, end: Any) -> list[Booking]:
        """
        Confirmed bookings starting in ``[start, end)``, earliest first.

        Both bounds are aware datetimes or ISO-8601 strings with an offset.

        Raises:
            ValidationError: unparseable bounds, or ``end`` not after ``start``.
        """
        tz = self.config.tz
        start_at = parse_instant(start, tz)
        end_at = parse_instant(end, tz)
        if start_at is None or end_at is None:
            raise ValidationError({"range": "Invalid date range"})
        if end_at <= start_at:
            raise ValidationError({"range": "'to' must be after 'from'"})
        return self.repository.list_confirmed(self.coach_id, start_at, end_at)
