"""
Lesson slot generation and filtering.

Candidate start times come from the coach's weekly availability template;
bookable slots are the candidates that survive the slot rules against the
day's confirmed bookings.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, Mapping, Sequence
from zoneinfo import ZoneInfo

from courtbook.config import AvailabilityBlock, BookingConfig
from courtbook.rules.slot_rules import SlotRulePipeline
from courtbook.schemas.booking_schema import Booking, DateAvailability, SlotResponse
from courtbook.storage.base import BookingRepository
from courtbook.tools.timeutils import day_bounds, local_instant, local_today, overlaps, shift

logger = logging.getLogger(__name__)

MAX_DATES_RETURNED = 5


def generate_slots(
    day: date,
    weekly_availability: Mapping[int, Sequence[AvailabilityBlock]],
    lesson_duration: timedelta,
    step: timedelta,
    tz: ZoneInfo,
) -> list[datetime]:
    """
    Candidate lesson starts for ``day``, in block order then time order.

    A start is emitted only if a full lesson still fits before its block
    closes. Blocks shorter than one lesson contribute nothing.
    """
    if step <= timedelta(0):
        raise ValueError(f"Slot step must be positive, got {step}")

    slots: list[datetime] = []
    for block in weekly_availability.get(day.isoweekday(), ()):
        block_start = local_instant(day, block.start, tz)
        block_end = local_instant(day, block.end, tz)
        latest_start = shift(block_end, -lesson_duration)
        cursor = block_start
        while cursor <= latest_start:
            slots.append(cursor)
            cursor = shift(cursor, step)
    return slots


def available_slots(
    candidates: Iterable[datetime],
    bookings: Iterable[Booking],
    lesson_duration: timedelta,
) -> list[datetime]:
    """Drop every candidate whose lesson would overlap a confirmed booking."""
    busy = [(b.start_time, b.end_time) for b in bookings if b.is_confirmed]
    return [
        start for start in candidates
        if not any(
            overlaps(start, shift(start, lesson_duration), b_start, b_end)
            for b_start, b_end in busy
        )
    ]


def _bookable_slots(
    day: date,
    repository: BookingRepository,
    coach_id: str,
    config: BookingConfig,
    now: datetime,
) -> list[datetime]:
    tz = config.tz
    today = local_today(now, tz)
    if day < today or day > today + timedelta(days=config.max_booking_days):
        return []

    candidates = generate_slots(
        day, config.weekly_availability, config.lesson_duration, config.slot_step, tz
    )
    if not candidates:
        return []

    day_start, day_end = day_bounds(day, tz)
    # Include the previous day so a lesson running over midnight still blocks.
    bookings = repository.list_confirmed(
        coach_id, shift(day_start, -config.lesson_duration), day_end
    )
    free = available_slots(candidates, bookings, config.lesson_duration)
    pipeline = SlotRulePipeline(config)
    return [slot for slot in free if not pipeline.check_timing(slot, now)]


def get_day_slots(
    day: date,
    repository: BookingRepository,
    coach_id: str,
    config: BookingConfig,
    now: datetime,
) -> SlotResponse:
    """
    Bookable lesson starts for one date.

    Dates before today or beyond the booking horizon get an empty list.
    """
    slots = _bookable_slots(day, repository, coach_id, config, now)
    logger.debug("%d bookable slot(s) on %s", len(slots), day.isoformat())
    return SlotResponse(date=day, timezone=config.timezone, slots=slots)


def get_available_dates(
    repository: BookingRepository,
    coach_id: str,
    config: BookingConfig,
    now: datetime,
    limit: int = MAX_DATES_RETURNED,
) -> list[DateAvailability]:
    """Get the next ``limit`` dates inside the horizon that still have a bookable slot."""
    if limit <= 0:
        return []
    today = local_today(now, config.tz)
    results: list[DateAvailability] = []
    for offset in range(config.max_booking_days + 1):
        day = today + timedelta(days=offset)
        slots = _bookable_slots(day, repository, coach_id, config, now)
        if slots:
            results.append(
                DateAvailability(date=day, day_name=day.strftime("%A"), slot_count=len(slots))
            )
        if len(results) >= limit:
            break
    return results
