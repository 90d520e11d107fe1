"""
Independent legality rules for a proposed lesson start.

Each rule checks one concern and reports a RuleResult:
1. PastTimeRule: the lesson would start before now
2. BookingHorizonRule: the date is too far ahead of today
3. OpeningTimeRule: the lesson would start before opening time
4. ClosingTimeRule: the lesson would run past closing time
5. ConflictRule: the lesson overlaps a confirmed booking
6. AvailabilityWindowRule: the lesson does not fit in any open block

SlotRulePipeline evaluates all of them and returns every failure, ordered by
the priority above so the first entry is the one to show the user.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Iterable, Optional

from courtbook.config import BookingConfig
from courtbook.schemas.booking_schema import Booking
from courtbook.tools.timeutils import local_instant, local_today, overlaps, shift

logger = logging.getLogger(__name__)


@dataclass
class RuleResult:
    """Outcome of a single rule check."""
    passed: bool
    violation_type: Optional[str] = None
    message: Optional[str] = None


class PastTimeRule:
    """Rejects lessons that would start before the current instant."""

    def check(self, slot_start: datetime, now: datetime) -> RuleResult:
        if slot_start < now:
            return RuleResult(
                passed=False,
                violation_type="past_time",
                message="Cannot book in the past",
            )
        return RuleResult(passed=True)


class BookingHorizonRule:
    """Rejects dates more than ``max_booking_days`` after today."""

    def __init__(self, config: BookingConfig) -> None:
        self.config = config

    def check(self, slot_start: datetime, now: datetime) -> RuleResult:
        tz = self.config.tz
        days_ahead = (slot_start.astimezone(tz).date() - local_today(now, tz)).days
        if days_ahead > self.config.max_booking_days:
            return RuleResult(
                passed=False,
                violation_type="beyond_horizon",
                message=f"Limit: {self.config.max_booking_days} days",
            )
        return RuleResult(passed=True)


class OpeningTimeRule:
    """Rejects lessons that would start before the day's opening hour."""

    def __init__(self, config: BookingConfig) -> None:
        self.config = config

    def check(self, slot_start: datetime) -> RuleResult:
        local_start = slot_start.astimezone(self.config.tz)
        opening = local_instant(
            local_start.date(), time(self.config.business_hours_start), self.config.tz
        )
        if slot_start < opening:
            return RuleResult(
                passed=False,
                violation_type="before_opening",
                message=f"Opens at {self.config.business_hours_start:02d}:00",
            )
        return RuleResult(passed=True)


class ClosingTimeRule:
    """Rejects lessons that would end after the day's closing hour."""

    def __init__(self, config: BookingConfig) -> None:
        self.config = config

    def closing_time(self, slot_start: datetime) -> datetime:
        local_day = slot_start.astimezone(self.config.tz).date()
        # Wall-clock addition so a closing hour of 24 lands on the next midnight.
        return local_instant(local_day, time.min, self.config.tz) + timedelta(
            hours=self.config.business_hours_end
        )

    def check(self, slot_start: datetime) -> RuleResult:
        slot_end = shift(slot_start, self.config.lesson_duration)
        if slot_end > self.closing_time(slot_start):
            return RuleResult(
                passed=False,
                violation_type="after_closing",
                message=f"Closes at {self.config.business_hours_end}:00",
            )
        return RuleResult(passed=True)


class ConflictRule:
    """Rejects lessons overlapping any confirmed booking."""

    def __init__(self, config: BookingConfig) -> None:
        self.config = config

    def find_conflicts(self, slot_start: datetime, bookings: Iterable[Booking]) -> list[Booking]:
        slot_end = shift(slot_start, self.config.lesson_duration)
        return [
            b for b in bookings
            if b.is_confirmed and overlaps(slot_start, slot_end, b.start_time, b.end_time)
        ]

    def check(self, slot_start: datetime, bookings: Iterable[Booking]) -> RuleResult:
        conflicts = self.find_conflicts(slot_start, bookings)
        if conflicts:
            logger.debug(
                "Slot %s overlaps %d booking(s)", slot_start.isoformat(), len(conflicts)
            )
            return RuleResult(
                passed=False,
                violation_type="time_conflict",
                message="Time conflict",
            )
        return RuleResult(passed=True)


class AvailabilityWindowRule:
    """Rejects lessons that do not fit entirely inside one availability block."""

    def __init__(self, config: BookingConfig) -> None:
        self.config = config

    def check(self, slot_start: datetime) -> RuleResult:
        tz = self.config.tz
        local_start = slot_start.astimezone(tz)
        slot_end = shift(slot_start, self.config.lesson_duration)
        day = local_start.date()
        for block in self.config.weekly_availability.get(day.isoweekday(), ()):
            block_start = local_instant(day, block.start, tz)
            block_end = local_instant(day, block.end, tz)
            if block_start <= slot_start and slot_end <= block_end:
                return RuleResult(passed=True)
        return RuleResult(
            passed=False,
            violation_type="outside_availability",
            message="Outside the coach's availability",
        )


class SlotRulePipeline:
    """Composes all slot rules into timing, conflict and full checks."""

    def __init__(self, config: BookingConfig) -> None:
        self.config = config
        self.past = PastTimeRule()
        self.horizon = BookingHorizonRule(config)
        self.opening = OpeningTimeRule(config)
        self.closing = ClosingTimeRule(config)
        self.conflict = ConflictRule(config)
        self.window = AvailabilityWindowRule(config)

    def check_timing(self, slot_start: datetime, now: datetime) -> list[RuleResult]:
        """Rules that depend only on the clock and the configuration."""
        results = [
            self.past.check(slot_start, now),
            self.horizon.check(slot_start, now),
            self.opening.check(slot_start),
            self.closing.check(slot_start),
            self.window.check(slot_start),
        ]
        return [r for r in results if not r.passed]

    def check_slot(
        self, slot_start: datetime, bookings: Iterable[Booking], now: datetime
    ) -> list[RuleResult]:
        """Evaluate every rule; failures come back in user-facing priority order."""
        results = [
            self.past.check(slot_start, now),
            self.horizon.check(slot_start, now),
            self.opening.check(slot_start),
            self.closing.check(slot_start),
            self.conflict.check(slot_start, bookings),
            self.window.check(slot_start),
        ]
        return [r for r in results if not r.passed]

    def is_bookable(
        self, slot_start: datetime, bookings: Iterable[Booking], now: datetime
    ) -> bool:
        return not self.check_slot(slot_start, list(bookings), now)
