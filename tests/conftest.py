"""Shared test fixtures and helpers."""

from datetime import datetime, time, timedelta
from typing import Any, Optional
from zoneinfo import ZoneInfo

import pytest

from courtbook.config import AvailabilityBlock, BookingConfig
from courtbook.schemas.booking_schema import Booking, BookingStatus, StudentType
from courtbook.storage.memory import InMemoryBookingRepository
from courtbook.tools.booking import BookingService

TZ = ZoneInfo("Australia/Hobart")
COACH_ID = "coach-1"
FULL_DAY = (AvailabilityBlock(start=time(8, 0), end=time(20, 0)),)


def at(day: int, hour: int, minute: int = 0, month: int = 11) -> datetime:
    """An instant in November 2026, Hobart time (UTC+11)."""
    return datetime(2026, month, day, hour, minute, tzinfo=TZ)


def make_config(**overrides: Any) -> BookingConfig:
    values: dict[str, Any] = {
        "timezone": "Australia/Hobart",
        "lesson_duration_minutes": 60,
        "slot_step_minutes": 30,
        "max_group_size": 4,
        "max_booking_days": 30,
        "business_hours_start": 8,
        "business_hours_end": 20,
        "weekly_availability": {weekday: FULL_DAY for weekday in range(1, 8)},
    }
    values.update(overrides)
    return BookingConfig(**values)


def make_booking(
    start: datetime,
    minutes: int = 60,
    status: BookingStatus = BookingStatus.CONFIRMED,
    booking_id: str = "bk-1",
    coach_id: str = COACH_ID,
) -> Booking:
    """Helper to create a stored Booking without going through the service."""
    return Booking(
        id=booking_id,
        coach_id=coach_id,
        student_name="Ana Costa",
        student_type=StudentType.ADULT,
        group_size=1,
        contact_phone="0412345678",
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        status=status,
    )


def booking_payload(start: Optional[datetime] = None, **overrides: Any) -> dict[str, Any]:
    """A valid create payload as it would arrive from a form."""
    payload: dict[str, Any] = {
        "student_name": "  Ana Costa ",
        "student_type": "adult",
        "group_size": 2,
        "contact_phone": "0412 345 678",
        "contact_email": "ana@example.com",
        "start_time": (start or at(3, 10)).isoformat(),
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def config() -> BookingConfig:
    return make_config()


@pytest.fixture
def now() -> datetime:
    """Monday 2 November 2026, 07:00 in Hobart."""
    return at(2, 7)


@pytest.fixture
def repository() -> InMemoryBookingRepository:
    return InMemoryBookingRepository()


@pytest.fixture
def service(repository, config) -> BookingService:
    return BookingService(repository, config, COACH_ID)
