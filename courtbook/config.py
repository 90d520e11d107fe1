"""
Centralized configuration with environment variable overrides.

The scheduling rules (operating timezone, lesson length, slot step, group
size cap, booking horizon, business hours and the weekly availability
template) are collected in ``BookingConfig`` and passed explicitly into the
availability and validation code, so a deployment can change them without
touching the rules themselves.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from courtbook.logging_context import RequestIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

MEMORY_DATABASE_URL = "memory://"
DEFAULT_DAY_AVAILABILITY = "08:00-20:00"

# ISO weekday (Monday=1) -> environment variable holding that day's blocks
WEEKDAY_ENV_VARS: dict[int, str] = {
    1: "AVAILABILITY_MON",
    2: "AVAILABILITY_TUE",
    3: "AVAILABILITY_WED",
    4: "AVAILABILITY_THU",
    5: "AVAILABILITY_FRI",
    6: "AVAILABILITY_SAT",
    7: "AVAILABILITY_SUN",
}


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class AvailabilityBlock:
    """An open window on a weekday from which lesson slots are generated."""

    start: time
    end: time

    def __str__(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"


def parse_availability(raw: str) -> tuple[AvailabilityBlock, ...]:
    """Parse ``"08:00-12:00,13:00-20:00"`` into availability blocks.

    An empty string means the coach does not teach that day.
    """
    blocks = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        try:
            start_raw, end_raw = chunk.split("-")
            start = datetime.strptime(start_raw.strip(), "%H:%M").time()
            end = datetime.strptime(end_raw.strip(), "%H:%M").time()
        except ValueError:
            raise ValueError(f"Invalid availability block: {chunk!r}") from None
        blocks.append(AvailabilityBlock(start=start, end=end))
    return tuple(blocks)


def _load_weekly_availability() -> dict[int, tuple[AvailabilityBlock, ...]]:
    """Read the per-weekday availability template from the environment."""
    weekly: dict[int, tuple[AvailabilityBlock, ...]] = {}
    for weekday, env_var in WEEKDAY_ENV_VARS.items():
        raw = os.getenv(env_var, DEFAULT_DAY_AVAILABILITY)
        try:
            blocks = parse_availability(raw)
        except ValueError as exc:
            raise ValueError(f"Invalid value for {env_var}: {exc}") from None
        if blocks:
            weekly[weekday] = blocks
    return weekly


@dataclass(frozen=True)
class BookingConfig:
    """Scheduling rules for the coach, loaded from environment or defaults."""

    timezone: str = os.getenv("COACH_TIMEZONE", "Australia/Hobart")
    lesson_duration_minutes: int = _safe_int("LESSON_DURATION_MINUTES", "60")
    slot_step_minutes: int = _safe_int("SLOT_STEP_MINUTES", "30")
    max_group_size: int = _safe_int("MAX_GROUP_SIZE", "4")
    max_booking_days: int = _safe_int("MAX_BOOKING_DAYS", "30")
    business_hours_start: int = _safe_int("BUSINESS_HOURS_START", "8")
    business_hours_end: int = _safe_int("BUSINESS_HOURS_END", "20")
    weekly_availability: dict[int, tuple[AvailabilityBlock, ...]] = field(
        default_factory=_load_weekly_availability
    )

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def lesson_duration(self) -> timedelta:
        return timedelta(minutes=self.lesson_duration_minutes)

    @property
    def slot_step(self) -> timedelta:
        return timedelta(minutes=self.slot_step_minutes)


@dataclass(frozen=True)
class StorageConfig:
    """Where bookings are persisted."""

    database_url: str = os.getenv("DATABASE_URL", "sqlite:///courtbook.db")
    echo_sql: bool = os.getenv("ECHO_SQL", "false").lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    booking: BookingConfig = field(default_factory=BookingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    coach_id: str = os.getenv("COACH_ID", "default-coach")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "courtbook")


def _validate_booking_config(booking: BookingConfig) -> None:
    """Validate scheduling rules are internally consistent."""
    try:
        ZoneInfo(booking.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(
            f"COACH_TIMEZONE is not a known timezone: {booking.timezone!r}"
        ) from None
    if booking.lesson_duration_minutes < 1:
        raise ValueError(
            f"LESSON_DURATION_MINUTES must be >= 1, got {booking.lesson_duration_minutes}"
        )
    if booking.slot_step_minutes < 1:
        raise ValueError(
            f"SLOT_STEP_MINUTES must be >= 1, got {booking.slot_step_minutes}"
        )
    # A step wider than the lesson leaves gaps no slot can ever start in.
    if booking.slot_step_minutes > booking.lesson_duration_minutes:
        raise ValueError(
            "SLOT_STEP_MINUTES must not exceed LESSON_DURATION_MINUTES, "
            f"got {booking.slot_step_minutes} > {booking.lesson_duration_minutes}"
        )
    if booking.max_group_size < 1:
        raise ValueError(
            f"MAX_GROUP_SIZE must be >= 1, got {booking.max_group_size}"
        )
    if booking.max_booking_days < 0:
        raise ValueError(
            f"MAX_BOOKING_DAYS must be >= 0, got {booking.max_booking_days}"
        )
    if not 0 <= booking.business_hours_start < booking.business_hours_end <= 24:
        raise ValueError(
            "BUSINESS_HOURS_START and BUSINESS_HOURS_END must satisfy "
            f"0 <= start < end <= 24, got {booking.business_hours_start}-"
            f"{booking.business_hours_end}"
        )

    for weekday, blocks in booking.weekly_availability.items():
        if weekday not in WEEKDAY_ENV_VARS:
            raise ValueError(f"Availability weekday must be 1-7, got {weekday}")
        for block in blocks:
            if block.start >= block.end:
                raise ValueError(
                    f"{WEEKDAY_ENV_VARS[weekday]} block {block} must start before it ends"
                )
            # A closing hour of 24 admits any block end up to midnight.
            opens_early = block.start < time(booking.business_hours_start)
            closes_late = (
                booking.business_hours_end < 24
                and block.end > time(booking.business_hours_end)
            )
            if opens_early or closes_late:
                raise ValueError(
                    f"{WEEKDAY_ENV_VARS[weekday]} block {block} must lie within "
                    f"BUSINESS_HOURS_START-BUSINESS_HOURS_END "
                    f"({booking.business_hours_start}-{booking.business_hours_end})"
                )


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    _validate_booking_config(config.booking)
    if not config.coach_id.strip():
        raise ValueError("COACH_ID is required")
    if not config.storage.database_url.strip():
        raise ValueError("DATABASE_URL is required")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[handler],
    )
    logger.info(
        "%s configuration loaded for coach '%s' in %s",
        config.app_name, config.coach_id, config.booking.timezone,
    )
    return config


# Singleton instance
settings = load_config()
