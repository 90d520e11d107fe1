"""
Intake validation for booking forms: Collect -> Validate -> Normalize.

Every field is described by a FieldDefinition whose parser either returns the
normalized value or raises ValueError with the message shown to the user.
Errors are gathered for all fields before anything is written, so a caller
gets one field-level map instead of fixing the form one error at a time.

Usage:
    intake = BookingIntake(config)
    request = intake.validate_create(payload)   # BookingRequest
    changes = intake.validate_update(payload)   # BookingUpdate
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from courtbook.config import BookingConfig
from courtbook.errors import ValidationError
from courtbook.schemas.booking_schema import (
    BookingRequest,
    BookingStatus,
    BookingUpdate,
    SkillLevel,
    StudentType,
)
from courtbook.tools.timeutils import parse_instant
from courtbook.utils import clean_text, digit_count, is_valid_email, normalize_phone

logger = logging.getLogger(__name__)

# Validation thresholds
MIN_PHONE_DIGITS = 7
MAX_PHONE_DIGITS = 15
MAX_NAME_LENGTH = 100

IMMUTABLE_FIELDS = ("start_time", "end_time", "coach_id", "id")

Parser = Callable[[Any, BookingConfig], Any]


def _parse_name(value: Any, config: BookingConfig) -> str:
    name = clean_text(value)
    if not name:
        raise ValueError("Student name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise ValueError(f"Student name must be at most {MAX_NAME_LENGTH} characters")
    return name


def _parse_student_type(value: Any, config: BookingConfig) -> StudentType:
    try:
        return StudentType(clean_text(value).lower())
    except ValueError:
        raise ValueError("Student type must be 'kid' or 'adult'") from None


def _parse_skill_level(value: Any, config: BookingConfig) -> Optional[SkillLevel]:
    raw = clean_text(value)
    if not raw:
        return None
    for level in SkillLevel:
        if level.value.lower() == raw.lower():
            return level
    allowed = ", ".join(level.value for level in SkillLevel)
    raise ValueError(f"Skill level must be one of {allowed}")


def _parse_group_size(value: Any, config: BookingConfig) -> int:
    message = f"Group size must be between 1 and {config.max_group_size}"
    # bool is an int subclass; True is not a group of one.
    if isinstance(value, bool):
        raise ValueError(message)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or not 1 <= value <= config.max_group_size:
        raise ValueError(message)
    return value


def _parse_phone(value: Any, config: BookingConfig) -> str:
    phone = clean_text(value)
    if not phone:
        raise ValueError("Phone number is required")
    if not MIN_PHONE_DIGITS <= digit_count(phone) <= MAX_PHONE_DIGITS:
        raise ValueError("Phone number doesn't look right")
    return normalize_phone(phone)


def _parse_email(value: Any, config: BookingConfig) -> Optional[str]:
    email = clean_text(value)
    if not email:
        return None
    if not is_valid_email(email):
        raise ValueError("Email address is invalid")
    return email.lower()


def _parse_start_time(value: Any, config: BookingConfig) -> datetime:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError("Start time is required")
    instant = parse_instant(value, config.tz)
    if instant is None:
        raise ValueError("Start time is invalid")
    return instant


def _parse_status(value: Any, config: BookingConfig) -> BookingStatus:
    try:
        return BookingStatus(clean_text(value).lower())
    except ValueError:
        allowed = ", ".join(s.value for s in BookingStatus)
        raise ValueError(f"Status must be one of {allowed}") from None


@dataclass(frozen=True)
class FieldDefinition:
    """Schema for a single intake field."""

    name: str
    parser: Parser
    required: bool = True
    editable: bool = True


class BookingIntake:
    """Validates and normalizes booking payloads against the scheduling rules."""

    FIELD_DEFINITIONS: list[FieldDefinition] = [
        FieldDefinition(name="student_name", parser=_parse_name),
        FieldDefinition(name="skill_level", parser=_parse_skill_level, required=False),
        FieldDefinition(name="student_type", parser=_parse_student_type),
        FieldDefinition(name="group_size", parser=_parse_group_size),
        FieldDefinition(name="contact_phone", parser=_parse_phone),
        FieldDefinition(name="contact_email", parser=_parse_email, required=False),
        FieldDefinition(name="start_time", parser=_parse_start_time, editable=False),
        FieldDefinition(name="status", parser=_parse_status, required=False),
    ]

    def __init__(self, config: BookingConfig) -> None:
        self.config = config

    def _parse_fields(
        self, payload: Mapping[str, Any], definitions: list[FieldDefinition]
    ) -> tuple[dict[str, Any], dict[str, str]]:
        values: dict[str, Any] = {}
        errors: dict[str, str] = {}
        for defn in definitions:
            try:
                values[defn.name] = defn.parser(payload.get(defn.name), self.config)
            except ValueError as exc:
                errors[defn.name] = str(exc)
        return values, errors

    def validate_create(self, payload: Mapping[str, Any]) -> BookingRequest:
        """Validate a new-booking payload.

        Raises:
            ValidationError: with one message per invalid field.
        """
        definitions = [
            defn for defn in self.FIELD_DEFINITIONS
            if defn.name != "status" and (defn.required or defn.name in payload)
        ]
        values, errors = self._parse_fields(payload, definitions)
        if errors:
            logger.debug("Booking intake rejected: %s", errors)
            raise ValidationError(errors)
        return BookingRequest(**values)

    def validate_update(self, payload: Mapping[str, Any]) -> BookingUpdate:
        """Validate the mutable fields present in an edit payload.

        Start and end times cannot be edited; moving a lesson means cancelling
        it and booking a new slot.

        Raises:
            ValidationError: with one message per invalid field.
        """
        errors = {
            name: f"{name} cannot be changed"
            for name in IMMUTABLE_FIELDS
            if name in payload
        }
        definitions = [
            defn for defn in self.FIELD_DEFINITIONS
            if defn.editable and defn.name in payload
        ]
        values, field_errors = self._parse_fields(payload, definitions)
        errors.update(field_errors)
        if errors:
            logger.debug("Booking update rejected: %s", errors)
            raise ValidationError(errors)
        return BookingUpdate(**values)
