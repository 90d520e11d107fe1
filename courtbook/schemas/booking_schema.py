"""Booking and availability data models."""

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator


class StudentType(str, Enum):
    """Who the lesson is for."""

    KID = "kid"
    ADULT = "adult"


class SkillLevel(str, Enum):
    """Self-reported playing level of the student."""

    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    PRO = "Pro"


class BookingStatus(str, Enum):
    """Lifecycle status of a booking. Only CONFIRMED blocks the calendar."""

    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class BookingRequest(BaseModel):
    """Validated intake data for a new lesson."""

    student_name: str = Field(min_length=1)
    skill_level: Optional[SkillLevel] = None
    student_type: StudentType
    group_size: int = Field(ge=1)
    contact_phone: str = Field(min_length=1)
    contact_email: Optional[str] = None
    start_time: AwareDatetime


class NewBooking(BookingRequest):
    """A booking request resolved to a coach and a fixed-length interval."""

    coach_id: str
    end_time: AwareDatetime

    @model_validator(mode="after")
    def _end_after_start(self) -> "NewBooking":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class Booking(NewBooking):
    """Persisted booking record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    status: BookingStatus = BookingStatus.CONFIRMED
    created_at: Optional[AwareDatetime] = None

    @property
    def is_confirmed(self) -> bool:
        return self.status == BookingStatus.CONFIRMED

    @property
    def display_name(self) -> str:
        """Calendar label, e.g. ``"Ana Costa (Beginner)"``."""
        if self.skill_level is None:
            return self.student_name
        return f"{self.student_name} ({self.skill_level.value})"


class BookingUpdate(BaseModel):
    """Mutable subset of a booking. Unset fields are left unchanged."""

    student_name: Optional[str] = Field(default=None, min_length=1)
    skill_level: Optional[SkillLevel] = None
    student_type: Optional[StudentType] = None
    group_size: Optional[int] = Field(default=None, ge=1)
    contact_phone: Optional[str] = Field(default=None, min_length=1)
    contact_email: Optional[str] = None
    status: Optional[BookingStatus] = None


class SlotResponse(BaseModel):
    """Bookable lesson start times for one calendar date."""

    date: dt.date
    timezone: str
    slots: list[dt.datetime] = Field(default_factory=list)


class DateAvailability(BaseModel):
    """Summary of bookable slots for a single date."""

    date: dt.date
    day_name: str
    slot_count: int
