"""
Booking status transitions.

Only confirmed bookings can change status. A cancelled or completed booking
is final.

Usage:
    next_status = transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED)
"""

import logging
from dataclasses import dataclass

from courtbook.errors import InvalidTransitionError
from courtbook.schemas.booking_schema import BookingStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusTransition:
    """A single valid status change."""
    from_status: BookingStatus
    to_status: BookingStatus


TRANSITIONS: list[StatusTransition] = [
    StatusTransition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
    StatusTransition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED),
]


def get_valid_targets(current: BookingStatus) -> list[BookingStatus]:
    """Return every status reachable from ``current``."""
    return [t.to_status for t in TRANSITIONS if t.from_status == current]


def transition(current: BookingStatus, target: BookingStatus) -> BookingStatus:
    """
    Validate a status change.

    Setting a booking to the status it already has is a no-op.

    Raises:
        InvalidTransitionError: If the change is not allowed.
    """
    if current == target or target in get_valid_targets(current):
        logger.debug("Status transition: %s -> %s", current.value, target.value)
        return target

    valid = [s.value for s in get_valid_targets(current)]
    raise InvalidTransitionError(
        f"Cannot change status from '{current.value}' to '{target.value}'. "
        f"Valid targets: {valid}",
        code="INVALID_STATUS_TRANSITION",
        details={"from": current.value, "to": target.value, "valid": valid},
    )
