"""
One-off data migration for legacy skill-level labels.

Older bookings carried the skill level inside the student name, e.g.
``"Ana Costa (Beginner)"``. This moves the suffix into ``skill_level``.
"""

import logging
import re
from typing import Optional

from courtbook.schemas.booking_schema import SkillLevel
from courtbook.storage.base import BookingRepository

logger = logging.getLogger(__name__)

_SUFFIX_RE = re.compile(r"^(.*?)\s\(([^)]+)\)$")


def split_skill_suffix(student_name: str) -> tuple[str, Optional[SkillLevel]]:
    """Split ``"Name (Skill)"`` into the bare name and a SkillLevel.

    Names without a recognised suffix come back unchanged with no level.
    """
    match = _SUFFIX_RE.match(student_name.strip())
    if not match:
        return student_name, None
    name, suffix = match.group(1).strip(), match.group(2).strip()
    for level in SkillLevel:
        if level.value.lower() == suffix.lower():
            return name, level
    return student_name, None


def migrate_skill_levels(repository: BookingRepository, coach_id: str) -> int:
    """Move legacy name suffixes into ``skill_level``. Returns rows changed.

    Bookings that already have a skill level are left alone, so running the
    migration twice changes nothing the second time.
    """
    migrated = 0
    for booking in repository.list_all(coach_id):
        if booking.skill_level is not None:
            continue
        name, level = split_skill_suffix(booking.student_name)
        if level is None or not name:
            continue
        repository.update(coach_id, booking.id, {"student_name": name, "skill_level": level})
        migrated += 1
    logger.info("Migrated skill level on %d booking(s) for coach %s", migrated, coach_id)
    return migrated
