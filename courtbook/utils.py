"""Shared string helpers for intake fields."""

import re
from typing import Any

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def clean_text(value: Any) -> str:
    """Return a trimmed string, or an empty string for non-string input."""
    return value.strip() if isinstance(value, str) else ""


def normalize_phone(value: str) -> str:
    """Reduce a phone number to its digits, keeping a leading + for international numbers.

    Examples:
        >>> normalize_phone("0412 345 678")
        '0412345678'
        >>> normalize_phone("+61 (412) 345-678")
        '+61412345678'
    """
    value = value.strip()
    digits = re.sub(r"\D", "", value)
    return f"+{digits}" if value.startswith("+") else digits


def digit_count(value: str) -> int:
    return len(re.sub(r"\D", "", value))


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value))
