"""Time parsing and calendar helpers for slot math.

All slot arithmetic is done in integer minutes since midnight; "HH:MM" strings
only appear at the storage and API boundary.
"""

import re
from datetime import date

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

MINUTES_PER_DAY = 24 * 60


def is_valid_hhmm(value: str) -> bool:
    return bool(value) and HHMM_PATTERN.match(value) is not None


def validate_hhmm(value: str) -> str:
    """Validate a 24h "HH:MM" string, raising ValueError otherwise"""
    if not is_valid_hhmm(value):
        raise ValueError("Time must be in HH:MM format")
    return value


def to_minutes(hhmm: str) -> int:
    """Convert "HH:MM" to minutes since midnight"""
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def to_hhmm(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM" """
    if minutes < 0 or minutes >= MINUTES_PER_DAY:
        raise ValueError(f"Minutes out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def add_minutes(hhmm: str, minutes: int) -> str:
    return to_hhmm(to_minutes(hhmm) + minutes)


def day_of_week(target: date) -> int:
    """Day of week with 0=Sunday ... 6=Saturday"""
    return (target.weekday() + 1) % 7


def month_day(target: date) -> tuple[int, int]:
    return (target.month, target.day)


def matches_closure_date(closure_date: date, is_recurring: bool, target: date) -> bool:
    """
    Whether a closure blocks the target date.

    Recurring closures compare (month, day) only so the stored year is ignored,
    Feb 29 included.
    """
    if is_recurring:
        return month_day(closure_date) == month_day(target)
    return closure_date == target
