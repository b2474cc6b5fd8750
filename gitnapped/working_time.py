"""Parsing of daily working-hours windows."""

from __future__ import annotations

import re
from typing import Optional

from .constants import DEFAULT_WORKING_TIME
from .exceptions import InvalidWorkingTime
from .models import WorkingHours

_TIME_24H = re.compile(r"^(\d{1,2}):(\d{2})$")
_TIME_12H = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*([AP]M)$", re.IGNORECASE)


def parse_time_of_day(text: str, source: Optional[str] = None) -> int:
    """Convert ``HH:MM``, ``9AM`` or ``9:30PM`` into minutes since midnight.

    Args:
        text: One side of a working-time range
        source: Full working-time string, used in error messages

    Raises:
        InvalidWorkingTime: If the value is malformed or out of range
    """
    token = source if source is not None else text
    value = text.strip()

    match = _TIME_12H.match(value)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        if not 1 <= hour <= 12:
            raise InvalidWorkingTime(f"Hour {hour} is outside 1-12 in '{token}'", token=token)
        if not 0 <= minute <= 59:
            raise InvalidWorkingTime(f"Minute {minute} is outside 0-59 in '{token}'", token=token)
        hour %= 12
        if match.group(3).upper() == "PM":
            hour += 12
        return hour * 60 + minute

    match = _TIME_24H.match(value)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2))
        if not 0 <= hour <= 23:
            raise InvalidWorkingTime(f"Hour {hour} is outside 0-23 in '{token}'", token=token)
        if not 0 <= minute <= 59:
            raise InvalidWorkingTime(f"Minute {minute} is outside 0-59 in '{token}'", token=token)
        return hour * 60 + minute

    raise InvalidWorkingTime(
        f"Invalid working time '{token}'. Expected HH:MM-HH:MM or 9AM-5PM",
        token=token,
    )


def parse_working_time(text: Optional[str] = None) -> WorkingHours:
    """Parse a working-time range such as ``09:00-17:00`` or ``9AM-5PM``.

    An empty value yields the default ``09:00-17:00``. A range whose end is
    not after its start (``22:00-06:00``) wraps past midnight.

    Raises:
        InvalidWorkingTime: If the range is malformed or out of range
    """
    raw = (text or "").strip() or DEFAULT_WORKING_TIME
    parts = raw.split("-")
    if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
        raise InvalidWorkingTime(
            f"Invalid working time '{raw}'. Expected HH:MM-HH:MM or 9AM-5PM",
            token=raw,
        )
    start = parse_time_of_day(parts[0], source=raw)
    end = parse_time_of_day(parts[1], source=raw)
    return WorkingHours(start_minute=start, end_minute=end)
