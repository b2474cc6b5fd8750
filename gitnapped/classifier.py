"""Detection of commits made outside working hours."""

from __future__ import annotations

from datetime import datetime

from .models import WorkingHours


def is_gitnapped(timestamp: datetime, hours: WorkingHours) -> bool:
    """Return True when ``timestamp`` falls outside ``hours``.

    The timestamp is read in its own recorded offset, i.e. the wall clock of
    whoever made the commit. The window is half-open: ``start`` is in hours,
    ``end`` is not. A window with ``end <= start`` spans midnight, its
    in-hours part being ``[start, 24:00) + [00:00, end)``.
    """
    minute = timestamp.hour * 60 + timestamp.minute
    if hours.wraps:
        return hours.end_minute <= minute < hours.start_minute
    return minute < hours.start_minute or minute >= hours.end_minute
