"""Resolution of relative periods and absolute dates into an analysis window."""

from __future__ import annotations

import logging
import re
from datetime import datetime, time, timedelta, timezone
from typing import Optional

from dateutil.relativedelta import relativedelta
from dateutil.tz import tzlocal

from .constants import DATE_FORMAT, PERIOD_UNITS
from .exceptions import InvalidPeriodSyntax, InvalidWindow
from .models import AnalysisWindow

logger = logging.getLogger(__name__)

PERIOD_PATTERN = re.compile(r"^(\d+)([HDWMY])$")

# Lower bound used when only an end date is given
DAWN_OF_HISTORY = datetime(1970, 1, 1, tzinfo=timezone.utc)


def local_now() -> datetime:
    """Return the current time in the local timezone.

    The zone (not a fixed offset) is attached, so dates derived from "now"
    get the offset in effect on that date.
    """
    return datetime.now(tzlocal())


def period_delta(token: str) -> relativedelta:
    """Convert a period token such as ``6M`` into a calendar-aware delta.

    Args:
        token: ``<int><unit>`` with unit one of ``H``, ``D``, ``W``, ``M``, ``Y``

    Returns:
        The delta to subtract from "now"

    Raises:
        InvalidPeriodSyntax: If the token does not match ``<int><unit>``
    """
    match = PERIOD_PATTERN.match((token or "").strip())
    if not match:
        raise InvalidPeriodSyntax(
            f"Invalid period '{token}'. Expected format like 6M, 2Y, 3W, 5D, 12H",
            token=token,
        )
    amount = int(match.group(1))
    unit = PERIOD_UNITS[match.group(2)]
    return relativedelta(**{unit: amount})


def parse_period(token: str, now: Optional[datetime] = None) -> AnalysisWindow:
    """Resolve a relative period into ``[now - period, now)``.

    Months and years use calendar arithmetic, so ``1M`` from March 31st
    lands on February 28th/29th rather than 30 days earlier.

    Raises:
        InvalidPeriodSyntax: If the token is malformed
        InvalidWindow: If the period is empty (e.g. ``0D``)
    """
    now = now or local_now()
    since = now - period_delta(token)
    if since >= now:
        raise InvalidWindow(f"Period '{token}' produces an empty window", token=token)
    return AnalysisWindow(since=since, until=now)


def parse_date(value: str, tz) -> datetime:
    """Parse a ``YYYY-MM-DD`` date as midnight in ``tz`` on that date."""
    try:
        day = datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError as exc:
        raise InvalidWindow(f"Invalid date '{value}'. Expected YYYY-MM-DD", token=value) from exc
    return datetime.combine(day, time.min, tzinfo=tz)


def resolve_window(
    since: Optional[str] = None,
    until: Optional[str] = None,
    period: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AnalysisWindow:
    """Produce the analysis window from CLI-style inputs.

    Absolute dates win over a relative period. ``until`` is exclusive: the
    window ends at midnight at the start of that day. When only ``until`` is
    given the window starts at the dawn of history; when nothing is given the
    window covers the last day.

    Args:
        since: Optional start date (YYYY-MM-DD)
        until: Optional end date (YYYY-MM-DD)
        period: Optional relative period (e.g. 6M)
        now: Reference time, defaults to the current local time

    Returns:
        The resolved half-open window

    Raises:
        InvalidPeriodSyntax: If ``period`` is used and malformed
        InvalidWindow: If a date is malformed or ``since >= until``
    """
    now = now or local_now()
    tz = now.tzinfo

    if since or until:
        if period:
            logger.warning("Ignoring period '%s' because absolute dates were given", period)
        start = parse_date(since, tz) if since else DAWN_OF_HISTORY
        end = parse_date(until, tz) if until else now
        logger.debug("Resolved absolute window %s -> %s", start.isoformat(), end.isoformat())
        return AnalysisWindow(since=start, until=end)

    if period:
        window = parse_period(period, now=now)
        logger.debug("Resolved period '%s' to %s -> %s", period, window.since.isoformat(), window.until.isoformat())
        return window

    return AnalysisWindow(since=now - timedelta(days=1), until=now)
