"""
Inclusive report windows for daily and monthly reports.

A window is a ``(start, end)`` pair of timezone-aware instants where both ends
are inclusive: ``start`` is the first instant of the period and ``end`` its last
microsecond, in the studio timezone.
"""

import calendar
from datetime import date, datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from studio.errors import ValidationError

MIN_YEAR = 1
MAX_YEAR = 9999

Window = tuple[datetime, datetime]


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {name}: {value!r}", field=name)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError(f"Invalid {name}: {value!r}", field=name)


def validate_date_params(year: Any, month: Any, day: Any = None) -> date:
    """
    Validate report parameters and return the reference calendar date.

    Raises:
        ValidationError: year/month/day missing, non-numeric or out of calendar range
    """
    y = _as_int(year, "year")
    m = _as_int(month, "month")

    if not MIN_YEAR <= y <= MAX_YEAR:
        raise ValidationError(f"Year out of range: {y}", field="year")
    if not 1 <= m <= 12:
        raise ValidationError(f"Month out of range: {m}", field="month")

    if day is None:
        return date(y, m, 1)

    d = _as_int(day, "day")
    last_day = calendar.monthrange(y, m)[1]
    if not 1 <= d <= last_day:
        raise ValidationError(
            f"Day out of range for {y:04d}-{m:02d}: {d}", field="day"
        )
    return date(y, m, d)


def _start_of(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def _last_instant_before(next_start: datetime) -> datetime:
    return next_start - timedelta(microseconds=1)


def day_window(year: Any, month: Any, day: Any, tz: ZoneInfo) -> Window:
    """Inclusive window covering one calendar day in ``tz``."""
    reference = validate_date_params(year, month, day)
    start = _start_of(reference, tz)
    if reference == date.max:
        return start, datetime.combine(reference, time.max, tzinfo=tz)
    return start, _last_instant_before(_start_of(reference + timedelta(days=1), tz))


def month_window(year: Any, month: Any, tz: ZoneInfo) -> Window:
    """Inclusive window covering one calendar month in ``tz``."""
    reference = validate_date_params(year, month)
    start = _start_of(reference, tz)
    if reference.year == MAX_YEAR and reference.month == 12:
        return start, datetime.combine(date.max, time.max, tzinfo=tz)
    next_month = reference + relativedelta(months=1)
    return start, _last_instant_before(_start_of(next_month, tz))


def start_of_today(now: datetime, tz: ZoneInfo) -> datetime:
    """First instant of ``now``'s calendar day in ``tz``."""
    return _start_of(now.astimezone(tz).date(), tz)
