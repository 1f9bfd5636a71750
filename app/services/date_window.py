"""
Date window resolver

Night shifts run across midnight: a visit at 02:15 on the 11th belongs to
the night shift planned for the 10th. Also holds the small date helpers
used by the range services.
"""
from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional, Tuple

from app.error_handlers.exceptions import InvalidRangeException, ValidationException

NIGHT_ROLLBACK_BEFORE = time(6, 30)


def previous_day(d: date) -> date:
    return d - timedelta(days=1)


def next_day(d: date) -> date:
    return d + timedelta(days=1)


def resolve_effective_date(event_date: date, classified_shift: str, time_of_day=None) -> date:
    """
    Plan date a classified visit counts toward.

    Night visits before 06:30 roll back to the previous calendar day. Every
    other visit, including one whose time of day is unknown, keeps its own
    date.
    """
    if time_of_day is None or classified_shift != 'night':
        return event_date
    if isinstance(time_of_day, datetime):
        time_of_day = time_of_day.time()
    if time_of_day < NIGHT_ROLLBACK_BEFORE:
        return previous_day(event_date)
    return event_date


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Inclusive date iterator"""
    current = start
    while current <= end:
        yield current
        current = next_day(current)


def span_days(start: date, end: date) -> int:
    """Inclusive number of days between start and end"""
    return (end - start).days + 1


def buffer_window(start: date, end: date, days: int = 1) -> Tuple[date, date]:
    """Widen [start, end] by `days` on each side for cross-midnight reads"""
    return start - timedelta(days=days), end + timedelta(days=days)


def parse_iso_date(value, param_name: str = 'date') -> date:
    """
    'YYYY-MM-DD' (or a date/datetime) to date.

    Raises:
        ValidationException: If the value is not a valid date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationException(
            f"Invalid {param_name}: '{value}'. Use YYYY-MM-DD",
            details={'field': param_name}
        )


def optional_iso_date(value, param_name: str = 'date') -> Optional[date]:
    if value in (None, ''):
        return None
    return parse_iso_date(value, param_name)


def check_range(start: date, end: date, max_days: int) -> int:
    """
    Reject reversed or oversized ranges before any per-day work.

    Returns:
        Inclusive number of days in the range

    Raises:
        InvalidRangeException: If end precedes start or the span exceeds max_days
    """
    if end < start:
        raise InvalidRangeException(
            'End date must not be before start date',
            details={'startDate': start.isoformat(), 'endDate': end.isoformat()}
        )
    days = span_days(start, end)
    if days > max_days:
        raise InvalidRangeException(
            f'Date range cannot exceed {max_days} days',
            details={'days': days, 'maxDays': max_days}
        )
    return days
