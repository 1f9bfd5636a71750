"""Timezone helpers for turning field-app timestamps into local wall-clock time."""

from datetime import date, datetime
from functools import lru_cache
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = 'Asia/Vientiane'


@lru_cache(maxsize=8)
def _get_tz(tz_name):
    return ZoneInfo(tz_name)


def _resolve_tz_name(tz_name):
    if tz_name is not None:
        return tz_name
    from flask import current_app, has_app_context
    if has_app_context():
        return current_app.config.get('PATROL_TIMEZONE', DEFAULT_TIMEZONE)
    return DEFAULT_TIMEZONE


def to_local_naive(dt, tz_name=None):
    """Convert an offset-aware datetime to naive local wall-clock time.

    Naive datetimes are assumed to already be local and are returned as-is.

    Args:
        dt: A datetime, or None.
        tz_name: IANA timezone name. Falls back to PATROL_TIMEZONE.

    Returns:
        Naive local datetime, or None if dt is None.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt
    local_tz = _get_tz(_resolve_tz_name(tz_name))
    return dt.astimezone(local_tz).replace(tzinfo=None)


def local_today(tz_name=None) -> date:
    """Today's date in the patrol timezone."""
    return datetime.now(_get_tz(_resolve_tz_name(tz_name))).date()
