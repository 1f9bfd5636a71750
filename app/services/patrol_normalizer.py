"""
Schema normalization adapter

Converts table rows (ORM instances or RawEventRow records) into the engine's
domain types exactly once, so the matcher never sees column names, raw
timestamp strings or ORM objects. Also hosts the small text parsers shared
by the plan service and the route reconstructor.
"""
import logging
import re
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from app.services.patrol_types import (
    InspectorRecord, PlannedAssignment, RawEventRow, SiteRecord, VisitEvent,
    SHIFTS, TIMESTAMP_FORMAT,
)
from app.utils.timezone import to_local_naive

logger = logging.getLogger(__name__)

_DATE_ONLY_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
_ROUTE_TOKEN_RE = re.compile(r'\b([AB])\b', re.IGNORECASE | re.ASCII)

_DAY_FIRST_FORMATS = (
    '%d/%m/%Y %H:%M:%S',
    '%d/%m/%Y %H:%M',
)

_PLAN_SHIFT_ALIASES = {
    'afternoon': 'evening',
}

_GPS_PAIR_RE = re.compile(r'(-?\d+\.?\d*)\s*,\s*(-?\d+\.?\d*)')
_GPS_QUERY_RE = re.compile(r'[?&]q=(-?\d+\.?\d*),(-?\d+\.?\d*)')
_GPS_AT_RE = re.compile(r'@(-?\d+\.?\d*),(-?\d+\.?\d*)')


def parse_timestamp(value, tz_name: Optional[str] = None) -> Tuple[Optional[datetime], Optional[date]]:
    """
    Parse a raw log timestamp.

    Returns (datetime, event_date). Date-only values return (None, date) so
    the shift classifier falls back to its code/text chain. Offset-aware
    values are converted to local wall-clock time. Anything unparseable
    returns (None, None).
    """
    if value is None:
        return None, None
    if isinstance(value, datetime):
        dt = to_local_naive(value, tz_name)
        return dt, dt.date()
    if isinstance(value, date):
        return None, value

    text = str(value).strip()
    if not text:
        return None, None

    if _DATE_ONLY_RE.match(text):
        try:
            return None, date.fromisoformat(text)
        except ValueError:
            return None, None

    iso_text = text[:-1] + '+00:00' if text.endswith(('Z', 'z')) else text
    try:
        dt = to_local_naive(datetime.fromisoformat(iso_text), tz_name)
        return dt, dt.date()
    except ValueError:
        pass

    for fmt in _DAY_FIRST_FORMATS:
        try:
            dt = datetime.strptime(text, fmt)
            return dt, dt.date()
        except ValueError:
            continue

    try:
        d = datetime.strptime(text, '%d/%m/%Y').date()
        return None, d
    except ValueError:
        return None, None


def format_timestamp(dt: Optional[datetime], event_date: Optional[date]) -> str:
    """Canonical 'YYYY-MM-DD HH:MM:SS' text; date-only events get midnight"""
    if dt is not None:
        return dt.strftime(TIMESTAMP_FORMAT)
    if event_date is not None:
        return f'{event_date.isoformat()} 00:00:00'
    return ''


def extract_route_key(route_raw) -> str:
    """
    Reduce free-text route labels to a single route letter.

    'A' -> 'A', 'Route b' -> 'B', 'ເສັ້ນທາງ A' -> 'A'. When no standalone
    A/B token exists the upper-cased text is returned unchanged, so it
    simply never equals a planned route.
    """
    text = str(route_raw or '').strip()
    upper = text.upper()
    if upper in ('A', 'B'):
        return upper
    match = _ROUTE_TOKEN_RE.search(text)
    if match:
        return match.group(1).upper()
    return upper


def normalize_plan_shift(shift_text) -> Optional[str]:
    """Planned shift text to canonical shift name, or None if unknown"""
    text = str(shift_text or '').strip().lower()
    text = _PLAN_SHIFT_ALIASES.get(text, text)
    return text if text in SHIFTS else None


def normalize_route(route_text) -> str:
    return str(route_text or '').strip().upper()


def parse_gps(gps_text) -> Optional[Dict[str, float]]:
    """
    Parse a GPS field into {'lat': ..., 'lng': ...}.

    Accepts 'lat,lng' (swapped when the pair only makes sense reversed for
    Laos), Google Maps '?q=lat,lng' links and '@lat,lng' embeds.
    """
    if not gps_text:
        return None
    text = str(gps_text).strip()

    match = _GPS_PAIR_RE.search(text)
    if match:
        lat, lng = float(match.group(1)), float(match.group(2))
        if 13 <= lat <= 23 and 100 <= lng <= 108:
            return {'lat': lat, 'lng': lng}
        if 13 <= lng <= 23 and 100 <= lat <= 108:
            return {'lat': lng, 'lng': lat}
        if abs(lat) <= 90 and abs(lng) <= 180:
            return {'lat': lat, 'lng': lng}

    for pattern in (_GPS_QUERY_RE, _GPS_AT_RE):
        match = pattern.search(text)
        if match:
            return {'lat': float(match.group(1)), 'lng': float(match.group(2))}

    return None


def _text(value) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


# ---------------------------------------------------------------------------
# Row adapters
# ---------------------------------------------------------------------------

def row_to_event(row: RawEventRow, sequence: int, tz_name: Optional[str] = None) -> Optional[VisitEvent]:
    """Convert one raw log row into a VisitEvent, or None when its timestamp is unusable"""
    dt, event_date = parse_timestamp(row.timestamp, tz_name)
    if event_date is None:
        return None
    route_raw = _text(row.route_text)
    return VisitEvent(
        sequence=sequence,
        timestamp=dt,
        timestamp_text=format_timestamp(dt, event_date),
        event_date=event_date,
        inspector_name=_text(row.inspector_name),
        route_raw=route_raw,
        route=extract_route_key(route_raw),
        site_name=_text(row.site_name_text),
        guard_name=_text(row.guard_name),
        shift_raw=_text(row.shift_code),
        score=_text(row.score),
        gps=_text(row.gps),
        status=_text(row.status),
        issues=_text(row.issues),
    )


def rows_to_events(rows: Iterable[RawEventRow], tz_name: Optional[str] = None) -> List[VisitEvent]:
    """Convert raw rows in read order, skipping rows whose timestamp cannot be parsed"""
    events = []
    skipped = 0
    for sequence, row in enumerate(rows):
        event = row_to_event(row, sequence, tz_name)
        if event is None:
            skipped += 1
            continue
        events.append(event)
    if skipped:
        logger.warning(f"Skipped {skipped} inspection log row(s) with unparseable timestamps")
    return events


def log_model_to_row(log) -> RawEventRow:
    """InspectionLog ORM instance -> RawEventRow"""
    return RawEventRow(
        timestamp=_text(log.timestamp),
        inspector_name=_text(log.patrol_name),
        route_text=_text(log.route),
        site_name_text=_text(log.site_name),
        guard_name=_text(log.guard_name),
        shift_code=_text(log.shift),
        score=_text(log.score),
        gps=_text(log.gps),
        status=_text(log.status),
        issues=_text(log.issues),
    )


def plan_model_to_assignment(plan) -> Optional[PlannedAssignment]:
    """PatrolPlan ORM instance -> PlannedAssignment, or None for rows with an unknown shift"""
    shift = normalize_plan_shift(plan.shift)
    if shift is None:
        logger.warning(f"Ignoring plan {plan.id} with unknown shift '{plan.shift}'")
        return None
    plan_date = plan.date
    if isinstance(plan_date, datetime):
        plan_date = plan_date.date()
    elif not isinstance(plan_date, date):
        plan_date = date.fromisoformat(str(plan_date)[:10])
    return PlannedAssignment(
        id=plan.id,
        date=plan_date,
        shift=shift,
        route=normalize_route(plan.route),
        site_id=_text(plan.site_id),
        site_name=_text(plan.site_name) or _text(plan.site_id),
        created_by=_text(plan.created_by),
        created_at=plan.created_at.strftime(TIMESTAMP_FORMAT) if plan.created_at else '',
    )


def site_model_to_record(site) -> SiteRecord:
    return SiteRecord(
        id=_text(site.id),
        code=_text(site.code),
        name_en=_text(site.name_en),
        name_lo=_text(site.name_lo),
        route=normalize_route(site.route),
        status=_text(site.status) or 'active',
    )


def inspector_model_to_record(inspector) -> InspectorRecord:
    return InspectorRecord(
        name=_text(inspector.name),
        declared_shift_code=_text(inspector.shift),
    )
