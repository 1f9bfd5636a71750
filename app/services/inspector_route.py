"""
Inspector Route Reconstructor

Builds one inspector's patrol timeline over a date range for the route map:
their VISITED and UNPLANNED entries from the day matcher, enriched with the
display-only fields (GPS, guard, issues) recovered from the raw log rows,
plus the MISSED plans of the shifts they actually worked.
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from app.error_handlers import log_upstream_failure
from app.error_handlers.exceptions import UpstreamUnavailableException
from app.services.date_window import buffer_window, check_range, iter_dates
from app.services.patrol_normalizer import parse_gps, rows_to_events
from app.services.patrol_types import ComplianceEntry, VisitEvent, compliance_rate

logger = logging.getLogger(__name__)


def _same_inspector(name: Optional[str], target: str) -> bool:
    return (name or '').strip().casefold() == target


def _score_value(text) -> float:
    try:
        return float(text)
    except (TypeError, ValueError):
        return 0.0


class RawLogIndex:
    """
    Lookup of an inspector's raw log rows by (timestamp, lower(siteName)),
    with a timestamp-only fallback for entries whose site name came from
    the plan rather than the log.
    """

    def __init__(self, events: List[VisitEvent]):
        self._by_key: Dict[tuple, VisitEvent] = {}
        self._by_timestamp: Dict[str, VisitEvent] = {}
        for event in events:
            key = (event.timestamp_text, event.site_name.strip().lower())
            self._by_key.setdefault(key, event)
            self._by_timestamp.setdefault(event.timestamp_text, event)

    def find(self, timestamp: str, site_name: str) -> Optional[VisitEvent]:
        event = self._by_key.get((timestamp, (site_name or '').strip().lower()))
        if event is None:
            event = self._by_timestamp.get(timestamp)
        return event


class InspectorRouteReconstructor:
    """
    Per-inspector enriched timeline

    Usage:
        reconstructor = InspectorRouteReconstructor(ComplianceService.from_app(...))
        route = reconstructor.reconstruct('Somchai', date(2025, 3, 1), date(2025, 3, 7))
    """

    def __init__(self, compliance_service, max_range_days: int = 31):
        self.compliance = compliance_service
        self.max_range_days = max_range_days

    def _read_raw_index(self, inspector: str, start_date: date, end_date: date, errors: list) -> RawLogIndex:
        read_from, read_to = buffer_window(start_date, end_date, self.compliance.buffer_days)
        try:
            rows = self.compliance.visit_source.read_range(read_from, read_to, inspector=inspector)
        except (UpstreamUnavailableException, SQLAlchemyError) as e:
            errors.append(log_upstream_failure('inspector_route_raw_read', e, {'inspector': inspector}))
            return RawLogIndex([])
        return RawLogIndex(rows_to_events(rows, self.compliance.tz_name))

    @staticmethod
    def _log_entry(entry: ComplianceEntry, day: date, raw: Optional[VisitEvent]) -> Dict[str, Any]:
        log = {
            'date': day.isoformat(),
            'siteId': entry.site_id,
            'siteName': entry.site_name,
            'timestamp': entry.timestamp,
            'inspectorName': entry.inspector_name,
            'route': entry.route,
            'shift': entry.shift,
            'complianceStatus': entry.status,
            'score': _score_value(entry.score),
            'gps': '',
            'coordinates': None,
            'timeDisplay': '',
            'dateDisplay': '',
            'guardName': '',
            'issues': '',
            'status': '',
        }
        if raw is None:
            return log
        log.update({
            'score': _score_value(raw.score or entry.score),
            'gps': raw.gps,
            'coordinates': parse_gps(raw.gps),
            'guardName': raw.guard_name,
            'issues': raw.issues,
            'status': raw.status,
        })
        if raw.timestamp is not None:
            log['timeDisplay'] = raw.timestamp.strftime('%H:%M')
            log['dateDisplay'] = raw.timestamp.strftime('%b %d, %Y')
        elif raw.event_date is not None:
            log['dateDisplay'] = raw.event_date.strftime('%b %d, %Y')
        return log

    def reconstruct(self, inspector_name: str, start_date: date, end_date: date) -> Dict[str, Any]:
        """
        Reconstruct an inspector's route over [start_date, end_date].

        Raises:
            InvalidRangeException: If the range is reversed or too long
        """
        check_range(start_date, end_date, self.max_range_days)
        target = (inspector_name or '').strip().casefold()

        errors: List[Dict[str, Any]] = []
        raw_index = self._read_raw_index(inspector_name.strip(), start_date, end_date, errors)
        resolver = self.compliance.load_resolver()
        declared_shifts = self.compliance.load_declared_shifts()

        logs: List[Dict[str, Any]] = []
        missed_candidates: List[Dict[str, Any]] = []
        total_planned = 0
        worked = set()
        degraded_days = 0

        for day in iter_dates(start_date, end_date):
            result = self.compliance.get_day_compliance(
                day, resolver=resolver, declared_shifts=declared_shifts
            )
            if not result.is_available:
                degraded_days += 1
                errors.extend(result.errors)
            total_planned += len(result.plans)

            for entry in result.visited + result.unplanned:
                if not _same_inspector(entry.inspector_name, target):
                    continue
                worked.add((day, entry.shift))
                logs.append(self._log_entry(entry, day, raw_index.find(entry.timestamp, entry.site_name)))

            for entry in result.missed:
                missed_candidates.append({
                    'date': day.isoformat(),
                    'planId': entry.plan_id,
                    'siteId': entry.site_id,
                    'siteName': entry.site_name,
                    'shift': entry.shift,
                    'route': entry.route,
                    'complianceStatus': entry.status,
                })

        # Missed plans only count against the shifts this inspector worked
        worked_shifts = {shift for _, shift in worked}
        missed_plans = [m for m in missed_candidates if m['shift'] in worked_shifts]

        logs.sort(key=lambda log: log['timestamp'] or '')

        total_visited = sum(1 for log in logs if log['complianceStatus'] == 'visited')
        total_unplanned = len(logs) - total_visited
        total_missed = len(missed_plans)

        logger.info(
            f"Inspector route {inspector_name} {start_date}..{end_date}: "
            f"{len(logs)} logs, {total_missed} missed plans"
        )

        return {
            'inspector': inspector_name.strip(),
            'startDate': start_date.isoformat(),
            'endDate': end_date.isoformat(),
            'logs': logs,
            'missedPlans': missed_plans,
            'summary': {
                'totalPlanned': total_planned,
                'totalVisited': total_visited,
                'totalUnplanned': total_unplanned,
                'totalMissed': total_missed,
                'complianceRate': compliance_rate(total_visited, total_visited + total_missed),
                'shiftsWorked': len(worked),
                'degradedDays': degraded_days,
            },
            'errors': errors,
        }
