"""
Range Aggregator

Runs the day matcher over every date in a range (31 days at most) and folds
the results into per-day, per-shift, per-inspector and most-missed-site
statistics for the compliance dashboard.
"""
import logging
from collections import OrderedDict
from datetime import date
from typing import Any, Dict, List, Optional

from app.services.date_window import check_range, iter_dates
from app.services.patrol_types import DayComplianceResult, SHIFTS, compliance_rate

logger = logging.getLogger(__name__)


def normalize_route_filter(route: Optional[str]) -> Optional[str]:
    """'ALL' or blank means no filter"""
    value = str(route or '').strip().upper()
    if not value or value == 'ALL':
        return None
    return value


def _empty_shift_table() -> Dict[str, Dict[str, int]]:
    return {shift: {'planned': 0, 'visited': 0, 'missed': 0} for shift in SHIFTS}


class RangeAggregator:
    """
    Multi-day compliance statistics

    Usage:
        aggregator = RangeAggregator(ComplianceService.from_app(...))
        stats = aggregator.aggregate(date(2025, 3, 1), date(2025, 3, 31), 'A')
    """

    def __init__(self, compliance_service, max_range_days: int = 31, most_missed_limit: int = 10):
        self.compliance = compliance_service
        self.max_range_days = max_range_days
        self.most_missed_limit = most_missed_limit

    def aggregate(self, start_date: date, end_date: date,
                  route_filter: Optional[str] = None) -> Dict[str, Any]:
        """
        Aggregate compliance over [start_date, end_date].

        Raises:
            InvalidRangeException: If the range is reversed or longer than
                max_range_days; raised before any day is computed
        """
        check_range(start_date, end_date, self.max_range_days)
        route = normalize_route_filter(route_filter)

        # Registries are read once per range query and shared by every day
        resolver = self.compliance.load_resolver()
        declared_shifts = self.compliance.load_declared_shifts()

        daily_stats: List[Dict[str, Any]] = []
        shift_stats = _empty_shift_table()
        inspector_stats: 'OrderedDict[str, Dict[str, Any]]' = OrderedDict()
        missed_sites: 'OrderedDict[str, Dict[str, Any]]' = OrderedDict()
        totals = {'planned': 0, 'visited': 0, 'missed': 0, 'unplanned': 0}
        degraded_days = 0

        for day in iter_dates(start_date, end_date):
            result = self.compliance.get_day_compliance(
                day, resolver=resolver, declared_shifts=declared_shifts
            )
            if not result.is_available:
                degraded_days += 1

            plans, visited, missed, unplanned = self._filter_day(result, route)

            day_shifts = _empty_shift_table()
            for plan in plans:
                self._bump(day_shifts, shift_stats, plan.shift, 'planned')
            for entry in visited:
                self._bump(day_shifts, shift_stats, entry.shift, 'visited')
            for entry in missed:
                self._bump(day_shifts, shift_stats, entry.shift, 'missed')
                site_key = (entry.site_name or '').strip()
                if site_key:
                    if site_key not in missed_sites:
                        missed_sites[site_key] = {'name': entry.site_name, 'count': 0, 'route': entry.route}
                    missed_sites[site_key]['count'] += 1

            for entry in visited:
                stats = self._inspector(inspector_stats, entry.inspector_name)
                stats['sitesVisited'] += 1
                stats['shifts'].add((day, entry.shift))
            for entry in unplanned:
                stats = self._inspector(inspector_stats, entry.inspector_name)
                stats['unplannedVisits'] += 1
                stats['shifts'].add((day, entry.shift))

            day_summary = {
                'totalPlanned': len(plans),
                'totalVisited': len(visited),
                'totalMissed': len(missed),
                'totalUnplanned': len(unplanned),
                'complianceRate': compliance_rate(len(visited), len(plans)),
            }
            daily_stats.append({
                'date': day.isoformat(),
                'status': result.status,
                'summary': day_summary,
                'shifts': day_shifts,
            })

            totals['planned'] += len(plans)
            totals['visited'] += len(visited)
            totals['missed'] += len(missed)
            totals['unplanned'] += len(unplanned)

        inspectors = [
            {
                'name': name,
                'sitesVisited': stats['sitesVisited'],
                'unplannedVisits': stats['unplannedVisits'],
                'shiftsWorked': len(stats['shifts']),
            }
            for name, stats in inspector_stats.items()
        ]
        inspectors.sort(key=lambda i: i['sitesVisited'], reverse=True)

        most_missed = sorted(missed_sites.values(), key=lambda s: s['count'], reverse=True)
        most_missed = most_missed[:self.most_missed_limit]

        if degraded_days:
            logger.warning(f"Range {start_date}..{end_date}: {degraded_days} day(s) unavailable")

        return {
            'startDate': start_date.isoformat(),
            'endDate': end_date.isoformat(),
            'routeFilter': route or 'ALL',
            'dailyStats': daily_stats,
            'shiftStats': shift_stats,
            'inspectors': inspectors,
            'mostMissedSites': most_missed,
            'overallSummary': {
                'totalPlanned': totals['planned'],
                'totalVisited': totals['visited'],
                'totalMissed': totals['missed'],
                'totalUnplanned': totals['unplanned'],
                'complianceRate': compliance_rate(totals['visited'], totals['planned']),
                'degradedDays': degraded_days,
            },
        }

    @staticmethod
    def _filter_day(result: DayComplianceResult, route: Optional[str]):
        if route is None:
            return result.plans, result.visited, result.missed, result.unplanned
        return (
            [p for p in result.plans if p.route == route],
            [v for v in result.visited if v.route == route],
            [m for m in result.missed if m.route == route],
            [u for u in result.unplanned if u.route == route],
        )

    @staticmethod
    def _bump(day_table, overall_table, shift, key):
        if shift in day_table:
            day_table[shift][key] += 1
            overall_table[shift][key] += 1

    @staticmethod
    def _inspector(inspector_stats, name):
        name = name or 'Unknown'
        if name not in inspector_stats:
            inspector_stats[name] = {'sitesVisited': 0, 'unplannedVisits': 0, 'shifts': set()}
        return inspector_stats[name]
