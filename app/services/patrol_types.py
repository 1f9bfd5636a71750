"""
Data classes for the patrol compliance engine

Engine-internal types. Nothing here is an ORM instance: the normalizer
converts table rows into these once, and every result type has a to_dict()
that produces plain JSON-safe dicts (dates as 'YYYY-MM-DD', timestamps as
'YYYY-MM-DD HH:MM:SS').
"""
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class Shift(str, Enum):
    """Operational shift windows"""
    MORNING = "morning"
    EVENING = "evening"
    NIGHT = "night"


class ComplianceStatus(str, Enum):
    """Outcome of matching one plan or one visit"""
    VISITED = "visited"
    MISSED = "missed"
    UNPLANNED = "unplanned"


SHIFTS = tuple(s.value for s in Shift)
SHIFT_ORDER = {'morning': 0, 'evening': 1, 'night': 2}
ROUTES = ('A', 'B')

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


def compliance_rate(visited: int, planned: int) -> int:
    """Percentage of planned visits satisfied, half-up rounded; 0 when nothing is planned"""
    if planned <= 0:
        return 0
    return int(math.floor(100.0 * visited / planned + 0.5))


@dataclass
class SiteRecord:
    """One row of the site registry"""
    id: str
    code: str = ''
    name_en: str = ''
    name_lo: str = ''
    route: str = ''
    status: str = 'active'


@dataclass
class InspectorRecord:
    """One row of the inspector registry"""
    name: str
    declared_shift_code: str = ''


@dataclass
class RawEventRow:
    """Visit log row as read from the Visit Log Source, all text"""
    timestamp: str
    inspector_name: str = ''
    route_text: str = ''
    site_name_text: str = ''
    guard_name: str = ''
    shift_code: str = ''
    score: str = ''
    gps: str = ''
    status: str = ''
    issues: str = ''


@dataclass
class PlannedAssignment:
    """A planned patrol visit to a site for a date, shift and route"""
    id: str
    date: date
    shift: str
    route: str
    site_id: str
    site_name: str
    created_by: str = ''
    created_at: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'date': self.date.isoformat(),
            'shift': self.shift,
            'route': self.route,
            'siteId': self.site_id,
            'siteName': self.site_name,
            'createdBy': self.created_by,
            'createdAt': self.created_at,
        }


@dataclass
class VisitEvent:
    """
    Observed inspection visit.

    The raw fields come from the normalizer. The derived fields
    (normalized_shift onwards) are filled in by the compliance service on
    every query and are never written back to the store.
    """
    sequence: int
    timestamp: Optional[datetime]
    timestamp_text: str
    event_date: Optional[date]
    inspector_name: str
    route_raw: str
    route: str
    site_name: str
    guard_name: str
    shift_raw: str
    score: str
    gps: str = ''
    status: str = ''
    issues: str = ''
    # Derived
    normalized_shift: Optional[str] = None
    shift_strategy: Optional[str] = None
    ambiguous_shift: bool = False
    effective_date: Optional[date] = None
    normalized_site_id: str = ''
    site_resolved: bool = False


@dataclass
class ComplianceEntry:
    """One line of a day's VISITED / MISSED / UNPLANNED lists"""
    status: str
    site_name: str
    shift: str
    route: str
    site_id: str = ''
    plan_id: Optional[str] = None
    inspector_name: Optional[str] = None
    timestamp: Optional[str] = None
    score: Optional[str] = None
    multi_shift: bool = False

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'status': self.status,
            'siteId': self.site_id,
            'siteName': self.site_name,
            'shift': self.shift,
            'route': self.route,
        }
        if self.status in (ComplianceStatus.VISITED.value, ComplianceStatus.MISSED.value):
            result['planId'] = self.plan_id
            result['multiShift'] = self.multi_shift
        if self.status in (ComplianceStatus.VISITED.value, ComplianceStatus.UNPLANNED.value):
            result['inspectorName'] = self.inspector_name
            result['timestamp'] = self.timestamp
            result['score'] = self.score
        return result


@dataclass
class DayComplianceResult:
    """Reconciliation of one day's plans against that day's visits"""
    date: date
    plans: List[PlannedAssignment] = field(default_factory=list)
    visited: List[ComplianceEntry] = field(default_factory=list)
    missed: List[ComplianceEntry] = field(default_factory=list)
    unplanned: List[ComplianceEntry] = field(default_factory=list)
    status: str = 'ok'  # 'ok' or 'unavailable' (upstream read failed)
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def summary(self) -> Dict[str, int]:
        total_planned = len(self.plans)
        total_visited = len(self.visited)
        return {
            'totalPlanned': total_planned,
            'totalVisited': total_visited,
            'totalMissed': len(self.missed),
            'totalUnplanned': len(self.unplanned),
            'complianceRate': compliance_rate(total_visited, total_planned),
        }

    @property
    def is_available(self) -> bool:
        return self.status == 'ok'

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            'date': self.date.isoformat(),
            'status': self.status,
            'plans': [p.to_dict() for p in self.plans],
            'visited': [v.to_dict() for v in self.visited],
            'missed': [m.to_dict() for m in self.missed],
            'unplanned': [u.to_dict() for u in self.unplanned],
            'summary': self.summary,
            'errors': list(self.errors),
        }
