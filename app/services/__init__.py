"""
Services package for the patrol compliance engine and plan maintenance
"""

from .patrol_types import (
    Shift,
    ComplianceStatus,
    PlannedAssignment,
    VisitEvent,
    ComplianceEntry,
    DayComplianceResult,
)

from .shift_classifier import ShiftClassification, classify
from .site_resolver import SiteIdentityResolver
from .compliance_matcher import ComplianceService, match
from .compliance_range import RangeAggregator
from .inspector_route import InspectorRouteReconstructor
from .patrol_plan_service import PatrolPlanService

__all__ = [
    # Domain types
    'Shift',
    'ComplianceStatus',
    'PlannedAssignment',
    'VisitEvent',
    'ComplianceEntry',
    'DayComplianceResult',
    # Engine
    'ShiftClassification',
    'classify',
    'SiteIdentityResolver',
    'match',
    'ComplianceService',
    'RangeAggregator',
    'InspectorRouteReconstructor',
    # Plan maintenance
    'PatrolPlanService',
]
