"""
Compliance Matcher Service

Reconciles one day's patrol plans against that day's inspection visits:
1. Visits are classified into shifts and assigned an effective date
2. Each plan claims the earliest unclaimed visit with the same site, shift and route
3. Unclaimed plans are MISSED, unclaimed visits are UNPLANNED

match() is pure; ComplianceService wires it to the data sources and owns
the read-failure semantics.
"""
import logging
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from app.error_handlers import log_upstream_failure
from app.error_handlers.exceptions import UpstreamUnavailableException
from app.services.date_window import buffer_window, resolve_effective_date
from app.services.patrol_normalizer import rows_to_events
from app.services.patrol_sources import (
    SqlInspectorRegistry, SqlPlanStore, SqlSiteRegistry, SqlVisitLogSource,
)
from app.services.patrol_types import (
    ComplianceEntry, ComplianceStatus, DayComplianceResult, PlannedAssignment,
    RawEventRow, VisitEvent, SHIFT_ORDER,
)
from app.services.shift_classifier import classify, log_strategy_distribution
from app.services.site_resolver import SiteIdentityResolver

logger = logging.getLogger(__name__)


def _visit_sort_key(visit: VisitEvent):
    return visit.timestamp_text, visit.sequence


def _plan_sort_key(plan: PlannedAssignment):
    return SHIFT_ORDER.get(plan.shift, len(SHIFT_ORDER))


def multi_shift_keys(plans: List[PlannedAssignment]) -> set:
    """(lower(siteName), route) pairs planned on more than one shift"""
    shifts_by_site = defaultdict(set)
    for plan in plans:
        key = (plan.site_name.strip().lower(), plan.route)
        shifts_by_site[key].add(plan.shift)
    return {key for key, shifts in shifts_by_site.items() if len(shifts) > 1}


def match(day: date, plans: List[PlannedAssignment], visits: List[VisitEvent],
          resolver: Optional[SiteIdentityResolver] = None) -> DayComplianceResult:
    """
    Match a day's plans against visits already windowed to that day.

    Visits are taken in (timestamp, read order); plans in (shift order, list
    order). Shift is part of the match key, so the plan order only fixes the
    display order and never which visit a plan claims.

    Args:
        day: The plan date
        plans: Planned assignments for the day
        visits: Classified visits whose effective date is the day
        resolver: Site identity resolver (empty resolver when omitted)

    Returns:
        DayComplianceResult with status 'ok'
    """
    resolver = resolver or SiteIdentityResolver()
    sorted_visits = sorted(visits, key=_visit_sort_key)
    sorted_plans = sorted(plans, key=_plan_sort_key)
    multi_shift = multi_shift_keys(plans)

    claimed_visits = set()
    claimed_plans = set()
    result = DayComplianceResult(date=day, plans=list(sorted_plans))

    # Pass 1: exact (site, shift, route) match, one-to-one
    for plan_index, plan in enumerate(sorted_plans):
        for visit_index, visit in enumerate(sorted_visits):
            if visit_index in claimed_visits:
                continue
            if visit.normalized_shift != plan.shift or visit.route != plan.route:
                continue
            if not resolver.same_site(plan.site_id, plan.site_name, visit.normalized_site_id,
                                      visit.site_resolved, visit.site_name):
                continue
            claimed_visits.add(visit_index)
            claimed_plans.add(plan_index)
            result.visited.append(ComplianceEntry(
                status=ComplianceStatus.VISITED.value,
                site_id=plan.site_id,
                site_name=plan.site_name,
                shift=plan.shift,
                route=plan.route,
                plan_id=plan.id,
                inspector_name=visit.inspector_name,
                timestamp=visit.timestamp_text,
                score=visit.score,
                multi_shift=(plan.site_name.strip().lower(), plan.route) in multi_shift,
            ))
            break

    # Pass 2: whatever is left on the plan side was missed
    for plan_index, plan in enumerate(sorted_plans):
        if plan_index in claimed_plans:
            continue
        result.missed.append(ComplianceEntry(
            status=ComplianceStatus.MISSED.value,
            site_id=plan.site_id,
            site_name=plan.site_name,
            shift=plan.shift,
            route=plan.route,
            plan_id=plan.id,
            multi_shift=(plan.site_name.strip().lower(), plan.route) in multi_shift,
        ))

    for visit_index, visit in enumerate(sorted_visits):
        if visit_index in claimed_visits or not visit.site_name:
            continue
        result.unplanned.append(ComplianceEntry(
            status=ComplianceStatus.UNPLANNED.value,
            site_id=visit.normalized_site_id if visit.site_resolved else '',
            site_name=visit.site_name,
            shift=visit.normalized_shift,
            route=visit.route,
            inspector_name=visit.inspector_name,
            timestamp=visit.timestamp_text,
            score=visit.score,
        ))

    return result


def classify_visits(rows: List[RawEventRow], resolver: SiteIdentityResolver,
                    declared_shifts: Dict[str, str], tz_name: Optional[str] = None) -> List[VisitEvent]:
    """
    Normalize raw log rows and fill in each visit's derived fields.

    Args:
        rows: Raw rows from the Visit Log Source, in read order
        resolver: Site identity resolver for the query
        declared_shifts: casefolded inspector name -> declared shift text
        tz_name: Timezone offset-aware timestamps are converted to
    """
    visits = rows_to_events(rows, tz_name)
    verdicts = []
    for visit in visits:
        verdict = classify(
            visit.timestamp,
            visit.shift_raw,
            visit.inspector_name,
            declared_shifts.get(visit.inspector_name.casefold()),
            visit.route_raw,
        )
        verdicts.append(verdict)
        visit.normalized_shift = verdict.shift
        visit.shift_strategy = verdict.strategy
        visit.ambiguous_shift = verdict.ambiguous
        visit.effective_date = resolve_effective_date(visit.event_date, verdict.shift, visit.timestamp)
        visit.normalized_site_id, visit.site_resolved = resolver.resolve(visit.site_name)

    log_strategy_distribution(verdicts, label=f'({len(visits)} visits)')
    return visits


class ComplianceService:
    """
    Day-level patrol compliance

    Usage:
        service = ComplianceService.from_app(db.session, models, current_app.config)
        result = service.get_day_compliance(date(2025, 3, 10))
    """

    def __init__(self, plan_store, visit_source, site_registry, inspector_registry=None,
                 tz_name: Optional[str] = None, buffer_days: int = 1):
        """
        Args:
            plan_store: object with list(date)
            visit_source: object with read_range(date_from, date_to, inspector=None)
            site_registry: object with list() -> SiteRecord[]
            inspector_registry: optional object with list() -> InspectorRecord[]
            tz_name: Local timezone for offset-aware timestamps
            buffer_days: Days read either side of the requested date
        """
        self.plan_store = plan_store
        self.visit_source = visit_source
        self.site_registry = site_registry
        self.inspector_registry = inspector_registry
        self.tz_name = tz_name
        self.buffer_days = buffer_days

    @classmethod
    def from_app(cls, db_session, models, config) -> 'ComplianceService':
        """Build a service over the SQL sources using app configuration"""
        tz_name = config.get('PATROL_TIMEZONE')
        return cls(
            plan_store=SqlPlanStore(db_session, models),
            visit_source=SqlVisitLogSource(db_session, models, tz_name=tz_name),
            site_registry=SqlSiteRegistry(db_session, models),
            inspector_registry=SqlInspectorRegistry(db_session, models),
            tz_name=tz_name,
            buffer_days=config.get('PATROL_LOG_BUFFER_DAYS', 1),
        )

    # ------------------------------------------------------------------
    # Registries (failures degrade to empty lookups)
    # ------------------------------------------------------------------

    def load_resolver(self) -> SiteIdentityResolver:
        try:
            return SiteIdentityResolver(self.site_registry.list())
        except (UpstreamUnavailableException, SQLAlchemyError) as e:
            logger.warning(f"Site registry unavailable, matching by name only: {e}")
            return SiteIdentityResolver()

    def load_declared_shifts(self) -> Dict[str, str]:
        """casefolded inspector name -> declared shift text"""
        if self.inspector_registry is None:
            return {}
        try:
            inspectors = self.inspector_registry.list()
        except (UpstreamUnavailableException, SQLAlchemyError) as e:
            logger.warning(f"Inspector registry unavailable, ignoring declared shifts: {e}")
            return {}
        declared = {}
        for inspector in inspectors:
            name = inspector.name.strip().casefold()
            if name and inspector.declared_shift_code:
                declared[name] = inspector.declared_shift_code
        return declared

    # ------------------------------------------------------------------
    # Day compliance
    # ------------------------------------------------------------------

    def get_day_compliance(self, day: date, resolver: Optional[SiteIdentityResolver] = None,
                           declared_shifts: Optional[Dict[str, str]] = None) -> DayComplianceResult:
        """
        Compliance for one plan date.

        Reads the day's plans and a buffered window of logs, classifies and
        date-windows the visits, then matches. A plan or log read failure
        returns an all-zero result with status 'unavailable' instead of
        raising.

        Args:
            day: Plan date
            resolver: Pre-built site resolver (range queries share one)
            declared_shifts: Pre-loaded declared shifts (range queries share one)
        """
        try:
            plans = self.plan_store.list(day)
            read_from, read_to = buffer_window(day, day, self.buffer_days)
            rows = self.visit_source.read_range(read_from, read_to)
        except (UpstreamUnavailableException, SQLAlchemyError) as e:
            error = log_upstream_failure('get_day_compliance', e, {'date': day.isoformat()})
            return DayComplianceResult(date=day, status='unavailable', errors=[error])

        if resolver is None:
            resolver = self.load_resolver()
        if declared_shifts is None:
            declared_shifts = self.load_declared_shifts()

        visits = classify_visits(rows, resolver, declared_shifts, self.tz_name)
        day_visits = [v for v in visits if v.effective_date == day]

        result = match(day, plans, day_visits, resolver)
        summary = result.summary
        logger.info(
            f"Compliance {day.isoformat()}: planned={summary['totalPlanned']} "
            f"visited={summary['totalVisited']} missed={summary['totalMissed']} "
            f"unplanned={summary['totalUnplanned']} rate={summary['complianceRate']}%"
        )
        return result
