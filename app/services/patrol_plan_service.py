"""
Patrol Plan Service

Plan maintenance for the dashboard's planning screen:
- Bulk save of sites for one (date, shift, route), deduplicated
- Single, batch and filtered delete
- Copy a shift or a whole day to another date, or repeat it weekly
- Active sites per route for the site picker
"""
import logging
from collections import OrderedDict
from datetime import date, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from app.error_handlers.exceptions import (
    ResourceNotFoundException, UpstreamUnavailableException, ValidationException,
)
from app.services.date_window import parse_iso_date
from app.services.patrol_normalizer import normalize_plan_shift, normalize_route
from app.services.patrol_sources import SqlPlanStore, SqlSiteRegistry
from app.services.patrol_types import ROUTES, SHIFTS
from app.utils.timezone import local_today

logger = logging.getLogger(__name__)

COPY_MODES = ('shift', 'day', 'weekly')
INACTIVE_SITE_STATUSES = ('inactive', 'deleted')


def validate_shift(shift) -> str:
    normalized = normalize_plan_shift(shift)
    if normalized is None:
        raise ValidationException(
            f"Invalid shift: '{shift}'. Must be one of: {', '.join(SHIFTS)}",
            details={'field': 'shift'}
        )
    return normalized


def validate_route(route) -> str:
    normalized = normalize_route(route)
    if normalized not in ROUTES:
        raise ValidationException(
            f"Invalid route: '{route}'. Must be one of: {', '.join(ROUTES)}",
            details={'field': 'route'}
        )
    return normalized


def validate_id_list(values, field: str, message: str) -> List[str]:
    """Non-empty list of stripped ids; a bare string is rejected, not split"""
    if values is None:
        values = []
    if not isinstance(values, (list, tuple)):
        raise ValidationException(f"{field} must be a list", details={'field': field})
    ids = [str(v).strip() for v in values if str(v or '').strip()]
    if not ids:
        raise ValidationException(message, details={'field': field})
    return ids


def js_weekday(d: date) -> int:
    """0=Sunday .. 6=Saturday"""
    return (d.weekday() + 1) % 7


class PatrolPlanService:
    """
    Create, copy and delete patrol plans

    Usage:
        service = PatrolPlanService.from_app(db.session, models, current_app.config)
        service.save_plans('2025-03-10', 'morning', 'A', ['S001', 'S002'], 'admin')
    """

    def __init__(self, plan_store, site_registry, copy_max_days_ahead: int = 30,
                 default_weeks_ahead: int = 4, today: Optional[Callable[[], date]] = None):
        self.plan_store = plan_store
        self.site_registry = site_registry
        self.copy_max_days_ahead = copy_max_days_ahead
        self.default_weeks_ahead = default_weeks_ahead
        self.today = today or local_today

    @classmethod
    def from_app(cls, db_session, models, config) -> 'PatrolPlanService':
        tz_name = config.get('PATROL_TIMEZONE')
        return cls(
            plan_store=SqlPlanStore(db_session, models),
            site_registry=SqlSiteRegistry(db_session, models),
            copy_max_days_ahead=config.get('PATROL_COPY_MAX_DAYS_AHEAD', 30),
            default_weeks_ahead=config.get('PATROL_COPY_DEFAULT_WEEKS', 4),
            today=lambda: local_today(tz_name),
        )

    def _site_names(self) -> Dict[str, str]:
        try:
            sites = self.site_registry.list()
        except (UpstreamUnavailableException, SQLAlchemyError) as e:
            logger.warning(f"Site registry unavailable, plan site names fall back to IDs: {e}")
            return {}
        return {site.id: site.name_en or site.id for site in sites}

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list_plans(self, plan_date) -> List[Dict[str, Any]]:
        plan_date = parse_iso_date(plan_date)
        return [plan.to_dict() for plan in self.plan_store.list(plan_date)]

    def sites_by_route(self, route: Optional[str] = None) -> List[Dict[str, Any]]:
        """Active sites (optionally one route) sorted by English name"""
        route = normalize_route(route)
        if route == 'ALL':
            route = ''
        sites = []
        for site in self.site_registry.list():
            if site.status.lower() in INACTIVE_SITE_STATUSES:
                continue
            if route and site.route != route:
                continue
            if not site.id or not site.name_en:
                continue
            sites.append({'id': site.id, 'nameEN': site.name_en, 'route': site.route})
        sites.sort(key=lambda s: s['nameEN'].casefold())
        return sites

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def save_plans(self, plan_date, shift, route, site_ids: Iterable[str],
                   created_by: str = '') -> Dict[str, Any]:
        """
        Bulk-save sites for one (date, shift, route).

        Raises:
            ValidationException: If any argument is malformed or no site is given
        """
        plan_date = parse_iso_date(plan_date)
        shift = validate_shift(shift)
        route = validate_route(route)
        site_ids = validate_id_list(site_ids, 'siteIds', 'At least one site is required')

        result = self.plan_store.bulk_insert(
            plan_date, shift, route, site_ids, created_by or '', site_names=self._site_names()
        )
        return {'success': True, 'added': result['added'], 'skipped': result['skipped']}

    def delete_plan(self, plan_id: str) -> Dict[str, Any]:
        if not plan_id:
            raise ValidationException('Plan ID is required', details={'field': 'id'})
        if not self.plan_store.delete_one(plan_id):
            raise ResourceNotFoundException(f'Plan not found: {plan_id}', details={'id': plan_id})
        logger.info(f"Deleted plan {plan_id}")
        return {'success': True, 'deleted': 1}

    def delete_plans(self, plan_ids: Iterable[str]) -> Dict[str, Any]:
        ids = validate_id_list(plan_ids, 'ids', 'At least one plan ID is required')
        deleted = self.plan_store.delete_many(ids)
        logger.info(f"Deleted {deleted} of {len(ids)} requested plans")
        return {'success': True, 'deleted': deleted}

    def clear_plans(self, plan_date, shift, route) -> Dict[str, Any]:
        plan_date = parse_iso_date(plan_date)
        shift = validate_shift(shift)
        route = validate_route(route)
        deleted = self.plan_store.delete_by_filter(plan_date, shift, route)
        logger.info(f"Cleared {deleted} plans for {plan_date} {shift}/{route}")
        return {'success': True, 'deleted': deleted}

    # ------------------------------------------------------------------
    # Copy
    # ------------------------------------------------------------------

    def weekly_target_dates(self, from_date: date, weekdays: Iterable[int],
                            weeks_ahead: int) -> List[date]:
        """
        Dates after from_date (for weeks_ahead weeks) falling on the given
        weekdays, capped at copy_max_days_ahead days after today.
        """
        wanted = set(weekdays)
        today = self.today()
        targets = []
        for offset in range(1, weeks_ahead * 7 + 1):
            target = from_date + timedelta(days=offset)
            if (target - today).days > self.copy_max_days_ahead:
                break
            if js_weekday(target) not in wanted:
                continue
            targets.append(target)
        return targets

    def copy_plans(self, from_date, mode: str, shift: Optional[str] = None,
                   route: Optional[str] = None, to_date=None,
                   weekdays: Optional[Iterable[int]] = None,
                   weeks_ahead: Optional[int] = None, created_by: str = '') -> Dict[str, Any]:
        """
        Copy plans from one date.

        Modes:
            shift: one shift (optionally one route) onto to_date
            day: every plan of the day (optionally one route) onto to_date
            weekly: repeat onto the given weekdays (0=Sunday) for weeks_ahead weeks

        Returns:
            {'success', 'added', 'skipped', 'targetDates'} or
            {'success': False, 'message'} when there is nothing to copy
        """
        from_date = parse_iso_date(from_date, 'fromDate')
        mode = str(mode or '').strip().lower()
        if mode not in COPY_MODES:
            raise ValidationException(
                f"Invalid copy mode: '{mode}'. Must be one of: {', '.join(COPY_MODES)}",
                details={'field': 'mode'}
            )

        if mode in ('shift', 'day'):
            if not to_date:
                raise ValidationException('Target date is required', details={'field': 'toDate'})
            target_dates = [parse_iso_date(to_date, 'toDate')]
        else:
            days = self._validate_weekdays(weekdays)
            weeks = self._validate_weeks(weeks_ahead)
            target_dates = self.weekly_target_dates(from_date, days, weeks)

        if mode == 'shift':
            if not shift:
                raise ValidationException('Shift is required for shift copy', details={'field': 'shift'})
            shift = validate_shift(shift)
        route = validate_route(route) if route and normalize_route(route) != 'ALL' else None

        all_plans = self.plan_store.list(from_date)
        if not all_plans:
            return {'success': False, 'message': 'No plans found for source date'}

        source = all_plans
        if mode == 'shift':
            source = [p for p in source if p.shift == shift]
        if route:
            source = [p for p in source if p.route == route]
        if not source:
            return {'success': False, 'message': 'No matching plans found to copy'}

        groups: 'OrderedDict[tuple, List[str]]' = OrderedDict()
        for plan in source:
            groups.setdefault((plan.shift, plan.route), []).append(plan.site_id)

        site_names = self._site_names()
        added = 0
        skipped = 0
        for target in target_dates:
            for (group_shift, group_route), site_ids in groups.items():
                result = self.plan_store.bulk_insert(
                    target, group_shift, group_route, site_ids, created_by or '', site_names=site_names
                )
                added += result['added']
                skipped += result['skipped']

        logger.info(f"Copied plans from {from_date} ({mode}): added={added} skipped={skipped} "
                    f"targets={len(target_dates)}")
        return {
            'success': True,
            'added': added,
            'skipped': skipped,
            'targetDates': [d.isoformat() for d in target_dates],
        }

    @staticmethod
    def _validate_weekdays(weekdays) -> List[int]:
        if not weekdays:
            raise ValidationException('Weekdays are required for weekly repeat', details={'field': 'weekdays'})
        try:
            days = [int(d) for d in weekdays]
        except (TypeError, ValueError):
            raise ValidationException('Weekdays must be numbers 0 (Sunday) to 6 (Saturday)',
                                      details={'field': 'weekdays'})
        if any(d < 0 or d > 6 for d in days):
            raise ValidationException('Weekdays must be numbers 0 (Sunday) to 6 (Saturday)',
                                      details={'field': 'weekdays'})
        return days

    def _validate_weeks(self, weeks_ahead) -> int:
        if weeks_ahead in (None, ''):
            return self.default_weeks_ahead
        try:
            weeks = int(weeks_ahead)
        except (TypeError, ValueError):
            raise ValidationException('weeksAhead must be a whole number', details={'field': 'weeksAhead'})
        if weeks < 1:
            raise ValidationException('weeksAhead must be at least 1', details={'field': 'weeksAhead'})
        return weeks
