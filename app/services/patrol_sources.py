"""
Data sources for the compliance engine

SQL-backed Plan Store, Visit Log Source, Site Registry and Inspector
Registry. The engine only relies on the method names below, so tests swap
in plain in-memory objects with the same methods.

Every read failure is raised as UpstreamUnavailableException; the
compliance service decides whether that degrades a result or fails a call.
"""
import logging
import secrets
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, not_, or_
from sqlalchemy.exc import SQLAlchemyError

from app.error_handlers.exceptions import UpstreamUnavailableException
from app.services.date_window import next_day
from app.services.patrol_normalizer import (
    inspector_model_to_record, log_model_to_row, parse_timestamp,
    plan_model_to_assignment, site_model_to_record,
)
from app.services.patrol_types import (
    InspectorRecord, PlannedAssignment, RawEventRow, SiteRecord,
)

logger = logging.getLogger(__name__)

PLAN_ID_PREFIX = 'PP-'


def generate_plan_id() -> str:
    """'PP-' followed by 8 upper-case hex characters"""
    return PLAN_ID_PREFIX + secrets.token_hex(4).upper()


def _upstream_error(source: str, operation: str, error: Exception) -> UpstreamUnavailableException:
    logger.error(f"{source} {operation} failed: {error}")
    return UpstreamUnavailableException(
        f"{source} unavailable",
        details={'source': source, 'operation': operation}
    )


class SqlPlanStore:
    """Plan Store backed by the patrol_plans table"""

    def __init__(self, db_session, models):
        self.db = db_session
        self.PatrolPlan = models['PatrolPlan']

    def list(self, plan_date: date) -> List[PlannedAssignment]:
        """All plans for a date in insertion order"""
        try:
            rows = (self.PatrolPlan.query
                    .filter(self.PatrolPlan.date == plan_date)
                    .order_by(self.PatrolPlan.created_at)
                    .all())
        except SQLAlchemyError as e:
            raise _upstream_error('Plan store', 'list', e) from e
        plans = []
        for row in rows:
            plan = plan_model_to_assignment(row)
            if plan is not None:
                plans.append(plan)
        return plans

    def get(self, plan_id: str) -> Optional[PlannedAssignment]:
        try:
            row = self.db.get(self.PatrolPlan, plan_id)
        except SQLAlchemyError as e:
            raise _upstream_error('Plan store', 'get', e) from e
        return plan_model_to_assignment(row) if row else None

    def bulk_insert(self, plan_date: date, shift: str, route: str, site_ids: Iterable[str],
                    created_by: str = '', site_names: Optional[Dict[str, str]] = None) -> Dict[str, int]:
        """
        Insert plans for one (date, shift, route), skipping sites already planned.

        The seen-set is built from a fresh read on every call, so repeated
        submissions of the same list add nothing.

        Returns:
            {'added': n, 'skipped': m}
        """
        site_names = site_names or {}
        existing = [p for p in self.list(plan_date) if p.shift == shift and p.route == route]
        seen = {p.site_id for p in existing}

        added = 0
        skipped = 0
        try:
            for site_id in site_ids:
                site_id = str(site_id or '').strip()
                if not site_id:
                    continue
                if site_id in seen:
                    skipped += 1
                    continue
                seen.add(site_id)
                self.db.add(self.PatrolPlan(
                    id=generate_plan_id(),
                    date=plan_date,
                    shift=shift,
                    route=route,
                    site_id=site_id,
                    site_name=site_names.get(site_id, site_id),
                    created_by=created_by or '',
                    created_at=datetime.utcnow(),
                ))
                added += 1
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise _upstream_error('Plan store', 'bulk_insert', e) from e

        logger.info(f"Saved plans {plan_date} {shift}/{route}: added={added} skipped={skipped}")
        return {'added': added, 'skipped': skipped}

    def delete_one(self, plan_id: str) -> bool:
        """Delete one plan; False if no plan has that ID"""
        try:
            deleted = self.PatrolPlan.query.filter_by(id=plan_id).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise _upstream_error('Plan store', 'delete_one', e) from e
        return deleted > 0

    def delete_many(self, plan_ids: Iterable[str]) -> int:
        ids = [str(i) for i in plan_ids if i]
        if not ids:
            return 0
        try:
            deleted = (self.PatrolPlan.query
                       .filter(self.PatrolPlan.id.in_(ids))
                       .delete(synchronize_session=False))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise _upstream_error('Plan store', 'delete_many', e) from e
        return deleted

    def delete_by_filter(self, plan_date: date, shift: str, route: str) -> int:
        """Clear every plan for one (date, shift, route)"""
        try:
            deleted = (self.PatrolPlan.query
                       .filter(and_(self.PatrolPlan.date == plan_date,
                                    self.PatrolPlan.shift == shift,
                                    self.PatrolPlan.route == route))
                       .delete(synchronize_session=False))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise _upstream_error('Plan store', 'delete_by_filter', e) from e
        return deleted


class SqlVisitLogSource:
    """Visit Log Source backed by the inspection_logs table"""

    def __init__(self, db_session, models, tz_name: Optional[str] = None):
        self.db = db_session
        self.InspectionLog = models['InspectionLog']
        self.tz_name = tz_name

    def read_range(self, date_from: date, date_to: date,
                   inspector: Optional[str] = None) -> List[RawEventRow]:
        """
        Raw rows whose timestamp falls on [date_from, date_to], in table order.

        ISO timestamps are range-filtered in SQL by text comparison; rows in
        any other layout are fetched and filtered after parsing.
        """
        log = self.InspectionLog
        lower_bound = date_from.isoformat()
        upper_bound = next_day(date_to).isoformat()
        iso_like = log.timestamp.like('____-__-__%')

        try:
            query = log.query.filter(or_(
                and_(iso_like, log.timestamp >= lower_bound, log.timestamp < upper_bound),
                not_(iso_like),
            ))
            rows = query.order_by(log.id).all()
        except SQLAlchemyError as e:
            raise _upstream_error('Visit log source', 'read_range', e) from e

        target = inspector.strip().casefold() if inspector else None
        result = []
        for row in rows:
            raw = log_model_to_row(row)
            if target is not None and raw.inspector_name.casefold() != target:
                continue
            _, event_date = parse_timestamp(raw.timestamp, self.tz_name)
            if event_date is None or not (date_from <= event_date <= date_to):
                continue
            result.append(raw)
        logger.debug(f"Read {len(result)} log rows for {date_from}..{date_to}"
                     + (f" inspector={inspector}" if inspector else ''))
        return result


class SqlSiteRegistry:
    """Site Registry backed by the sites table"""

    def __init__(self, db_session, models):
        self.db = db_session
        self.Site = models['Site']

    def list(self) -> List[SiteRecord]:
        try:
            rows = self.Site.query.order_by(self.Site.id).all()
        except SQLAlchemyError as e:
            raise _upstream_error('Site registry', 'list', e) from e
        return [site_model_to_record(row) for row in rows]


class SqlInspectorRegistry:
    """Inspector Registry backed by the inspectors table (inactive inspectors included)"""

    def __init__(self, db_session, models):
        self.db = db_session
        self.Inspector = models['Inspector']

    def list(self) -> List[InspectorRecord]:
        try:
            rows = self.Inspector.query.order_by(self.Inspector.id).all()
        except SQLAlchemyError as e:
            raise _upstream_error('Inspector registry', 'list', e) from e
        return [inspector_model_to_record(row) for row in rows if row.name]
