"""
Pytest configuration and fixtures for the patrol compliance tests.

This module provides shared fixtures for:
- Flask application with test configuration
- Database setup and teardown
- Model factories for sites, inspectors, plans and inspection logs
- In-memory data sources for testing the engine without a database
"""
import pytest
from datetime import datetime, date

from app import create_app
from app.extensions import db as _db
from app.error_handlers.exceptions import UpstreamUnavailableException
from app.services.compliance_matcher import ComplianceService
from app.services.patrol_normalizer import parse_timestamp
from app.services.patrol_sources import generate_plan_id
from app.services.patrol_types import (
    InspectorRecord, PlannedAssignment, RawEventRow, SiteRecord,
)


@pytest.fixture(scope='session')
def app():
    """
    Create application for the tests.

    Uses TestingConfig with in-memory SQLite database.
    Scope is 'session' to reuse the same app across all tests.
    """
    app = create_app('testing')
    app.config.update({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'WTF_CSRF_ENABLED': False,  # Disable CSRF for testing
        'RATELIMIT_ENABLED': False,  # Disable rate limiting for tests
    })

    return app


@pytest.fixture(scope='function')
def db(app):
    """
    Create database for the tests.

    Creates all tables before each test function and drops them after.
    This ensures test isolation.
    """
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope='function')
def client(app, db):
    """
    Create a test client for the app.

    The client can be used to make requests to the application.
    """
    with app.test_client() as client:
        with app.app_context():
            yield client


@pytest.fixture(scope='function')
def models(app, db):
    """Models registered by create_app() in the model registry."""
    from app.models import get_models
    return get_models()


# =============================================================================
# Model Factories
# =============================================================================

@pytest.fixture
def site_factory(models, db):
    """
    Factory for creating Site rows.

    Usage:
        site = site_factory(id='S001', name_en='Main Gate', route='A')
    """
    counter = [0]

    def _create_site(**kwargs):
        Site = models['Site']
        counter[0] += 1
        defaults = {
            'id': f'S{counter[0]:03d}',
            'code': f'C{counter[0]:03d}',
            'name_en': f'Test Site {counter[0]}',
            'name_lo': '',
            'route': 'A',
            'status': 'active',
        }
        defaults.update(kwargs)
        site = Site(**defaults)
        db.session.add(site)
        db.session.commit()
        return site

    return _create_site


@pytest.fixture
def inspector_factory(models, db):
    """
    Factory for creating Inspector rows.

    Usage:
        inspector = inspector_factory(name='Somchai', shift='2')
    """
    def _create_inspector(**kwargs):
        Inspector = models['Inspector']
        defaults = {
            'name': 'Test Inspector',
            'status': 'active',
            'shift': '',
        }
        defaults.update(kwargs)
        inspector = Inspector(**defaults)
        db.session.add(inspector)
        db.session.commit()
        return inspector

    return _create_inspector


@pytest.fixture
def plan_factory(models, db):
    """
    Factory for creating PatrolPlan rows.

    Usage:
        plan = plan_factory(date=date(2025, 3, 10), shift='night', site_id='S001')
    """
    def _create_plan(**kwargs):
        PatrolPlan = models['PatrolPlan']
        defaults = {
            'id': generate_plan_id(),
            'date': date(2025, 3, 10),
            'shift': 'morning',
            'route': 'A',
            'site_id': 'S001',
            'site_name': 'Test Site 1',
            'created_by': 'tester',
            'created_at': datetime.utcnow(),
        }
        defaults.update(kwargs)
        plan = PatrolPlan(**defaults)
        db.session.add(plan)
        db.session.commit()
        return plan

    return _create_plan


@pytest.fixture
def inspection_log_factory(models, db):
    """
    Factory for creating InspectionLog rows.

    Usage:
        log = inspection_log_factory(timestamp='2025-03-10 08:15:00', site_name='Main Gate')
    """
    def _create_log(**kwargs):
        InspectionLog = models['InspectionLog']
        defaults = {
            'timestamp': '2025-03-10 08:00:00',
            'patrol_name': 'Test Inspector',
            'route': 'Route A',
            'site_name': 'Test Site 1',
            'guard_name': 'Guard One',
            'shift': '',
            'score': '90',
            'status': 'Normal',
            'gps': '17.9757,102.6331',
            'issues': '',
        }
        defaults.update(kwargs)
        log = InspectionLog(**defaults)
        db.session.add(log)
        db.session.commit()
        return log

    return _create_log


# =============================================================================
# In-memory data sources
# =============================================================================

class FakePlanStore:
    """Plan Store double with the same dedup semantics as SqlPlanStore"""

    def __init__(self):
        self.plans = []
        self.fail = False
        self.list_calls = []

    def _check(self):
        if self.fail:
            raise UpstreamUnavailableException('Plan store unavailable')

    def add(self, plan_date, shift, route, site_id, site_name=None):
        plan = PlannedAssignment(
            id=generate_plan_id(), date=plan_date, shift=shift, route=route,
            site_id=site_id, site_name=site_name or site_id,
        )
        self.plans.append(plan)
        return plan

    def list(self, plan_date):
        self._check()
        self.list_calls.append(plan_date)
        return [p for p in self.plans if p.date == plan_date]

    def bulk_insert(self, plan_date, shift, route, site_ids, created_by='', site_names=None):
        self._check()
        site_names = site_names or {}
        seen = {p.site_id for p in self.plans
                if p.date == plan_date and p.shift == shift and p.route == route}
        added = skipped = 0
        for site_id in site_ids:
            if site_id in seen:
                skipped += 1
                continue
            seen.add(site_id)
            self.add(plan_date, shift, route, site_id, site_names.get(site_id, site_id))
            added += 1
        return {'added': added, 'skipped': skipped}

    def delete_one(self, plan_id):
        self._check()
        before = len(self.plans)
        self.plans = [p for p in self.plans if p.id != plan_id]
        return len(self.plans) < before

    def delete_many(self, plan_ids):
        self._check()
        ids = set(plan_ids)
        before = len(self.plans)
        self.plans = [p for p in self.plans if p.id not in ids]
        return before - len(self.plans)

    def delete_by_filter(self, plan_date, shift, route):
        self._check()
        before = len(self.plans)
        self.plans = [p for p in self.plans
                      if not (p.date == plan_date and p.shift == shift and p.route == route)]
        return before - len(self.plans)


class FakeVisitLogSource:
    """Visit Log Source double over a list of RawEventRow"""

    def __init__(self):
        self.rows = []
        self.fail = False
        self.calls = []

    def add(self, timestamp, inspector='Inspector A', route='A', site='Site 1',
            shift='', score='90', **kwargs):
        row = RawEventRow(
            timestamp=timestamp, inspector_name=inspector, route_text=route,
            site_name_text=site, shift_code=shift, score=score, **kwargs
        )
        self.rows.append(row)
        return row

    def read_range(self, date_from, date_to, inspector=None):
        self.calls.append((date_from, date_to, inspector))
        if self.fail:
            raise UpstreamUnavailableException('Visit log source unavailable')
        result = []
        for row in self.rows:
            _, event_date = parse_timestamp(row.timestamp)
            if event_date is None or not (date_from <= event_date <= date_to):
                continue
            if inspector and row.inspector_name.strip().casefold() != inspector.strip().casefold():
                continue
            result.append(row)
        return result


class FakeSiteRegistry:
    def __init__(self, sites=None):
        self.sites = list(sites or [])
        self.fail = False

    def list(self):
        if self.fail:
            raise UpstreamUnavailableException('Site registry unavailable')
        return list(self.sites)


class FakeInspectorRegistry:
    def __init__(self, inspectors=None):
        self.inspectors = list(inspectors or [])

    def list(self):
        return list(self.inspectors)


class EngineSources:
    """Bundle of in-memory sources plus a ComplianceService over them"""

    def __init__(self):
        self.plans = FakePlanStore()
        self.logs = FakeVisitLogSource()
        self.sites = FakeSiteRegistry()
        self.inspectors = FakeInspectorRegistry()

    def add_site(self, site_id, name_en, name_lo='', code='', route='A', status='active'):
        site = SiteRecord(id=site_id, code=code, name_en=name_en, name_lo=name_lo,
                          route=route, status=status)
        self.sites.sites.append(site)
        return site

    def add_inspector(self, name, declared_shift_code=''):
        self.inspectors.inspectors.append(InspectorRecord(name=name, declared_shift_code=declared_shift_code))

    def service(self):
        return ComplianceService(self.plans, self.logs, self.sites, self.inspectors)


@pytest.fixture
def sources():
    """
    In-memory Plan Store, Visit Log Source and registries.

    Usage:
        sources.add_site('S001', 'Main Gate', route='A')
        sources.plans.add(date(2025, 3, 10), 'morning', 'A', 'S001', 'Main Gate')
        sources.logs.add('2025-03-10 08:00:00', site='Main Gate')
        result = sources.service().get_day_compliance(date(2025, 3, 10))
    """
    return EngineSources()
