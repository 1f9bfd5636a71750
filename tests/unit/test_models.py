"""
Unit tests for the database models and the SQL data sources.

Tests cover:
- Model creation, defaults and serialization
- SqlPlanStore dedup, ordering and deletes
- SqlVisitLogSource date and inspector filtering over mixed timestamp layouts
- Registries and the SQL-backed ComplianceService end to end
"""
import pytest
from datetime import datetime, date

from app.services.compliance_matcher import ComplianceService
from app.services.patrol_sources import (
    SqlInspectorRegistry, SqlPlanStore, SqlSiteRegistry, SqlVisitLogSource,
    generate_plan_id,
)

D = date(2026, 2, 12)


class TestSiteModel:

    @pytest.mark.unit
    def test_create_site(self, site_factory):
        site = site_factory(id='S100', name_en='Main Gate', name_lo='ປະຕູໃຫຍ່', route='A')

        assert site.status == 'active'
        assert site.created_at is not None
        assert 'S100' in repr(site)

    @pytest.mark.unit
    def test_to_dict(self, site_factory):
        data = site_factory(id='S100', code='MG', name_en='Main Gate').to_dict()
        assert data['id'] == 'S100'
        assert data['code'] == 'MG'
        assert data['nameEN'] == 'Main Gate'


class TestInspectorModel:

    @pytest.mark.unit
    def test_create_inspector(self, inspector_factory):
        inspector = inspector_factory(name='Siri', shift='ພາກເຊົ້າ')
        assert inspector.id is not None
        assert inspector.status == 'active'
        assert 'Siri' in repr(inspector)


class TestPatrolPlanModel:

    @pytest.mark.unit
    def test_generate_plan_id(self):
        plan_id = generate_plan_id()
        assert plan_id.startswith('PP-')
        assert len(plan_id) == 11
        assert plan_id[3:] == plan_id[3:].upper()

    @pytest.mark.unit
    def test_create_plan(self, plan_factory):
        plan = plan_factory(date=D, shift='night', site_id='S001')
        assert plan.date == D
        assert 'night' in repr(plan)


class TestSqlPlanStore:

    @pytest.mark.unit
    def test_bulk_insert_dedups_against_stored_rows(self, db, models):
        store = SqlPlanStore(db.session, models)

        first = store.bulk_insert(D, 'morning', 'A', ['S001', 'S002'], 'admin',
                                  site_names={'S001': 'Main Gate'})
        second = store.bulk_insert(D, 'morning', 'A', ['S002', 'S003'], 'admin')

        assert first == {'added': 2, 'skipped': 0}
        assert second == {'added': 1, 'skipped': 1}
        plans = store.list(D)
        assert {p.site_id: p.site_name for p in plans} == {
            'S001': 'Main Gate', 'S002': 'S002', 'S003': 'S003',
        }
        assert {p.created_by for p in plans} == {'admin'}

    @pytest.mark.unit
    def test_list_in_insertion_order_and_skips_unknown_shift(self, plan_factory, db, models):
        plan_factory(date=D, site_id='S002', created_at=datetime(2026, 2, 1, 9, 0))
        plan_factory(date=D, site_id='S001', created_at=datetime(2026, 2, 1, 8, 0))
        plan_factory(date=D, site_id='S003', shift='siesta', created_at=datetime(2026, 2, 1, 10, 0))
        plan_factory(date=date(2026, 2, 13), site_id='S004')

        plans = SqlPlanStore(db.session, models).list(D)
        assert [p.site_id for p in plans] == ['S001', 'S002']

    @pytest.mark.unit
    def test_get(self, plan_factory, db, models):
        plan = plan_factory(date=D, shift='afternoon')
        store = SqlPlanStore(db.session, models)

        assert store.get(plan.id).shift == 'evening'
        assert store.get('PP-NOPE') is None

    @pytest.mark.unit
    def test_deletes(self, plan_factory, db, models):
        a = plan_factory(date=D, shift='morning', route='A', site_id='S001')
        b = plan_factory(date=D, shift='morning', route='A', site_id='S002')
        c = plan_factory(date=D, shift='evening', route='A', site_id='S001')
        plan_factory(date=D, shift='night', route='B', site_id='S009')
        a_id, b_id, c_id = a.id, b.id, c.id
        store = SqlPlanStore(db.session, models)

        assert store.delete_one(c_id) is True
        assert store.delete_one(c_id) is False
        assert store.delete_many([a_id, 'PP-NOPE']) == 1
        assert store.delete_by_filter(D, 'morning', 'A') == 1
        assert [p.site_id for p in store.list(D)] == ['S009']
        assert b_id not in {p.id for p in store.list(D)}


class TestSqlVisitLogSource:

    @pytest.fixture
    def mixed_logs(self, inspection_log_factory):
        inspection_log_factory(timestamp='2026-02-12 08:00:00', patrol_name='Siri')
        inspection_log_factory(timestamp='2026-02-14 08:00:00', patrol_name='Siri')
        inspection_log_factory(timestamp='12/02/2026 09:00', patrol_name='Noy')
        inspection_log_factory(timestamp='2026-02-12', patrol_name='Noy')
        inspection_log_factory(timestamp='garbage', patrol_name='Siri')
        inspection_log_factory(timestamp='2026-02-11 23:59:59', patrol_name='Siri')

    @pytest.mark.unit
    def test_read_range_filters_by_parsed_date(self, mixed_logs, db, models):
        source = SqlVisitLogSource(db.session, models, tz_name='Asia/Vientiane')
        rows = source.read_range(D, D)
        assert [r.timestamp for r in rows] == ['2026-02-12 08:00:00', '12/02/2026 09:00', '2026-02-12']

    @pytest.mark.unit
    def test_read_range_inclusive_bounds(self, mixed_logs, db, models):
        rows = SqlVisitLogSource(db.session, models).read_range(date(2026, 2, 11), date(2026, 2, 14))
        assert len(rows) == 5

    @pytest.mark.unit
    def test_inspector_filter_is_case_insensitive(self, mixed_logs, db, models):
        rows = SqlVisitLogSource(db.session, models).read_range(D, D, inspector=' SIRI ')
        assert [r.inspector_name for r in rows] == ['Siri']

    @pytest.mark.unit
    def test_row_fields(self, inspection_log_factory, db, models):
        inspection_log_factory(timestamp='2026-02-12 08:00:00', route='Route B', site_name='Main Gate',
                               shift='2', score='85', gps='17.9,102.6', issues='none')
        row = SqlVisitLogSource(db.session, models).read_range(D, D)[0]

        assert row.route_text == 'Route B'
        assert row.site_name_text == 'Main Gate'
        assert row.shift_code == '2'
        assert row.score == '85'
        assert row.gps == '17.9,102.6'


class TestRegistries:

    @pytest.mark.unit
    def test_site_registry(self, site_factory, db, models):
        site_factory(id='S002', name_en='Warehouse', route='b')
        site_factory(id='S001', name_en='Main Gate')

        sites = SqlSiteRegistry(db.session, models).list()
        assert [s.id for s in sites] == ['S001', 'S002']
        assert sites[1].route == 'B'

    @pytest.mark.unit
    def test_inspector_registry_includes_inactive(self, inspector_factory, db, models):
        inspector_factory(name='Siri', shift='1')
        inspector_factory(name='Noy', shift='', status='inactive')

        records = SqlInspectorRegistry(db.session, models).list()
        assert [(r.name, r.declared_shift_code) for r in records] == [('Siri', '1'), ('Noy', '')]


class TestSqlComplianceService:

    @pytest.mark.unit
    def test_cross_midnight_night_visit(self, app, site_factory, inspector_factory, plan_factory,
                                        inspection_log_factory, db, models):
        site_factory(id='SX', name_en='Site X', route='A')
        inspector_factory(name='Siri', shift='3')
        plan_factory(date=D, shift='night', route='A', site_id='SX', site_name='Site X')
        inspection_log_factory(timestamp='2026-02-13 02:15:00', patrol_name='Siri',
                               route='A', site_name='Site X')

        service = ComplianceService.from_app(db.session, models, app.config)

        day_12 = service.get_day_compliance(D)
        day_13 = service.get_day_compliance(date(2026, 2, 13))

        assert day_12.summary['totalVisited'] == 1
        assert day_12.visited[0].site_id == 'SX'
        assert day_13.summary['totalVisited'] == 0
        assert day_13.unplanned == []
