"""
Unit tests for PatrolPlanService.

Tests cover:
- Deduplicated bulk save
- Single, batch and filtered delete
- Copy by shift, by day and weekly repeat with its days-ahead cap
- Site picker listing
"""
import pytest
from datetime import date

from app.error_handlers.exceptions import ResourceNotFoundException, ValidationException
from app.services.patrol_plan_service import PatrolPlanService, js_weekday

D = date(2026, 2, 12)  # a Thursday


@pytest.fixture
def plan_service(sources):
    sources.add_site('S001', 'Main Gate', route='A')
    sources.add_site('S002', 'Warehouse', route='A')
    sources.add_site('S003', 'Back Fence', route='B')
    sources.add_site('S004', 'Old Depot', route='B', status='inactive')
    return PatrolPlanService(sources.plans, sources.sites, copy_max_days_ahead=30,
                             default_weeks_ahead=4, today=lambda: D)


class TestSavePlans:

    @pytest.mark.unit
    def test_save_adds_plans_with_site_names(self, plan_service, sources):
        result = plan_service.save_plans('2026-02-12', 'morning', 'a', ['S001', 'S002'], 'admin')

        assert result == {'success': True, 'added': 2, 'skipped': 0}
        names = sorted(p.site_name for p in sources.plans.plans)
        assert names == ['Main Gate', 'Warehouse']
        assert all(p.route == 'A' for p in sources.plans.plans)
        assert all(p.id.startswith('PP-') and len(p.id) == 11 for p in sources.plans.plans)

    @pytest.mark.unit
    def test_resubmitting_same_list_adds_nothing(self, plan_service, sources):
        plan_service.save_plans('2026-02-12', 'morning', 'A', ['S001', 'S002'])
        result = plan_service.save_plans('2026-02-12', 'morning', 'A', ['S001', 'S002'])

        assert result['added'] == 0
        assert result['skipped'] == 2
        assert len(sources.plans.plans) == 2

    @pytest.mark.unit
    def test_duplicates_within_one_request_are_skipped(self, plan_service):
        result = plan_service.save_plans('2026-02-12', 'night', 'A', ['S001', 'S001'])
        assert result['added'] == 1
        assert result['skipped'] == 1

    @pytest.mark.unit
    def test_same_site_other_shift_is_not_a_duplicate(self, plan_service):
        plan_service.save_plans('2026-02-12', 'morning', 'A', ['S001'])
        assert plan_service.save_plans('2026-02-12', 'evening', 'A', ['S001'])['added'] == 1

    @pytest.mark.unit
    def test_afternoon_is_saved_as_evening(self, plan_service, sources):
        plan_service.save_plans('2026-02-12', 'afternoon', 'A', ['S001'])
        assert sources.plans.plans[0].shift == 'evening'

    @pytest.mark.unit
    @pytest.mark.parametrize('kwargs,field', [
        ({'plan_date': '12/02/2026'}, 'date'),
        ({'shift': 'late'}, 'shift'),
        ({'route': 'C'}, 'route'),
        ({'site_ids': []}, 'siteIds'),
    ])
    def test_validation(self, plan_service, kwargs, field):
        args = {'plan_date': '2026-02-12', 'shift': 'morning', 'route': 'A', 'site_ids': ['S001']}
        args.update(kwargs)
        with pytest.raises(ValidationException) as exc_info:
            plan_service.save_plans(**args)
        assert exc_info.value.details['field'] == field

    @pytest.mark.unit
    def test_site_ids_string_is_rejected_not_split(self, plan_service, sources):
        with pytest.raises(ValidationException) as exc_info:
            plan_service.save_plans('2026-02-12', 'morning', 'A', 'S001')
        assert exc_info.value.details['field'] == 'siteIds'
        assert sources.plans.plans == []


class TestDelete:

    @pytest.mark.unit
    def test_delete_plan(self, plan_service, sources):
        plan = sources.plans.add(D, 'morning', 'A', 'S001', 'Main Gate')
        assert plan_service.delete_plan(plan.id) == {'success': True, 'deleted': 1}
        assert sources.plans.plans == []

    @pytest.mark.unit
    def test_delete_unknown_plan(self, plan_service):
        with pytest.raises(ResourceNotFoundException):
            plan_service.delete_plan('PP-00000000')

    @pytest.mark.unit
    def test_delete_plans_counts_existing_only(self, plan_service, sources):
        a = sources.plans.add(D, 'morning', 'A', 'S001')
        b = sources.plans.add(D, 'morning', 'A', 'S002')
        result = plan_service.delete_plans([a.id, b.id, 'PP-MISSING'])
        assert result['deleted'] == 2

    @pytest.mark.unit
    def test_delete_plans_rejects_string_ids(self, plan_service, sources):
        plan = sources.plans.add(D, 'morning', 'A', 'S001')
        with pytest.raises(ValidationException) as exc_info:
            plan_service.delete_plans(plan.id)
        assert exc_info.value.details['field'] == 'ids'
        assert len(sources.plans.plans) == 1

    @pytest.mark.unit
    def test_clear_plans(self, plan_service, sources):
        sources.plans.add(D, 'morning', 'A', 'S001')
        sources.plans.add(D, 'morning', 'A', 'S002')
        sources.plans.add(D, 'evening', 'A', 'S001')

        assert plan_service.clear_plans('2026-02-12', 'morning', 'A')['deleted'] == 2
        assert [p.shift for p in sources.plans.plans] == ['evening']


class TestCopyPlans:

    @pytest.fixture
    def day_plans(self, sources):
        sources.plans.add(D, 'morning', 'A', 'S001', 'Main Gate')
        sources.plans.add(D, 'morning', 'A', 'S002', 'Warehouse')
        sources.plans.add(D, 'night', 'B', 'S003', 'Back Fence')

    @pytest.mark.unit
    def test_copy_shift(self, plan_service, sources, day_plans):
        result = plan_service.copy_plans('2026-02-12', 'shift', shift='morning', to_date='2026-02-13')

        assert result == {'success': True, 'added': 2, 'skipped': 0, 'targetDates': ['2026-02-13']}
        copied = sources.plans.list(date(2026, 2, 13))
        assert sorted(p.site_id for p in copied) == ['S001', 'S002']

    @pytest.mark.unit
    def test_copy_day_with_route_filter(self, plan_service, sources, day_plans):
        result = plan_service.copy_plans('2026-02-12', 'day', route='B', to_date='2026-02-14')
        assert result['added'] == 1
        assert sources.plans.list(date(2026, 2, 14))[0].shift == 'night'

    @pytest.mark.unit
    def test_copy_twice_skips_everything(self, plan_service, day_plans):
        plan_service.copy_plans('2026-02-12', 'day', to_date='2026-02-13')
        result = plan_service.copy_plans('2026-02-12', 'day', to_date='2026-02-13')
        assert result['added'] == 0
        assert result['skipped'] == 3

    @pytest.mark.unit
    def test_copy_from_empty_date(self, plan_service):
        result = plan_service.copy_plans('2026-02-12', 'day', to_date='2026-02-13')
        assert result['success'] is False
        assert 'No plans found' in result['message']

    @pytest.mark.unit
    def test_weekly_repeat(self, plan_service, sources, day_plans):
        result = plan_service.copy_plans('2026-02-12', 'weekly', weekdays=[js_weekday(D)], weeks_ahead=4)

        assert result['targetDates'] == ['2026-02-19', '2026-02-26', '2026-03-05', '2026-03-12']
        assert result['added'] == 12

    @pytest.mark.unit
    def test_weekly_repeat_respects_days_ahead_cap(self, sources, day_plans):
        service = PatrolPlanService(sources.plans, sources.sites, copy_max_days_ahead=14,
                                    today=lambda: D)
        result = service.copy_plans('2026-02-12', 'weekly', weekdays=[4], weeks_ahead=4)
        assert result['targetDates'] == ['2026-02-19', '2026-02-26']

    @pytest.mark.unit
    def test_weekly_target_dates_stop_at_cap(self, plan_service):
        targets = plan_service.weekly_target_dates(D, [4], weeks_ahead=100000)
        assert targets == [date(2026, 2, 19), date(2026, 2, 26), date(2026, 3, 5), date(2026, 3, 12)]

    @pytest.mark.unit
    def test_weekly_repeat_default_weeks(self, plan_service, day_plans):
        result = plan_service.copy_plans('2026-02-12', 'weekly', weekdays=[4])
        assert len(result['targetDates']) == 4

    @pytest.mark.unit
    def test_weekly_requires_weekdays(self, plan_service, day_plans):
        with pytest.raises(ValidationException):
            plan_service.copy_plans('2026-02-12', 'weekly', weekdays=[])

    @pytest.mark.unit
    def test_weekly_rejects_bad_weekday(self, plan_service, day_plans):
        with pytest.raises(ValidationException):
            plan_service.copy_plans('2026-02-12', 'weekly', weekdays=[7])

    @pytest.mark.unit
    def test_unknown_mode(self, plan_service):
        with pytest.raises(ValidationException):
            plan_service.copy_plans('2026-02-12', 'monthly', to_date='2026-03-12')

    @pytest.mark.unit
    def test_js_weekday(self):
        assert js_weekday(date(2026, 2, 15)) == 0  # Sunday
        assert js_weekday(date(2026, 2, 21)) == 6  # Saturday


class TestSitesByRoute:

    @pytest.mark.unit
    def test_active_sites_sorted(self, plan_service):
        sites = plan_service.sites_by_route('A')
        assert [s['nameEN'] for s in sites] == ['Main Gate', 'Warehouse']

    @pytest.mark.unit
    def test_inactive_excluded(self, plan_service):
        assert [s['id'] for s in plan_service.sites_by_route('B')] == ['S003']

    @pytest.mark.unit
    def test_all_routes(self, plan_service):
        assert len(plan_service.sites_by_route('ALL')) == 3
        assert len(plan_service.sites_by_route()) == 3
