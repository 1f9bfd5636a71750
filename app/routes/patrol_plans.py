"""
Patrol Plans API Blueprint
Handles plan maintenance endpoints for the planning screen: list, bulk save,
delete, clear, copy, and the per-route site picker
"""
from flask import Blueprint, current_app, jsonify, request
import logging

from app.error_handlers import handle_errors
from app.extensions import db
from app.models import get_models
from app.services.patrol_plan_service import PatrolPlanService
from app.utils.validators import get_json_body, validate_date_param, validate_required_fields

logger = logging.getLogger(__name__)

patrol_plans_bp = Blueprint('patrol_plans', __name__, url_prefix='/api')


def _service():
    return PatrolPlanService.from_app(db.session, get_models(), current_app.config)


@patrol_plans_bp.route('/patrol-plans', methods=['GET'])
@handle_errors
def list_patrol_plans():
    """
    GET /api/patrol-plans?date=YYYY-MM-DD - Plans for one date

    Returns:
        {"success": true, "date": "...", "plans": [...]}
    """
    plan_date = validate_date_param(request.args.get('date'))
    plans = _service().list_plans(plan_date)
    return jsonify({'success': True, 'date': plan_date.isoformat(), 'plans': plans})


@patrol_plans_bp.route('/patrol-plans', methods=['POST'])
@handle_errors
def save_patrol_plans():
    """
    POST /api/patrol-plans - Bulk-save sites for one date, shift and route

    Request Body (JSON):
        {
            "date": "2025-03-10",
            "shift": "morning",
            "route": "A",
            "siteIds": ["S001", "S002"],
            "createdBy": "admin"
        }

    Response (JSON):
        {"success": true, "added": 2, "skipped": 0}
    """
    data = get_json_body(request)
    validate_required_fields(data, ['date', 'shift', 'route', 'siteIds'])
    result = _service().save_plans(
        data['date'], data['shift'], data['route'], data['siteIds'], data.get('createdBy', '')
    )
    return jsonify(result), 201 if result['added'] else 200


@patrol_plans_bp.route('/patrol-plans/<plan_id>', methods=['DELETE'])
@handle_errors
def delete_patrol_plan(plan_id):
    """DELETE /api/patrol-plans/<id> - 404 when the plan does not exist"""
    return jsonify(_service().delete_plan(plan_id))


@patrol_plans_bp.route('/patrol-plans/batch-delete', methods=['POST'])
@handle_errors
def batch_delete_patrol_plans():
    """POST /api/patrol-plans/batch-delete - {"ids": [...]}"""
    data = get_json_body(request)
    return jsonify(_service().delete_plans(data.get('ids')))


@patrol_plans_bp.route('/patrol-plans/clear', methods=['POST'])
@handle_errors
def clear_patrol_plans():
    """POST /api/patrol-plans/clear - {"date", "shift", "route"}"""
    data = get_json_body(request)
    validate_required_fields(data, ['date', 'shift', 'route'])
    return jsonify(_service().clear_plans(data['date'], data['shift'], data['route']))


@patrol_plans_bp.route('/patrol-plans/copy', methods=['POST'])
@handle_errors
def copy_patrol_plans():
    """
    POST /api/patrol-plans/copy - Copy plans from one date

    Request Body (JSON):
        {
            "fromDate": "2025-03-10",
            "mode": "shift" | "day" | "weekly",
            "shift": "morning",          // mode=shift
            "route": "A",                // optional filter
            "toDate": "2025-03-11",      // mode=shift or day
            "weekdays": [1, 4],          // mode=weekly, 0=Sunday
            "weeksAhead": 4,             // mode=weekly
            "createdBy": "admin"
        }
    """
    data = get_json_body(request)
    validate_required_fields(data, ['fromDate', 'mode'])
    result = _service().copy_plans(
        data['fromDate'],
        data['mode'],
        shift=data.get('shift'),
        route=data.get('route'),
        to_date=data.get('toDate'),
        weekdays=data.get('weekdays'),
        weeks_ahead=data.get('weeksAhead'),
        created_by=data.get('createdBy', ''),
    )
    return jsonify(result)


@patrol_plans_bp.route('/sites/by-route', methods=['GET'])
@handle_errors
def sites_by_route():
    """GET /api/sites/by-route?route=A - Active sites for the plan picker"""
    sites = _service().sites_by_route(request.args.get('route'))
    return jsonify({'success': True, 'sites': sites})
