"""
Patrol Compliance API Blueprint
Day compliance, multi-day statistics and per-inspector route reconstruction
"""
from flask import Blueprint, current_app, jsonify, request
import logging

from app.error_handlers import handle_errors
from app.error_handlers.exceptions import ValidationException
from app.extensions import db, limiter
from app.models import get_models
from app.services.compliance_matcher import ComplianceService
from app.services.compliance_range import RangeAggregator
from app.services.inspector_route import InspectorRouteReconstructor
from app.utils.validators import validate_date_param

logger = logging.getLogger(__name__)

compliance_bp = Blueprint('compliance', __name__, url_prefix='/api/patrol-compliance')


def _range_limit():
    return current_app.config.get('RATELIMIT_RANGE', '30 per minute')


def _compliance_service():
    return ComplianceService.from_app(db.session, get_models(), current_app.config)


@compliance_bp.route('', methods=['GET'])
@handle_errors
def day_compliance():
    """
    GET /api/patrol-compliance?date=YYYY-MM-DD

    Response (JSON):
        {
            "success": true,
            "date": "2025-03-10",
            "status": "ok" | "unavailable",
            "plans": [...], "visited": [...], "missed": [...], "unplanned": [...],
            "summary": {totalPlanned, totalVisited, totalMissed, totalUnplanned, complianceRate},
            "errors": [...]
        }
    """
    day = validate_date_param(request.args.get('date'))
    result = _compliance_service().get_day_compliance(day)
    return jsonify({'success': True, **result.to_dict()})


@compliance_bp.route('/range', methods=['GET'])
@limiter.limit(_range_limit)
@handle_errors
def range_compliance():
    """
    GET /api/patrol-compliance/range?start=YYYY-MM-DD&end=YYYY-MM-DD&route=A|B|ALL

    Returns 400 (InvalidRange) for reversed ranges or ranges over the day cap.
    """
    start = validate_date_param(request.args.get('start'), 'start')
    end = validate_date_param(request.args.get('end'), 'end')
    aggregator = RangeAggregator(
        _compliance_service(),
        max_range_days=current_app.config.get('PATROL_MAX_RANGE_DAYS', 31),
        most_missed_limit=current_app.config.get('PATROL_MOST_MISSED_LIMIT', 10),
    )
    stats = aggregator.aggregate(start, end, request.args.get('route'))
    return jsonify({'success': True, **stats})


@compliance_bp.route('/inspector-route', methods=['GET'])
@limiter.limit(_range_limit)
@handle_errors
def inspector_route():
    """
    GET /api/patrol-compliance/inspector-route?inspector=NAME&start=YYYY-MM-DD&end=YYYY-MM-DD
    """
    inspector = (request.args.get('inspector') or '').strip()
    if not inspector:
        raise ValidationException('Missing required parameter: inspector', details={'field': 'inspector'})
    start = validate_date_param(request.args.get('start'), 'start')
    end = validate_date_param(request.args.get('end'), 'end')
    reconstructor = InspectorRouteReconstructor(
        _compliance_service(),
        max_range_days=current_app.config.get('PATROL_MAX_RANGE_DAYS', 31),
    )
    route = reconstructor.reconstruct(inspector, start, end)
    return jsonify({'success': True, **route})
