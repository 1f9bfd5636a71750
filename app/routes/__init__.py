"""
Routes package for the patrol compliance dashboard
Centralizes all route blueprints
"""
from .patrol_plans import patrol_plans_bp
from .compliance import compliance_bp
from .health import health_bp

__all__ = [
    'patrol_plans_bp',
    'compliance_bp',
    'health_bp',
]
