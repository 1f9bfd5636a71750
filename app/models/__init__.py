"""
Database models for the patrol compliance dashboard
Centralizes all SQLAlchemy model imports using factory pattern
"""
from .site import create_site_model
from .inspector import create_inspector_model
from .patrol_plan import create_patrol_plan_model
from .inspection_log import create_inspection_log_model


def init_models(db):
    """
    Initialize all models with the database instance

    Args:
        db: SQLAlchemy database instance

    Returns:
        dict: Dictionary containing all model classes
    """
    Site = create_site_model(db)
    Inspector = create_inspector_model(db)
    PatrolPlan = create_patrol_plan_model(db)
    InspectionLog = create_inspection_log_model(db)

    return {
        'Site': Site,
        'Inspector': Inspector,
        'PatrolPlan': PatrolPlan,
        'InspectionLog': InspectionLog,
    }


__all__ = [
    'init_models',
    'create_site_model',
    'create_inspector_model',
    'create_patrol_plan_model',
    'create_inspection_log_model',
    # Model registry exports
    'model_registry',
    'get_models',
]

# Import registry for convenience
from .registry import model_registry, get_models
