"""
Utility modules for the patrol compliance dashboard
"""
from .timezone import to_local_naive, local_today
from .validators import validate_date_param, validate_required_fields

__all__ = [
    'to_local_naive', 'local_today',
    'validate_date_param', 'validate_required_fields',
]
