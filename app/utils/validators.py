"""
Validation utilities for the patrol compliance API
Provides reusable request-parameter checks for plan and compliance endpoints
"""
from datetime import datetime, date
from typing import Any, Dict, List, Optional

from app.error_handlers.exceptions import ValidationException


def validate_date_param(date_str: Optional[str], param_name: str = 'date') -> date:
    """
    Validate and parse date parameter from string.

    Args:
        date_str: Date string in YYYY-MM-DD format
        param_name: Name of parameter for error messages (default: 'date')

    Returns:
        date: Parsed date object

    Raises:
        ValidationException: If the parameter is missing or malformed

    Examples:
        >>> validate_date_param('2025-10-15')
        date(2025, 10, 15)
    """
    if not date_str:
        raise ValidationException(f"Missing required parameter: {param_name}", details={'field': param_name})
    try:
        return datetime.strptime(str(date_str).strip(), '%Y-%m-%d').date()
    except ValueError:
        raise ValidationException(
            f"Invalid {param_name} format. Use YYYY-MM-DD (e.g., 2025-10-15)",
            details={'field': param_name}
        )


def validate_required_fields(data: Dict[str, Any], required_fields: List[str]) -> None:
    """
    Validate that all required fields are present in request data.

    Raises:
        ValidationException: If any required field is missing
    """
    missing = [field for field in required_fields if data.get(field) in (None, '')]
    if missing:
        raise ValidationException(
            f"Missing required fields: {', '.join(missing)}",
            details={'missing_fields': missing}
        )


def get_json_body(request) -> Dict[str, Any]:
    """Return the request's JSON object body or raise ValidationException."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationException("Request body must be a JSON object")
    return data
