"""
Custom exception hierarchy for type-safe error handling

Provides a structured exception hierarchy that maps to HTTP status codes
and enables consistent error responses across the patrol dashboard API.

Usage:
    from app.error_handlers.exceptions import ValidationException

    def save_plans(date, shift, route, site_ids):
        if not site_ids:
            raise ValidationException('At least one site is required')

Exception Hierarchy:
    AppException (base)
    ├── ValidationException (400)
    │   └── InvalidRangeException (400)
    ├── ResourceNotFoundException (404)
    └── UpstreamUnavailableException (503)
"""
from typing import Dict, Any, Optional


class AppException(Exception):
    """
    Base exception for all application errors

    All custom exceptions should inherit from this class to enable
    consistent error handling and response formatting.

    Attributes:
        status_code: HTTP status code for the error
        error_type: String identifier for the error type
        message: Human-readable error message
        details: Additional context about the error
    """
    status_code = 500
    error_type = 'ApplicationError'

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize application exception

        Args:
            message: Human-readable error message
            status_code: Optional HTTP status code override
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to JSON-serializable dictionary

        Returns:
            Dictionary suitable for JSON response
        """
        result = {
            'success': False,
            'error': self.error_type,
            'message': self.message,
            'status_code': self.status_code
        }

        if self.details:
            result.update(self.details)

        return result

    def __str__(self) -> str:
        return f"{self.error_type}: {self.message}"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}('{self.message}', status_code={self.status_code})>"


class ValidationException(AppException):
    """
    Validation errors (HTTP 400)

    Raised when request data fails validation checks.

    Example:
        >>> if shift not in SHIFTS:
        ...     raise ValidationException(f'Unknown shift: {shift}')
    """
    status_code = 400
    error_type = 'ValidationError'


class InvalidRangeException(ValidationException):
    """
    Date range rejected (HTTP 400)

    Raised by the range aggregator and the inspector route reconstructor
    before any per-day work when the requested window is reversed or wider
    than the configured cap.

    Example:
        >>> raise InvalidRangeException('Date range cannot exceed 31 days',
        ...                             details={'days': 32, 'maxDays': 31})
    """
    error_type = 'InvalidRange'


class ResourceNotFoundException(AppException):
    """
    Resource not found (HTTP 404)

    Example:
        >>> plan = store.get(plan_id)
        >>> if not plan:
        ...     raise ResourceNotFoundException(f'Plan not found: {plan_id}')
    """
    status_code = 404
    error_type = 'NotFound'


class UpstreamUnavailableException(AppException):
    """
    Plan Store / Visit Log Source read failure (HTTP 503)

    Raised by the data sources when the underlying table cannot be read.
    The compliance service absorbs it and returns a degraded result, so it
    only reaches HTTP callers through plan maintenance endpoints.
    """
    status_code = 503
    error_type = 'UpstreamUnavailable'
