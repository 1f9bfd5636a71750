"""
Unified Error Handling System

Provides centralized, consistent error handling across the application.

Usage:
    from app.error_handlers import handle_errors
    from app.error_handlers.exceptions import ValidationException

    @compliance_bp.route('/')
    @handle_errors
    def day_compliance():
        if not date_str:
            raise ValidationException('Date is required')
        return jsonify(result)
"""
from .exceptions import (
    AppException,
    ValidationException,
    InvalidRangeException,
    ResourceNotFoundException,
    UpstreamUnavailableException
)
from .decorators import handle_errors


__all__ = [
    # Exceptions
    'AppException',
    'ValidationException',
    'InvalidRangeException',
    'ResourceNotFoundException',
    'UpstreamUnavailableException',
    # Decorators
    'handle_errors',
    # Setup
    'setup_logging',
    'register_error_handlers',
    'log_upstream_failure',
]


def setup_logging(app):
    """Configure application logging"""
    from app.error_handlers import logging as eh_logging
    return eh_logging.setup_logging(app)


def register_error_handlers(app):
    """Register global error handlers for the Flask app"""
    from app.error_handlers import logging as eh_logging
    eh_logging.register_error_handlers(app)


def log_upstream_failure(operation, error, context=None):
    """Log a store read failure and return its descriptor"""
    from app.error_handlers import logging as eh_logging
    return eh_logging.log_upstream_failure(operation, error, context)
