"""
Flask application factory.

This module implements the application factory pattern for creating
Flask application instances with different configurations.
"""

from flask import Flask, request
from flask_wtf.csrf import generate_csrf
import os
from datetime import datetime

from .extensions import db, csrf, limiter
from .config import get_config


def create_app(config_name=None):
    """
    Application factory function.

    Args:
        config_name: Configuration name (development, testing, production)
                    If None, determined from environment

    Returns:
        Flask application instance
    """
    app = Flask(__name__)

    # Apply ProxyFix for correct IP and scheme handling behind reverse proxies
    from werkzeug.middleware.proxy_fix import ProxyFix
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    # Load configuration
    config_class = get_config(config_name, validate=(config_name == 'production'))
    app.config.from_object(config_class)
    app.config['VERSION'] = datetime.now().strftime('%Y%m%d%H%M%S')

    # Ensure instance directory exists
    basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    os.makedirs(os.path.join(basedir, "instance"), exist_ok=True)

    # Update database URI to use absolute path
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite:///instance/'):
        db_file = app.config['SQLALCHEMY_DATABASE_URI'][len('sqlite:///instance/'):]
        app.config['SQLALCHEMY_DATABASE_URI'] = f'sqlite:///{os.path.join(basedir, "instance", db_file)}'

    # Initialize extensions (Flask-Limiter reads RATELIMIT_* from app.config)
    db.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # Configure logging and error handling
    from app.error_handlers import setup_logging, register_error_handlers
    setup_logging(app)
    register_error_handlers(app)

    # Initialize database models
    from app.models import init_models, model_registry
    models = init_models(db)

    model_registry.init_app(app)
    model_registry.register(models)

    register_blueprints(app)
    setup_request_handlers(app)

    app.logger.info(f"Patrol compliance app created (config={config_class.__name__})")
    return app


def register_blueprints(app):
    """Register all Flask blueprints."""
    from app.routes import patrol_plans_bp, compliance_bp, health_bp

    app.register_blueprint(patrol_plans_bp)
    app.register_blueprint(compliance_bp)
    app.register_blueprint(health_bp)

    # Probes are polled by the orchestrator
    limiter.exempt(health_bp)


def setup_request_handlers(app):
    """Setup request and response handlers."""

    @app.after_request
    def add_csrf_token_cookie(response):
        """
        Add CSRF token to cookie for AJAX requests.
        The dashboard's JavaScript echoes it back in the X-CSRFToken header on
        every POST/DELETE to the plan endpoints.
        """
        if request.endpoint and not request.endpoint.startswith(('static', 'health.')):
            response.set_cookie(
                'csrf_token',
                generate_csrf(),
                secure=app.config.get('SESSION_COOKIE_SECURE', False),
                httponly=False,
                samesite='Lax'
            )
        return response


def init_db(app):
    """Create all tables."""
    with app.app_context():
        db.create_all()
