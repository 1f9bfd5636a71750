"""
WSGI Entry Point for Production Deployment
Patrol compliance dashboard

Usage with Gunicorn:
    gunicorn --config gunicorn_config.py wsgi:app
"""
import os

from sqlalchemy.exc import SQLAlchemyError

# Set production environment if not already set
if 'FLASK_ENV' not in os.environ:
    os.environ['FLASK_ENV'] = 'production'

from app import create_app, init_db

app = create_app(os.environ['FLASK_ENV'])

# Create tables on first start
try:
    init_db(app)
except SQLAlchemyError as e:
    app.logger.warning(f"Database initialization skipped or failed: {e}")

# This is the WSGI application object
application = app

if __name__ == "__main__":
    # Local runs only; production goes through Gunicorn
    app.run(debug=True, host='0.0.0.0', port=5000)
