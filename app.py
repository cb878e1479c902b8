"""
Flask application entry point for the FridayGT race organiser API.
"""
import logging
import os
import sqlite3

from flask import Flask, jsonify
from flask_login import LoginManager
from flask_wtf.csrf import CSRFError, CSRFProtect
from sqlalchemy import event as sa_event
from sqlalchemy.engine import Engine
from werkzeug.exceptions import HTTPException

import config
import strings as text
from database import db, init_db
from services.errors import ApiError
from services.logging_setup import configure_error_monitoring, configure_logging

logger = logging.getLogger(__name__)

csrf = CSRFProtect()
login_manager = LoginManager()


@sa_event.listens_for(Engine, 'connect')
def _set_sqlite_pragma(dbapi_connection, connection_record):
    # ondelete CASCADE / SET NULL rely on this under SQLite
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


def _error_response(status_code: int, reason: str, message: str, headers: dict | None = None):
    response = jsonify({'success': False, 'error': reason, 'message': message})
    response.status_code = status_code
    if headers:
        response.headers.update(headers)
    return response


def create_app(config_object=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object or config.get_config())
    config.validate_runtime(app.config)
    configure_logging(bool(app.config.get('STRUCTURED_LOGGING', True)))
    configure_error_monitoring(app.config.get('SENTRY_DSN', ''))

    # Initialize database
    init_db(app)

    csrf.init_app(app)
    login_manager.init_app(app)

    from models.user import User

    @login_manager.user_loader
    def load_user(user_id: str):
        if not user_id:
            return None
        return db.session.get(User, user_id)

    @app.errorhandler(ApiError)
    def handle_api_error(exc: ApiError):
        return _error_response(exc.status_code, exc.reason, exc.message, exc.headers)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(exc: CSRFError):
        return _error_response(400, text.CSRF_FAILED, text.message(text.CSRF_FAILED))

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        reason = text.NOT_FOUND if exc.code == 404 else (exc.name or 'error').lower().replace(' ', '_')
        return _error_response(exc.code or 500, reason, exc.description or exc.name)

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        db.session.rollback()
        logger.exception('Unhandled error')
        return _error_response(500, text.INTERNAL_ERROR, text.message(text.INTERNAL_ERROR))

    # Register blueprints
    from routes.auth import auth_bp, profile_bp
    from routes.admin import admin_bp
    from routes.races import races_bp
    from routes.run_lists import run_lists_bp
    from routes.catalog import catalog_bp
    from routes.lap_times import lap_times_bp
    from routes.notes import notes_bp

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(profile_bp, url_prefix='/api/user')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    app.register_blueprint(races_bp, url_prefix='/api')
    app.register_blueprint(run_lists_bp, url_prefix='/api')
    app.register_blueprint(catalog_bp, url_prefix='/api')
    app.register_blueprint(lap_times_bp, url_prefix='/api')
    app.register_blueprint(notes_bp, url_prefix='/api')

    return app


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    app = create_app()
    app.run(host='0.0.0.0', port=port, debug=False)
