"""
Business Back-Office API
Flask application for accounts, expenses and invoice approval workflows
"""

import logging
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import text
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge
import structlog
import sentry_sdk
from sentry_sdk.integrations.flask import FlaskIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from backoffice.config import Config

__version__ = '1.0.0'

# Initialize extensions
db = SQLAlchemy()
jwt = JWTManager()
cors = CORS()
limiter = Limiter(key_func=get_remote_address)
migrate = Migrate()

def create_app(config_class=Config):
    """Application factory pattern for creating Flask app."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize Sentry for error tracking
    if app.config.get('SENTRY_DSN'):
        sentry_sdk.init(
            dsn=app.config['SENTRY_DSN'],
            integrations=[
                FlaskIntegration(),
                SqlalchemyIntegration(),
            ],
            traces_sample_rate=1.0,
            environment=app.config.get('FLASK_ENV', 'production')
        )

    # Setup structured logging
    setup_logging(app)

    # Initialize extensions
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, origins=app.config.get('CORS_ORIGINS', '*'))
    limiter.init_app(app)
    migrate.init_app(app, db)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)
    register_jwt_handlers(app)

    # Register security headers
    register_security_headers(app)

    # Register health check
    register_health_check(app)

    return app

def setup_logging(app):
    """Configure structured logging for production."""
    log_level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO'))

    if app.config.get('LOG_FORMAT') == 'json':
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                structlog.processors.JSONRenderer()
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    logging.basicConfig(level=log_level)

def register_blueprints(app):
    """Register all application blueprints."""
    from backoffice.api.auth import auth_bp
    from backoffice.api.users import users_bp
    from backoffice.api.providers import providers_bp
    from backoffice.api.expense_routes import expense_bp
    from backoffice.api.invoice_routes import invoice_bp

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(users_bp, url_prefix='/users')
    app.register_blueprint(providers_bp, url_prefix='/providers')
    app.register_blueprint(expense_bp, url_prefix='/expense')
    app.register_blueprint(invoice_bp, url_prefix='/invoices')

def error_response(title, message, status_code):
    return jsonify({
        'error': title,
        'message': message,
        'status_code': status_code
    }), status_code

def register_error_handlers(app):
    """Register global error handlers."""

    @app.errorhandler(HTTPException)
    def http_error(error):
        return error_response(error.name, error.description, error.code)

    @app.errorhandler(413)
    def file_too_large(error):
        message = f'Request size exceeds maximum limit of {app.config["MAX_CONTENT_LENGTH"]} bytes'
        if isinstance(error, RequestEntityTooLarge) and error.description != RequestEntityTooLarge.description:
            message = error.description
        return error_response('File Too Large', message, 413)

    @app.errorhandler(429)
    def rate_limit_exceeded(error):
        return error_response('Rate Limit Exceeded', 'Too many requests. Please try again later.', 429)

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f'Internal server error: {str(error)}')
        description = getattr(error, 'description', None) or 'An unexpected error occurred'
        return error_response('Internal Server Error', description, 500)

def register_jwt_handlers(app):
    """Map every bearer token failure to a 401 JSON response."""

    @jwt.unauthorized_loader
    def missing_token(reason):
        return error_response('Unauthorized', reason, 401)

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return error_response('Unauthorized', f'Invalid token: {reason}', 401)

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return error_response('Unauthorized', 'Token has expired', 401)

    @jwt.revoked_token_loader
    def revoked_token(jwt_header, jwt_payload):
        return error_response('Unauthorized', 'Token has been revoked', 401)

def register_security_headers(app):
    """Add security headers to all responses."""

    @app.after_request
    def add_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'

        # HTTPS enforcement
        if app.config.get('SECURE_SSL_REDIRECT'):
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'

        return response

def register_health_check(app):
    """Register health check endpoint."""

    @app.route('/health')
    def health_check():
        """Health check endpoint for load balancers and monitoring."""
        try:
            db.session.execute(text('SELECT 1'))
            db_status = 'healthy'
        except Exception as e:
            app.logger.error(f'Database health check failed: {str(e)}')
            db_status = 'unhealthy'

        structlog.get_logger().info('Health check requested', database=db_status)

        health_data = {
            'status': 'healthy' if db_status == 'healthy' else 'unhealthy',
            'services': {
                'database': db_status,
                'application': 'healthy'
            },
            'version': __version__
        }

        status_code = 200 if health_data['status'] == 'healthy' else 503
        return jsonify(health_data), status_code
