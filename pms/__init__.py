from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException
from .extensions import db, migrate, bcrypt, jwt
import logging
import os

# Setup basic logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """Create Flask application factory"""
    app = Flask(__name__)

    # Load configuration
    from pms.config import config, get_config
    config_class = config.get(config_name, config['default']) if config_name else get_config()
    if hasattr(config_class, 'validate'):
        config_class.validate()
    app.config.from_object(config_class)

    logging.getLogger().setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    bcrypt.init_app(app)
    jwt.init_app(app)

    # Initialize CORS
    from pms.utils.cors import init_cors
    init_cors(app)

    register_jwt_handlers()
    register_error_handlers(app)

    # Setup file logging
    if not app.debug and not app.testing:
        from logging.handlers import RotatingFileHandler

        log_dir = app.config['LOG_DIR']
        os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            os.path.join(log_dir, app.config['LOG_FILE']),
            maxBytes=10240000,
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)
        app.logger.setLevel(logging.INFO)
        app.logger.info('Application startup')

    @app.before_request
    def log_request():
        """Log requests outside debug mode"""
        if not app.debug:
            logger.info(f"{request.method} {request.path} - {request.remote_addr}")

    # Security headers middleware
    @app.after_request
    def set_security_headers(response):
        """Add security headers to all responses"""
        if not app.debug:
            response.headers['X-Content-Type-Options'] = 'nosniff'
            response.headers['X-Frame-Options'] = 'DENY'
            response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
            # Only add HSTS if using HTTPS
            if request.is_secure:
                response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response

    # Import models to register them with SQLAlchemy
    with app.app_context():
        from .models import Patient, Appointment, User, BillingRecord, AuditLog  # noqa: F401

        # Register blueprints
        from .routes import users_bp, patient_bp, appointment_bp, billing_bp, health_bp
        app.register_blueprint(health_bp)  # Register health check first
        app.register_blueprint(users_bp)
        app.register_blueprint(patient_bp)
        app.register_blueprint(appointment_bp)
        app.register_blueprint(billing_bp)

    register_commands(app)

    return app


def register_jwt_handlers():
    """Every token problem is answered with 401 in the API's error shape"""
    from pms.utils.rejections import unauthorized

    @jwt.unauthorized_loader
    def missing_token(reason):
        return unauthorized('Authentication required').to_response()

    @jwt.invalid_token_loader
    def invalid_token(reason):
        logger.info("Rejected invalid token: %s", reason)
        return unauthorized('Invalid token').to_response()

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return unauthorized('Token has expired').to_response()

    @jwt.revoked_token_loader
    def revoked_token(jwt_header, jwt_payload):
        return unauthorized('Token has been revoked').to_response()


def register_error_handlers(app):
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'error': 'Endpoint not found'
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            'success': False,
            'error': 'Method not allowed'
        }), 405

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal Server Error: {error}", exc_info=True)
        db.session.rollback()
        return jsonify({
            'success': False,
            'error': 'Internal server error. Check server logs for details.'
        }), 500

    @app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            return jsonify({
                'success': False,
                'error': e.description
            }), e.code
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        db.session.rollback()
        return jsonify({
            'success': False,
            'error': 'Internal server error. Check server logs for details.'
        }), 500


def register_commands(app):
    @app.cli.command('seed-users')
    def seed_users_command():
        """Create the default admin account if it does not exist."""
        from pms.seeds import seed_default_users

        created = seed_default_users()
        print(f"Created {len(created)} user(s): {', '.join(created) or '-'}")
