# tipkoro/__init__.py
import os
import logging
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()

logger = logging.getLogger(__name__)

PAYMENT_MODES = ('gateway', 'simulated')


def configure_logging(app):
    """Root logging: console always, file when LOG_FILE is set"""
    handlers = [logging.StreamHandler()]

    log_file = app.config.get('LOG_FILE')
    if log_file:
        os.makedirs(os.path.dirname(log_file) or '.', exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def register_error_handlers(app):
    from tipkoro.services.errors import ServiceError

    @app.errorhandler(ServiceError)
    def handle_service_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        if isinstance(error, HTTPException):
            return jsonify({'error': error.description}), error.code

        db.session.rollback()
        logger.exception(f"Unhandled error: {error}")
        return jsonify({'error': 'Internal server error'}), 500


def create_app(config_object='config.Config'):
    app = Flask(__name__)
    app.config.from_object(config_object)

    if app.config['PAYMENT_MODE'] not in PAYMENT_MODES:
        raise ValueError(f"PAYMENT_MODE must be one of {PAYMENT_MODES}, got {app.config['PAYMENT_MODE']!r}")

    configure_logging(app)

    # Extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    CORS(app)

    # Bearer-token auth (see tipkoro.utils.security)
    from tipkoro.utils import security  # noqa: F401  registers the request loader

    register_error_handlers(app)

    # Blueprints
    from tipkoro.routes import auth, public, api, dashboard, admin, webhooks
    app.register_blueprint(auth.bp)
    app.register_blueprint(public.bp)
    app.register_blueprint(api.bp)
    app.register_blueprint(dashboard.bp)
    app.register_blueprint(admin.bp)
    app.register_blueprint(webhooks.bp)

    from tipkoro import cli
    cli.register_commands(app)

    os.makedirs(app.instance_path, exist_ok=True)

    logger.info(f"TipKoro started (payment mode: {app.config['PAYMENT_MODE']})")
    return app
