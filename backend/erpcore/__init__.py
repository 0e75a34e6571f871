# backend/erpcore/__init__.py
import logging

from flask import Flask, current_app, jsonify
from werkzeug.exceptions import HTTPException

from .config import Config, _sqlite_engine_options
from .extensions import db, migrate
from .services.document_service import SequenceConflictError, UnknownDocumentTypeError
from .services.scoped_store import RecordNotFoundError
from .services.tenant_service import CrossTenantAccessError, MissingTenantError
from .tenant_context import clear_tenant_context, current_tenant_context
from .validation import ValidationError


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(MissingTenantError)
    def handle_missing_tenant(exc):
        current_app.logger.error("Request reached the store without a tenant: %s", exc)
        return jsonify({"error": "Tenant context not established"}), 500

    @app.errorhandler(CrossTenantAccessError)
    def handle_cross_tenant(exc):
        db.session.rollback()
        return jsonify({"error": str(exc)}), 404

    @app.errorhandler(RecordNotFoundError)
    def handle_not_found(exc):
        db.session.rollback()
        return jsonify({"error": str(exc)}), 404

    @app.errorhandler(UnknownDocumentTypeError)
    def handle_unknown_document_type(exc):
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(SequenceConflictError)
    def handle_sequence_conflict(exc):
        current_app.logger.warning("Document number allocation failed: %s", exc)
        return jsonify({"error": str(exc)}), 409

    @app.errorhandler(ValidationError)
    def handle_validation(exc):
        db.session.rollback()
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(HTTPException)
    def handle_http(exc):
        return jsonify({"error": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        db.session.rollback()
        current_app.logger.exception("Unhandled error")
        return jsonify({"error": "Internal server error"}), 500


def _annotate_branch_filter(response):
    """Successful JSON object responses report which branch filter was applied."""
    if not (200 <= response.status_code < 300) or not response.is_json:
        return response

    context = current_tenant_context()
    if not context.has_tenant:
        return response

    data = response.get_json(silent=True)
    if isinstance(data, dict):
        data["applied_branch_filter"] = context.branch_id
        response.set_data(current_app.json.dumps(data))
    return response


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)
        if "SQLALCHEMY_DATABASE_URI" in config_overrides and "SQLALCHEMY_ENGINE_OPTIONS" not in config_overrides:
            app.config["SQLALCHEMY_ENGINE_OPTIONS"] = _sqlite_engine_options(
                app.config["SQLALCHEMY_DATABASE_URI"]
            )

    app.logger.setLevel(app.config["LOG_LEVEL"])
    logging.getLogger("erpcore").setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.clients import clients_bp
    from .routes.purchase_orders import purchase_orders_bp
    from .routes.grns import grns_bp
    from .routes.invoices import invoices_bp
    from .routes.settings import settings_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(clients_bp)
    app.register_blueprint(purchase_orders_bp)
    app.register_blueprint(grns_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(settings_bp)

    _register_error_handlers(app)

    app.after_request(_annotate_branch_filter)

    @app.teardown_request
    def drop_tenant_context(exc):
        clear_tenant_context()

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
