"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables:
           - Multiple isolated test app instances
           - Clean separation between app creation and app startup
           - Alembic to import the models without starting the server

Responsibilities:
  1. Load configuration from config_by_name[config_name] and fail fast if the
     signing key (or database URL) is missing
  2. Initialise SQLAlchemy via init_app()
  3. Register all route blueprints under /api/v1
  4. Build the security pipeline, in request order:
       authentication hook → route policy hook → (per route) ownership guard
     and validate its wiring (policy table entries, guarded route arguments)
  5. Register global error handlers (AppError → JSON, Exception → 500)

Startup fails with ValueError / RoutePolicyError / MissingResourceId rather
than serving requests with a broken security configuration.
"""

from __future__ import annotations

import logging
import traceback

from flask import Flask, jsonify, request
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from tasklist.config import config_by_name, validate_config


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".

    Returns:
        A fully configured Flask app ready to serve requests.
    """
    app = Flask(__name__)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)
    validate_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from tasklist.app.extensions import db
    db.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    # Populates SQLAlchemy's MetaData for create_all() and Alembic.
    with app.app_context():
        from tasklist.app.models import account, task  # noqa: F401

    # ── Blueprints ─────────────────────────────────────────────────────────
    _register_blueprints(app)

    # ── Security pipeline ──────────────────────────────────────────────────
    _register_security(app)

    # ── Error handlers ─────────────────────────────────────────────────────
    _register_error_handlers(app)

    return app


def _configure_logging(app: Flask) -> None:
    """Applies LOG_LEVEL to the app logger and the tasklist package loggers."""
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO
    app.logger.setLevel(level)
    logging.getLogger("tasklist").setLevel(level)


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api/v1 prefix.

    The url_prefix is set here so individual route files only specify
    the path relative to their resource (e.g. "/" and "/<int:id>").
    """
    from tasklist.app.routes.accounts import accounts_bp
    from tasklist.app.routes.tasks import tasks_bp

    app.register_blueprint(accounts_bp, url_prefix="/api/v1/accounts")
    app.register_blueprint(tasks_bp,    url_prefix="/api/v1/tasks")


def _register_security(app: Flask) -> None:
    """
    Builds the process-wide security objects once and installs the hooks.

    Hook order matters: Flask runs before_request functions in registration
    order, so authentication always populates the context before the route
    policy reads it.
    """
    from tasklist.app.extensions import db
    from tasklist.app.middleware import auth_middleware, route_policy
    from tasklist.app.middleware.auth_middleware import AuthenticationMiddleware
    from tasklist.app.middleware.ownership import validate_ownership_wiring
    from tasklist.app.middleware.route_policy import ROUTE_POLICY, RoutePolicy
    from tasklist.app.services import account_service
    from tasklist.app.services.token_service import build_token_service, register_token_service

    tokens = build_token_service(app.config)
    register_token_service(app, tokens)

    middleware = AuthenticationMiddleware(
        token_service=tokens,
        find_account=lambda identifier: account_service.find_active_account_by_login_identifier(
            identifier, db.session
        ),
    )

    auth_middleware.init_app(app, middleware)
    route_policy.init_app(app, RoutePolicy(ROUTE_POLICY))
    validate_ownership_wiring(app)


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → structured JSON error envelope with the correct HTTP status
      ValidationError → marshmallow schema errors formatted as MISSING_FIELD /
                        INVALID_FIELD responses (400)
      HTTPException   → werkzeug routing errors (404, 405, ...) in the same envelope
      Exception       → generic INTERNAL_ERROR (500); full traceback logged

    Stack traces never leave the server. Neither does the reason a token
    was rejected: every authentication failure is UNAUTHENTICATED.
    """
    from tasklist.app.errors import AppError, ErrorCode

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle
        (hooks, guards, services, routes) into the standard error envelope.

        Routes never catch AppError — they let it propagate here.
        """
        if error.http_status >= 500:
            app.logger.error(
                "%s on %s %s: %s",
                error.code,
                request.method,
                request.path,
                error.__cause__ or error.message,
                exc_info=error,
            )
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Converts marshmallow ValidationError into the standard error envelope.

        Marshmallow raises ValidationError with a messages dict keyed by field
        name. We return the FIRST error only.
        """
        messages = error.messages  # e.g. {"note": ["Missing data for required field."]}

        field = None
        raw_message = "Invalid input."

        if isinstance(messages, dict):
            for field_name, field_errors in messages.items():
                field = field_name if field_name != "_schema" else None
                if isinstance(field_errors, list):
                    raw_message = field_errors[0] if field_errors else "Invalid value."
                else:
                    raw_message = str(field_errors)
                break
        elif isinstance(messages, list):
            raw_message = messages[0] if messages else "Invalid input."

        if str(raw_message).startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
        else:
            code = ErrorCode.INVALID_FIELD

        response_body = {
            "error": {
                "code": code,
                "message": str(raw_message),
            }
        }
        if field is not None:
            response_body["error"]["field"] = field

        return jsonify(response_body), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        """Werkzeug errors (unknown URL, wrong method, ...) in the standard envelope."""
        codes = {
            404: ErrorCode.NOT_FOUND,
            405: ErrorCode.METHOD_NOT_ALLOWED,
        }
        status = error.code or 500
        if status < 400:
            # Routing redirects (e.g. missing trailing slash) pass through untouched.
            return error
        return jsonify({
            "error": {
                "code": codes.get(status, ErrorCode.HTTP_ERROR),
                "message": error.description or error.name,
            }
        }), status

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.

        The full traceback is logged to the application logger. Stack traces
        NEVER leave the server in the response body.
        """
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500
