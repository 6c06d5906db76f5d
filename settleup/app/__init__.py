"""
app/__init__.py: Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time, so tests can build as many
         isolated app instances as they need.

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure logging from LOG_LEVEL
  3. Build the shared CurrencyConverter (rate cache lives for the app's lifetime)
  4. Register all route blueprints under /api/v1
  5. Register global error handlers (AppError → JSON, Exception → 500)
  6. Register a custom JSON provider to serialise Decimal as string
     (monetary amounts are transmitted as strings, never JS numbers)

The app is stateless: every request carries the members and expenses it
needs, and nothing is written anywhere.
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal
from functools import partial

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from settleup.config import active_config_name, config_by_name, validate_production_config


CONVERTER_EXTENSION_KEY = "settleup.converter"


# ── Custom JSON provider ───────────────────────────────────────────────────

class DecimalJSONProvider(DefaultJSONProvider):
    """
    Extends Flask's default JSON provider to serialise Decimal as str.

    Example: Decimal("10.50") → "10.50" (not 10.5 or 10.500000001)
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str | None = None) -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to FLASK_ENV, then "development".
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    if config_name is None:
        config_name = active_config_name()
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)
    _init_converter(app)

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)

    return app


def _configure_logging(app: Flask) -> None:
    """Applies LOG_LEVEL to the app logger and to the settleup package loggers."""
    level = logging.getLevelName(app.config.get("LOG_LEVEL", "INFO"))
    if not isinstance(level, int):
        level = logging.INFO
    app.logger.setLevel(level)
    logging.getLogger("settleup").setLevel(level)


def _init_converter(app: Flask) -> None:
    """
    One CurrencyConverter per app, stored in app.extensions.

    Tests replace it with a converter wrapping a fake fetcher:
        app.extensions[CONVERTER_EXTENSION_KEY] = CurrencyConverter(fetcher=fake)
    """
    from settleup.app.services.conversion_service import (
        CurrencyConverter,
        RateCache,
        fetch_exchange_rate,
    )

    fetcher = partial(
        fetch_exchange_rate,
        api_url=app.config["EXCHANGE_RATE_API_URL"],
        timeout=app.config["EXCHANGE_RATE_TIMEOUT_SECONDS"],
    )
    cache = RateCache(ttl_seconds=app.config["EXCHANGE_RATE_CACHE_TTL_SECONDS"])
    app.extensions[CONVERTER_EXTENSION_KEY] = CurrencyConverter(fetcher=fetcher, cache=cache)


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api/v1 prefix.

    Route files spell out their resource path ("/splits/<method>",
    "/balances", ...) so every URL can be read straight from the decorator.
    """
    from settleup.app.routes.balances import balances_bp
    from settleup.app.routes.conversions import conversions_bp
    from settleup.app.routes.currencies import currencies_bp
    from settleup.app.routes.settlements import settlements_bp
    from settleup.app.routes.splits import splits_bp

    for blueprint in (splits_bp, balances_bp, settlements_bp, conversions_bp, currencies_bp):
        app.register_blueprint(blueprint, url_prefix="/api/v1")


def _first_validation_error(messages, path: tuple = ()) -> tuple[str | None, str]:
    """
    Walks marshmallow's (possibly nested) messages and returns the first
    (dotted field path, message) pair, e.g. ("expenses.0.amount", "...").
    """
    if isinstance(messages, dict):
        for key, value in messages.items():
            next_path = path if key == "_schema" else path + (str(key),)
            return _first_validation_error(value, next_path)
    if isinstance(messages, list) and messages:
        first = messages[0]
        if isinstance(first, (dict, list)):
            return _first_validation_error(first, path)
        return (".".join(path) or None), str(first)
    return (".".join(path) or None), "Invalid input."


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

      AppError        → structured JSON error envelope with the correct HTTP status
      ValidationError → first marshmallow field error as MISSING_FIELD /
                        INVALID_FIELD / a registered code (400)
      HTTPException   → routing errors (404, 405, ...) in the same envelope
      Exception       → generic INTERNAL_ERROR (500); traceback logged only

    Stack traces never leave the server.
    """
    from settleup.app.errors import AppError, ErrorCode

    registered_codes = {
        value for name, value in vars(ErrorCode).items() if not name.startswith("_")
    }

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """Routes never catch AppError; they let it propagate here."""
        if error.http_status >= 500:
            app.logger.error("%r", error)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        field, raw_message = _first_validation_error(error.messages)

        if raw_message in registered_codes:
            code = raw_message
            message = _code_to_message(code)
        elif raw_message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
            message = raw_message
        else:
            code = ErrorCode.INVALID_FIELD
            message = raw_message

        response_body = {"error": {"code": code, "message": message}}
        if field is not None:
            response_body["error"]["field"] = field
        return jsonify(response_body), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        if error.code == 404:
            code = ErrorCode.NOT_FOUND
        elif error.code == 405:
            code = ErrorCode.METHOD_NOT_ALLOWED
        else:
            code = ErrorCode.INVALID_FIELD
        return jsonify({"error": {"code": code, "message": error.description}}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
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


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development.

    Enabled when DEBUG or TESTING is true so a frontend served from another
    local port can call the API.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all:
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"

        return response


def _code_to_message(code: str) -> str:
    """
    Human-readable default message for a registered code raised as a bare
    ValidationError message in a schema.
    """
    _messages = {
        "INVALID_CATEGORY": "The category value is not valid.",
        "INVALID_SPLIT_METHOD": "split_method must be one of: equal, unequal, percentage, shares.",
        "INVALID_CURRENCY": "The currency code is not a supported ISO 4217 code.",
        "DUPLICATE_SPLIT_MEMBER": "The same member_id appears more than once in the splits array.",
        "DUPLICATE_MEMBER": "The same member id appears more than once in members.",
    }
    return _messages.get(code, "Invalid input.")
