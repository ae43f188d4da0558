"""Flask application configuration and blueprint registration."""

from __future__ import annotations

import time
from typing import Any, Dict

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from pagetranslate.ai.exceptions import AuthError, InvalidRequest
from pagetranslate.ai.providers import TranslationClient
from pagetranslate.logger import get_logger

from .routes.openai import openai_bp
from .routes.batch import batch_bp

logger = get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def build_app(config: Dict[str, Any], translator: TranslationClient) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Ensure JSON responses keep Unicode data.
    app.json.ensure_ascii = False
    app.config["PAGETRANSLATE"] = config
    app.extensions["pagetranslate.translator"] = translator

    register_request_hooks(app)
    register_blueprints(app)
    register_default_routes(app)
    register_error_handlers(app)

    return app


def register_request_hooks(app: Flask) -> None:
    """CORS, preflight and per-request timing."""

    @app.before_request
    def before_request():
        g.request_started = time.perf_counter()
        if request.method == "OPTIONS":
            return "", 204

    @app.after_request
    def after_request(response):
        response.headers.update(CORS_HEADERS)
        started = getattr(g, "request_started", None)
        if started is not None:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(f"{request.method} {request.path} - {elapsed_ms:.0f}ms")
        return response


def register_blueprints(app: Flask) -> None:
    """Register Flask blueprints."""
    app.register_blueprint(openai_bp, url_prefix="/v1")
    app.register_blueprint(batch_bp, url_prefix="/v1")


def register_default_routes(app: Flask) -> None:
    """Register default health and index routes."""

    @app.get("/health")
    def health_check():
        logger.debug("Health check requested")
        return jsonify({"status": "ok"})

    @app.get("/")
    def home():
        settings = app.config["PAGETRANSLATE"]
        return jsonify(
            {
                "message": (
                    f"Welcome to {settings['APP_NAME']} v{settings['APP_VERSION']}. "
                    "Service is running normally."
                ),
                "description": settings["DESCRIPTION"],
            }
        )


def register_error_handlers(app: Flask) -> None:
    """Map the exception hierarchy onto JSON error responses."""

    @app.errorhandler(InvalidRequest)
    def invalid_request(e: InvalidRequest):
        logger.warning(f"Invalid request to {request.path}: {e}")
        payload = {"detail": str(e)}
        if e.code:
            payload["code"] = e.code
        return jsonify(payload), 400

    @app.errorhandler(AuthError)
    def auth_error(e: AuthError):
        return jsonify({"detail": str(e)}), e.status_code

    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        return jsonify({"detail": e.description}), e.code

    @app.errorhandler(Exception)
    def internal_error(e: Exception):
        """Handle unexpected errors with a JSON body."""
        logger.exception("Internal server error: %s", e)
        return jsonify({"detail": f"Internal server error: {e}"}), 500
