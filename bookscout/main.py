"""Flask app - routes, middleware and entry point."""

import argparse
import logging
import os
import sqlite3
from dataclasses import replace
from typing import Optional, Tuple, Union

from flask import Flask, jsonify, request, send_from_directory
from flask_cors import CORS
from flask_wtf.csrf import CSRFError, CSRFProtect
from werkzeug.middleware.proxy_fix import ProxyFix
from werkzeug.wrappers import Response

from bookscout.config.env import (
    BUILD_VERSION,
    DEBUG,
    FLASK_HOST,
    FLASK_PORT,
    FRONTEND_DIST,
    PERMANENT_SESSION_LIFETIME,
    RELEASE_VERSION,
    SESSION_COOKIE_NAME,
)
from bookscout.config.settings import AppSettings, load_settings
from bookscout.core.admin_routes import register_admin_routes
from bookscout.core.auth_routes import register_auth_routes
from bookscout.core.book_routes import register_book_routes
from bookscout.core.library_db import LibraryDB
from bookscout.core.logger import setup_logger
from bookscout.core.oidc_routes import register_oidc_routes
from bookscout.metadata_providers.googlebooks import GoogleBooksProvider

logger = setup_logger(__name__)
csrf = CSRFProtect()


class LogNoiseFilter(logging.Filter):
    """Filter out routine health-check request lines."""

    def filter(self, record):
        message = record.getMessage() if hasattr(record, "getMessage") else str(record.msg)
        return "GET /api/health" not in message


def set_security_headers(response: Response) -> Response:
    """Add baseline security headers to every response."""
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault(
        "Content-Security-Policy",
        "default-src 'self'; script-src 'self'; style-src 'self' 'unsafe-inline'; img-src 'self' data: https:; frame-ancestors 'none'",
    )
    response.headers.setdefault("Permissions-Policy", "camera=(), microphone=(), geolocation=()")
    return response


def _configure_logging(app: Flask) -> None:
    app.logger.handlers = logger.handlers
    app.logger.setLevel(logger.level)
    werkzeug_logger = logging.getLogger("werkzeug")
    werkzeug_logger.handlers = logger.handlers
    werkzeug_logger.setLevel(logger.level)
    werkzeug_logger.addFilter(LogNoiseFilter())


def _register_core_routes(app: Flask) -> None:
    @app.route("/api/health", methods=["GET"])
    def api_health() -> Response:
        """Health check endpoint. No authentication required."""
        return jsonify({
            "status": "ok",
            "build_version": BUILD_VERSION,
            "release_version": RELEASE_VERSION,
        })

    @app.route("/")
    @app.route("/dashboard")
    def index() -> Union[Response, Tuple[Response, int]]:
        """Serve the prebuilt frontend when one is installed."""
        if (FRONTEND_DIST / "index.html").exists():
            return send_from_directory(FRONTEND_DIST, "index.html")
        return jsonify({"error": "Frontend not installed"}), 404

    @app.errorhandler(404)
    def not_found_error(error: Exception) -> Tuple[Response, int]:
        logger.warning(f"404 error: {request.url} : {error}")
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(500)
    def internal_error(error: Exception) -> Tuple[Response, int]:
        logger.error_trace(f"500 error: {error}")
        return jsonify({"error": "Internal server error"}), 500

    @app.errorhandler(CSRFError)
    def csrf_error(error: CSRFError) -> Tuple[Response, int]:
        logger.warning(f"CSRF validation failed for {request.method} {request.path}: {error.description}")
        return jsonify({"error": "Invalid or missing CSRF token"}), 400


def create_app(
    settings: Optional[AppSettings] = None,
    library_db: Optional[LibraryDB] = None,
    catalog: Optional[GoogleBooksProvider] = None,
) -> Flask:
    """Build the Flask application.

    settings defaults to the environment; library_db and catalog default to
    instances built from those settings.
    """
    settings = settings or load_settings()

    app = Flask(__name__)
    app.wsgi_app = ProxyFix(app.wsgi_app)  # type: ignore
    app.config.update(
        BOOKSCOUT_SETTINGS=settings,
        SECRET_KEY=settings.secret_key or os.urandom(64),
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        SESSION_COOKIE_SECURE=settings.session_cookie_secure,
        SESSION_COOKIE_NAME=SESSION_COOKIE_NAME,
        PERMANENT_SESSION_LIFETIME=PERMANENT_SESSION_LIFETIME,
        WTF_CSRF_ENABLED=settings.csrf_enabled,
        WTF_CSRF_TIME_LIMIT=None,
    )
    if not settings.secret_key:
        logger.warning("SECRET_KEY not set; sessions will not survive a restart")

    csrf.init_app(app)
    _configure_logging(app)

    # Enable CORS in development mode for local frontend development
    if DEBUG:
        CORS(app, resources={
            r"/*": {
                "origins": ["http://localhost:5173", "http://127.0.0.1:5173"],
                "supports_credentials": True,
                "allow_headers": ["Content-Type", "X-CSRFToken"],
                "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            }
        })

    if library_db is None:
        library_db = LibraryDB(settings.db_path)
    library_db.initialize()
    logger.info(f"Library database ready at {library_db.db_path}")

    if catalog is None:
        catalog = GoogleBooksProvider(api_key=settings.google_api_key)

    register_auth_routes(app, library_db)
    register_oidc_routes(app, library_db)
    register_book_routes(app, library_db, catalog)
    register_admin_routes(app, library_db)
    _register_core_routes(app)
    app.after_request(set_security_headers)

    logger.info(
        f"App created (registration_open={settings.registration_open}, "
        f"dev_mode={settings.dev_mode}, admin={'set' if settings.admin_email else 'unset'})"
    )
    return app


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the BookScout server")
    parser.add_argument("--db-path", help="SQLite database file (overrides DB_PATH)")
    parser.add_argument("--host", default=FLASK_HOST)
    parser.add_argument("--port", type=int, default=FLASK_PORT)
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = _parse_args(argv)
    settings = load_settings()
    if args.db_path:
        settings = replace(settings, db_path=args.db_path)

    try:
        app = create_app(settings)
    except (sqlite3.OperationalError, OSError) as e:
        logger.error(f"Database initialization failed for {settings.db_path}: {e}")
        raise SystemExit(1)

    logger.info(f"Starting Flask application on {args.host}:{args.port} (debug={DEBUG})")
    app.run(host=args.host, port=args.port, debug=DEBUG)


if __name__ == "__main__":
    main()
