"""Session API routes: auth check, logout, CSRF token and the dev login."""

import sqlite3
from datetime import datetime, timezone

from flask import Flask, current_app, jsonify, redirect, request, session
from flask_wtf.csrf import generate_csrf

from bookscout.config.settings import DEV_USER_ID, DEV_USER_NAME, AppSettings
from bookscout.core.access_control import (
    current_identity,
    current_settings,
    is_admin,
    login_session,
)
from bookscout.core.library_db import LibraryDB
from bookscout.core.logger import setup_logger

logger = setup_logger(__name__)


def _utc_today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def dev_access_allowed(settings: AppSettings, *, testing: bool, today: str) -> bool:
    """Dev login needs dev mode, plus DEV_USER_ACCESS == today outside of tests."""
    if not settings.dev_mode:
        return False
    if testing:
        return True
    return settings.dev_user_access == today


def register_auth_routes(app: Flask, library_db: LibraryDB) -> None:
    """Register session routes on the Flask app."""

    @app.route("/api/auth/check", methods=["GET"])
    def api_auth_check():
        """Report whether the caller has a session and whether it is an admin."""
        identity = current_identity()
        settings = current_settings()
        return jsonify({
            "authenticated": identity is not None,
            "user": identity.to_dict() if identity else None,
            "is_admin": is_admin(identity, settings),
            "google_login": settings.google_login_configured,
            "dev_login": settings.dev_mode,
        })

    @app.route("/api/auth/csrf", methods=["GET"])
    def api_auth_csrf():
        """Issue a CSRF token for state-changing requests."""
        return jsonify({"csrf_token": generate_csrf()})

    @app.route("/api/auth/logout", methods=["POST"])
    def api_logout():
        identity = current_identity()
        session.clear()
        if identity:
            logger.info(f"Logout successful for user '{identity.user_id}'")
        return jsonify({"success": True})

    @app.route("/auth/dev", methods=["GET"])
    def dev_login():
        """Log in as the reserved dev user (dev mode only)."""
        settings = current_settings()
        if not settings.dev_mode:
            return jsonify({"error": "Resource not found"}), 404

        if not dev_access_allowed(settings, testing=current_app.testing, today=_utc_today()):
            logger.warning(f"Dev login refused from {request.remote_addr}: DEV_USER_ACCESS mismatch")
            return jsonify({
                "error": "Dev access expired or invalid. Check DEV_USER_ACCESS env var."
            }), 403

        try:
            account = library_db.upsert_account(DEV_USER_ID, DEV_USER_NAME, settings.dev_user_email)
        except (sqlite3.Error, ValueError) as e:
            logger.error_trace(f"Failed to upsert dev user: {e}")
            return jsonify({"error": "Dev login failed"}), 500

        login_session(account)
        logger.info("Dev login successful")
        return redirect(f"{request.script_root.rstrip('/')}/dashboard")
