"""Tests for the session routes: auth check, logout, CSRF and dev login."""

import os
import sqlite3
import tempfile
from unittest.mock import Mock, patch

import pytest

from bookscout.config.settings import AppSettings
from bookscout.core.auth_routes import dev_access_allowed
from bookscout.core.library_db import LibraryDB
from bookscout.main import create_app


@pytest.fixture
def db_path():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield os.path.join(tmpdir, "bookscout.db")


@pytest.fixture
def library_db(db_path):
    db = LibraryDB(db_path)
    db.initialize()
    return db


def _make_app(db_path, library_db, testing=True, **overrides):
    options = {"secret_key": "test-secret", "csrf_enabled": False}
    options.update(overrides)
    app = create_app(AppSettings(db_path=db_path, **options), library_db, Mock())
    app.config["TESTING"] = testing
    return app


class TestDevAccessAllowed:
    def test_requires_dev_mode(self):
        settings = AppSettings(db_path=":memory:", dev_user_access="2026-10-19")
        assert not dev_access_allowed(settings, testing=True, today="2026-10-19")

    def test_testing_skips_date_check(self):
        settings = AppSettings(db_path=":memory:", dev_mode=True)
        assert dev_access_allowed(settings, testing=True, today="2026-10-19")

    def test_date_must_match_today(self):
        settings = AppSettings(db_path=":memory:", dev_mode=True, dev_user_access="2026-10-19")
        assert dev_access_allowed(settings, testing=False, today="2026-10-19")
        assert not dev_access_allowed(settings, testing=False, today="2026-10-20")

    def test_unset_date_is_refused(self):
        settings = AppSettings(db_path=":memory:", dev_mode=True)
        assert not dev_access_allowed(settings, testing=False, today="2026-10-19")


class TestDevLogin:
    def test_not_found_outside_dev_mode(self, db_path, library_db):
        client = _make_app(db_path, library_db).test_client()
        assert client.get("/auth/dev").status_code == 404
        assert library_db.get_account("dev-user") is None

    def test_logs_in_dev_user(self, db_path, library_db):
        client = _make_app(db_path, library_db, dev_mode=True).test_client()
        resp = client.get("/auth/dev")

        assert resp.status_code == 302
        assert resp.headers["Location"].endswith("/dashboard")
        assert library_db.get_account("dev-user") == {
            "id": "dev-user", "name": "Dev User", "email": "dev@example.com"
        }
        check = client.get("/api/auth/check").get_json()
        assert check["authenticated"] is True
        assert check["is_admin"] is True

    def test_expired_access_outside_tests(self, db_path, library_db):
        app = _make_app(db_path, library_db, testing=False, dev_mode=True, dev_user_access="2000-01-01")
        resp = app.test_client().get("/auth/dev")
        assert resp.status_code == 403
        assert "DEV_USER_ACCESS" in resp.get_json()["error"]
        assert library_db.get_account("dev-user") is None

    def test_store_failure_is_reported(self, db_path, library_db):
        client = _make_app(db_path, library_db, dev_mode=True).test_client()
        with patch.object(library_db, "upsert_account", side_effect=sqlite3.OperationalError("locked")):
            resp = client.get("/auth/dev")
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Dev login failed"}
        assert client.get("/api/auth/check").get_json()["authenticated"] is False

    def test_unexpected_errors_are_not_swallowed(self, db_path, library_db):
        app = _make_app(db_path, library_db, dev_mode=True)
        app.config["PROPAGATE_EXCEPTIONS"] = True
        with patch.object(library_db, "upsert_account", side_effect=RuntimeError("bug")):
            with pytest.raises(RuntimeError):
                app.test_client().get("/auth/dev")


class TestAuthCheck:
    def test_anonymous(self, db_path, library_db):
        client = _make_app(db_path, library_db).test_client()
        data = client.get("/api/auth/check").get_json()
        assert data == {
            "authenticated": False,
            "user": None,
            "is_admin": False,
            "google_login": False,
            "dev_login": False,
        }

    def test_signed_in_regular_user(self, db_path, library_db):
        client = _make_app(db_path, library_db, admin_email="admin@example.com").test_client()
        with client.session_transaction() as sess:
            sess["user_id"] = "u1"
            sess["name"] = "Ann"
            sess["email"] = "ann@example.com"

        data = client.get("/api/auth/check").get_json()
        assert data["authenticated"] is True
        assert data["user"] == {"id": "u1", "name": "Ann", "email": "ann@example.com"}
        assert data["is_admin"] is False


class TestLogout:
    def test_clears_session(self, db_path, library_db):
        client = _make_app(db_path, library_db).test_client()
        with client.session_transaction() as sess:
            sess["user_id"] = "u1"
            sess["name"] = "Ann"

        resp = client.post("/api/auth/logout")
        assert resp.get_json() == {"success": True}
        assert client.get("/api/auth/check").get_json()["authenticated"] is False


class TestCsrf:
    @pytest.fixture
    def client(self, db_path, library_db):
        return _make_app(db_path, library_db, csrf_enabled=True).test_client()

    def test_post_without_token_is_rejected(self, client):
        resp = client.post("/api/auth/logout")
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Invalid or missing CSRF token"}

    def test_post_with_token_is_accepted(self, client):
        token = client.get("/api/auth/csrf").get_json()["csrf_token"]
        resp = client.post("/api/auth/logout", headers={"X-CSRFToken": token})
        assert resp.status_code == 200

    def test_get_needs_no_token(self, client):
        assert client.get("/api/auth/check").status_code == 200
