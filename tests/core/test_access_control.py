"""Tests for session identity and the admin access guard."""

import pytest
from flask import Flask, jsonify

from bookscout.config.settings import AppSettings
from bookscout.core.access_control import (
    AccessDecision,
    AccessDenial,
    Identity,
    check_admin_access,
    identity_from_session,
    is_admin,
    login_required,
    require_admin,
)

ADMIN = "admin@example.com"


def _identity(email):
    return Identity(user_id="u1", name="User", email=email)


class TestIdentityFromSession:
    def test_empty_session(self):
        assert identity_from_session({}) is None

    def test_signed_in_session(self):
        identity = identity_from_session({"user_id": "u1", "name": "Ann", "email": "a@example.com"})
        assert identity == Identity(user_id="u1", name="Ann", email="a@example.com")
        assert identity.to_dict() == {"id": "u1", "name": "Ann", "email": "a@example.com"}


class TestCheckAdminAccess:
    def test_anonymous_requires_auth(self):
        decision = check_admin_access(None, admin_email=ADMIN, dev_mode=False)
        assert decision == AccessDecision(False, AccessDenial.AUTH_REQUIRED)

    def test_configured_admin_allowed(self):
        assert check_admin_access(_identity(ADMIN), admin_email=ADMIN, dev_mode=False).allowed

    def test_other_user_forbidden(self):
        decision = check_admin_access(_identity("user@example.com"), admin_email=ADMIN, dev_mode=False)
        assert decision == AccessDecision(False, AccessDenial.FORBIDDEN)

    def test_dev_user_allowed_only_in_dev_mode(self):
        dev = _identity("dev@example.com")
        assert check_admin_access(dev, admin_email=ADMIN, dev_mode=True).allowed
        assert not check_admin_access(dev, admin_email=ADMIN, dev_mode=False).allowed

    @pytest.mark.parametrize("admin_email", [None, ""])
    def test_unset_admin_matches_nobody(self, admin_email):
        assert not check_admin_access(_identity(None), admin_email=admin_email, dev_mode=False).allowed
        assert not check_admin_access(_identity(""), admin_email=admin_email, dev_mode=False).allowed

    def test_email_match_is_exact(self):
        assert not check_admin_access(_identity("ADMIN@example.com"), admin_email=ADMIN, dev_mode=False).allowed

    def test_forbidden_attempt_is_logged(self, caplog):
        with caplog.at_level("WARNING", logger="bookscout.core.access_control"):
            check_admin_access(_identity("intruder@example.com"), admin_email=ADMIN, dev_mode=False)
        assert "[Security] Unauthorized admin access attempt by intruder@example.com" in caplog.text

    def test_allowed_attempt_is_not_logged(self, caplog):
        with caplog.at_level("WARNING", logger="bookscout.core.access_control"):
            check_admin_access(_identity(ADMIN), admin_email=ADMIN, dev_mode=False)
        assert "Unauthorized" not in caplog.text


class TestIsAdmin:
    def test_matches_guard_without_logging(self, caplog):
        settings = AppSettings(db_path=":memory:", admin_email=ADMIN)
        with caplog.at_level("WARNING", logger="bookscout.core.access_control"):
            assert is_admin(_identity(ADMIN), settings)
            assert not is_admin(_identity("user@example.com"), settings)
            assert not is_admin(None, settings)
        assert caplog.text == ""


@pytest.fixture
def app():
    test_app = Flask(__name__)
    test_app.config["SECRET_KEY"] = "test-secret"
    test_app.config["TESTING"] = True
    test_app.config["BOOKSCOUT_SETTINGS"] = AppSettings(db_path=":memory:", admin_email=ADMIN)

    @test_app.route("/admin-only")
    @require_admin
    def admin_only():
        return jsonify({"ok": True})

    @test_app.route("/members")
    @login_required
    def members():
        return jsonify({"ok": True})

    return test_app


def _sign_in(client, email):
    with client.session_transaction() as sess:
        sess["user_id"] = "u1"
        sess["name"] = "User"
        sess["email"] = email


class TestDecorators:
    def test_require_admin_anonymous(self, app):
        resp = app.test_client().get("/admin-only")
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Authentication required"}

    def test_require_admin_non_admin(self, app):
        client = app.test_client()
        _sign_in(client, "user@example.com")
        resp = client.get("/admin-only")
        assert resp.status_code == 403
        assert resp.get_json() == {"error": "Access denied"}

    def test_require_admin_admin(self, app):
        client = app.test_client()
        _sign_in(client, ADMIN)
        assert client.get("/admin-only").status_code == 200

    def test_login_required(self, app):
        client = app.test_client()
        assert client.get("/members").status_code == 401
        _sign_in(client, "user@example.com")
        assert client.get("/members").status_code == 200
