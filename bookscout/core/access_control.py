"""Session identity and admin access decisions."""

from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import Any, Mapping, Optional

from flask import current_app, jsonify, session

from bookscout.config.settings import DEV_USER_EMAIL, AppSettings
from bookscout.core.logger import setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class Identity:
    """The signed-in account as stored in the session."""
    user_id: str
    name: str
    email: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.user_id, "name": self.name, "email": self.email}


class AccessDenial(str, Enum):
    AUTH_REQUIRED = "auth_required"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: Optional[AccessDenial] = None


def identity_from_session(sess: Mapping[str, Any]) -> Optional[Identity]:
    """Return the session identity, or None when nobody is signed in."""
    user_id = sess.get("user_id")
    if not user_id:
        return None
    return Identity(
        user_id=str(user_id),
        name=str(sess.get("name") or ""),
        email=sess.get("email") or None,
    )


def login_session(account: Mapping[str, Any]) -> Identity:
    """Store an account in the session and return its identity."""
    session["user_id"] = account["id"]
    session["name"] = account.get("name") or ""
    session["email"] = account.get("email")
    session.permanent = True
    return Identity(user_id=account["id"], name=session["name"], email=session["email"])


def current_identity() -> Optional[Identity]:
    return identity_from_session(session)


def current_settings() -> AppSettings:
    return current_app.config["BOOKSCOUT_SETTINGS"]


def check_admin_access(
    identity: Optional[Identity],
    *,
    admin_email: Optional[str],
    dev_mode: bool,
    dev_user_email: str = DEV_USER_EMAIL,
) -> AccessDecision:
    """Decide whether identity may use the admin views."""
    if identity is None:
        return AccessDecision(False, AccessDenial.AUTH_REQUIRED)

    email = identity.email
    if email and admin_email and email == admin_email:
        return AccessDecision(True)

    if dev_mode and email and email == dev_user_email:
        return AccessDecision(True)

    logger.warning(f"[Security] Unauthorized admin access attempt by {email}")
    return AccessDecision(False, AccessDenial.FORBIDDEN)


def is_admin(identity: Optional[Identity], settings: AppSettings) -> bool:
    """Side-effect-free admin check for display purposes."""
    if identity is None or not identity.email:
        return False
    if settings.admin_email and identity.email == settings.admin_email:
        return True
    return settings.dev_mode and identity.email == settings.dev_user_email


def require_admin(f):
    """Decorator to require an admin identity for admin routes."""
    @wraps(f)
    def decorated(*args, **kwargs):
        settings = current_settings()
        decision = check_admin_access(
            current_identity(),
            admin_email=settings.admin_email,
            dev_mode=settings.dev_mode,
            dev_user_email=settings.dev_user_email,
        )
        if decision.reason == AccessDenial.AUTH_REQUIRED:
            return jsonify({"error": "Authentication required"}), 401
        if not decision.allowed:
            return jsonify({"error": "Access denied"}), 403
        return f(*args, **kwargs)
    return decorated


def login_required(f):
    """Decorator to require a signed-in identity."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if current_identity() is None:
            return jsonify({"error": "Unauthorized"}), 401
        return f(*args, **kwargs)
    return decorated
