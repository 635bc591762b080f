"""Runtime settings consumed by the registration gate, admin guard and routes.

Values are read from the environment once, when the app is created, and
then handed to the decision functions explicitly.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from bookscout.config.env import DB_PATH, string_to_bool

DEV_USER_ID = "dev-user"
DEV_USER_NAME = "Dev User"
DEV_USER_EMAIL = "dev@example.com"


@dataclass(frozen=True)
class AppSettings:
    """Effective application configuration."""
    db_path: str
    admin_email: Optional[str] = None
    registration_open: bool = False
    dev_mode: bool = False
    dev_user_access: Optional[str] = None
    dev_user_email: str = DEV_USER_EMAIL
    google_client_id: str = ""
    google_client_secret: str = ""
    google_api_key: str = ""
    secret_key: Optional[str] = None
    session_cookie_secure: bool = False
    csrf_enabled: bool = True

    @property
    def google_login_configured(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)

    def admin_summary(self) -> dict:
        """Return the admin-visible subset of settings (no secrets)."""
        return {
            "admin_email": self.admin_email,
            "registration_open": self.registration_open,
            "dev_mode": self.dev_mode,
            "google_login_configured": self.google_login_configured,
            "catalog_api_key_configured": bool(self.google_api_key),
        }


def _optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> AppSettings:
    """Build AppSettings from environment variables.

    ALLOW_REGISTRATION defaults to closed when unset.
    """
    env = os.environ if environ is None else environ

    return AppSettings(
        db_path=env.get("DB_PATH") or str(DB_PATH),
        admin_email=_optional(env.get("ADMIN_USER")),
        registration_open=string_to_bool(env.get("ALLOW_REGISTRATION", "false")),
        dev_mode=string_to_bool(env.get("DEV_MODE", "false")),
        dev_user_access=_optional(env.get("DEV_USER_ACCESS")),
        google_client_id=(env.get("GOOGLE_CLIENT_ID") or "").strip(),
        google_client_secret=(env.get("GOOGLE_CLIENT_SECRET") or "").strip(),
        google_api_key=(env.get("GOOGLE_API_KEY") or "").strip(),
        secret_key=_optional(env.get("SECRET_KEY")),
        session_cookie_secure=string_to_bool(env.get("SESSION_COOKIE_SECURE", "false")),
        csrf_enabled=string_to_bool(env.get("CSRF_ENABLED", "true")),
    )
