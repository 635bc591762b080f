"""Google sign-in route handlers using Authlib.

Registers /auth/google and /auth/google/callback endpoints.
Account creation policy lives in registration.py.
"""

from typing import Any

from authlib.integrations.flask_client import OAuth
from authlib.jose.errors import InvalidClaimError
from flask import Flask, jsonify, redirect, request

from bookscout.config.settings import AppSettings
from bookscout.core.access_control import current_settings, login_session
from bookscout.core.library_db import LibraryDB
from bookscout.core.logger import setup_logger
from bookscout.core.registration import (
    AccountStoreError,
    RegistrationClosedError,
    profile_from_claims,
    register_or_refresh,
)

logger = setup_logger(__name__)
oauth = OAuth()

GOOGLE_DISCOVERY_URL = "https://accounts.google.com/.well-known/openid-configuration"
GOOGLE_SCOPES = ("openid", "email", "profile")
_CLIENT_NAME = "google"


def _normalize_claims(raw_claims: Any) -> dict[str, Any]:
    """Return a plain dict for claims from Authlib token/userinfo payloads."""
    if raw_claims is None:
        return {}
    if isinstance(raw_claims, dict):
        return raw_claims
    if hasattr(raw_claims, "to_dict"):
        return raw_claims.to_dict()  # type: ignore[no-any-return]
    try:
        return dict(raw_claims)
    except (TypeError, ValueError):
        return {}


def _home_error_url(code: str) -> str:
    """Build the landing page URL (with script_root) carrying an error code."""
    script_root = request.script_root.rstrip("/")
    return f"{script_root}/?error={code}"


def _get_google_client(settings: AppSettings) -> Any:
    """Register and return the Google OIDC client from the current settings."""
    if not settings.google_login_configured:
        raise ValueError("Google sign-in not configured")

    oauth._clients.pop(_CLIENT_NAME, None)
    oauth.register(
        name=_CLIENT_NAME,
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        server_metadata_url=GOOGLE_DISCOVERY_URL,
        client_kwargs={
            "scope": " ".join(GOOGLE_SCOPES),
            "code_challenge_method": "S256",
        },
        overwrite=True,
    )

    client = oauth.create_client(_CLIENT_NAME)
    if client is None:
        raise RuntimeError("Google OIDC client initialization failed")
    return client


def register_oidc_routes(app: Flask, library_db: LibraryDB) -> None:
    """Register Google sign-in routes on the Flask app."""
    oauth.init_app(app)

    @app.route("/auth/google", methods=["GET"])
    def google_login():
        """Initiate the Google sign-in flow and redirect to the provider."""
        try:
            client = _get_google_client(current_settings())
            redirect_uri = request.url_root.rstrip("/") + "/auth/google/callback"
            return client.authorize_redirect(redirect_uri)
        except ValueError:
            return jsonify({"error": "Google sign-in not configured"}), 500
        except Exception as e:
            logger.error(f"Google login error: {e}")
            return jsonify({"error": "Google sign-in failed"}), 500

    @app.route("/auth/google/callback", methods=["GET"])
    def google_callback():
        """Handle the callback from Google and run the registration gate."""
        settings = current_settings()
        try:
            error = request.args.get("error")
            if error:
                logger.warning(f"Google callback error from IdP: {error}")
                return redirect(_home_error_url("auth_failed"))

            client = _get_google_client(settings)
            try:
                token = client.authorize_access_token()
            except InvalidClaimError as e:
                claim_name = getattr(e, "claim_name", "unknown")
                logger.error(f"Google callback claim validation failed: claim={claim_name} error={e}")
                return redirect(_home_error_url("auth_failed"))

            claims = _normalize_claims(token.get("userinfo"))
            if not claims.get("sub"):
                try:
                    claims = {**claims, **_normalize_claims(client.userinfo(token=token))}
                except Exception as e:
                    logger.error(f"Failed to fetch Google userinfo: {e}")

            profile = profile_from_claims(claims)
            account = register_or_refresh(
                library_db,
                profile,
                registration_open=settings.registration_open,
            )
        except RegistrationClosedError:
            return redirect(_home_error_url("registration_closed"))
        except AccountStoreError as e:
            logger.error_trace(f"Error upserting account: {e}")
            return redirect(_home_error_url("auth_failed"))
        except Exception as e:
            logger.error(f"Google callback error: {e}")
            return redirect(_home_error_url("auth_failed"))

        login_session(account)
        logger.info(f"Google login successful: {account['id']} ({account.get('email')})")
        return redirect(f"{request.script_root.rstrip('/')}/dashboard")
