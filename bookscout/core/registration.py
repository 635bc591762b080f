"""Account provisioning on external sign-in."""

import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, Optional

from bookscout.core.library_db import LibraryDB
from bookscout.core.logger import setup_logger

logger = setup_logger(__name__)


class RegistrationClosedError(Exception):
    """Raised when an unknown identity signs in while registration is closed."""


class AccountStoreError(Exception):
    """Raised when the account store cannot be read or written."""


@dataclass(frozen=True)
class VerifiedProfile:
    """Identity returned by the provider after a successful sign-in."""
    subject: str
    name: str
    email: Optional[str] = None


def profile_from_claims(claims: Dict[str, Any]) -> VerifiedProfile:
    """Build a VerifiedProfile from OIDC claims. Raises ValueError without a subject."""
    subject = str(claims.get("sub") or "").strip()
    if not subject:
        raise ValueError("OIDC claims are missing a subject")

    email = claims.get("email")
    email = email.strip() if isinstance(email, str) and email.strip() else None

    name = claims.get("name")
    if not isinstance(name, str) or not name.strip():
        name = email or subject

    return VerifiedProfile(subject=subject, name=name.strip(), email=email)


def register_or_refresh(
    library_db: LibraryDB,
    profile: VerifiedProfile,
    *,
    registration_open: bool,
) -> Dict[str, Any]:
    """Let a verified identity in, creating its account only when allowed.

    Known accounts are always refreshed. Unknown accounts are created when
    registration_open is true; otherwise RegistrationClosedError is raised
    and nothing is written. Storage failures raise AccountStoreError.
    """
    try:
        if registration_open:
            account = library_db.upsert_account(profile.subject, profile.name, profile.email)
        else:
            account = library_db.refresh_account(profile.subject, profile.name, profile.email)
    except (sqlite3.Error, ValueError) as e:
        raise AccountStoreError(f"Failed to upsert account {profile.subject}: {e}") from e

    if account is None:
        logger.info(f"Registration closed: refused new account for subject {profile.subject}")
        raise RegistrationClosedError(profile.subject)

    return account
