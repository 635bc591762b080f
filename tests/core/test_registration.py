"""Tests for account provisioning on sign-in."""

import os
import sqlite3
import tempfile
from unittest.mock import patch

import pytest

from bookscout.core.library_db import LibraryDB
from bookscout.core.registration import (
    AccountStoreError,
    RegistrationClosedError,
    VerifiedProfile,
    profile_from_claims,
    register_or_refresh,
)


@pytest.fixture
def library_db():
    with tempfile.TemporaryDirectory() as tmpdir:
        db = LibraryDB(os.path.join(tmpdir, "bookscout.db"))
        db.initialize()
        yield db


NEWCOMER = VerifiedProfile(subject="google-new", name="New Person", email="new@example.com")


class TestProfileFromClaims:
    def test_full_claims(self):
        profile = profile_from_claims({"sub": "123", "name": "Ann", "email": "ann@example.com"})
        assert profile == VerifiedProfile(subject="123", name="Ann", email="ann@example.com")

    def test_missing_subject_raises(self):
        with pytest.raises(ValueError):
            profile_from_claims({"email": "ann@example.com"})

    def test_name_falls_back_to_email_then_subject(self):
        assert profile_from_claims({"sub": "1", "email": "a@example.com"}).name == "a@example.com"
        assert profile_from_claims({"sub": "1", "name": "  "}).name == "1"

    def test_blank_email_becomes_none(self):
        assert profile_from_claims({"sub": "1", "email": " "}).email is None


class TestRegisterOrRefresh:
    def test_open_creates_new_account(self, library_db):
        account = register_or_refresh(library_db, NEWCOMER, registration_open=True)
        assert account["id"] == "google-new"
        assert library_db.get_account("google-new")["email"] == "new@example.com"

    def test_closed_refuses_new_account_without_writing(self, library_db):
        with pytest.raises(RegistrationClosedError):
            register_or_refresh(library_db, NEWCOMER, registration_open=False)
        assert library_db.get_account("google-new") is None
        assert library_db.list_accounts() == []

    @pytest.mark.parametrize("registration_open", [True, False])
    def test_known_account_is_refreshed(self, library_db, registration_open):
        library_db.upsert_account("google-new", "Old Name", "old@example.com")
        account = register_or_refresh(library_db, NEWCOMER, registration_open=registration_open)
        assert account == {"id": "google-new", "name": "New Person", "email": "new@example.com"}
        assert len(library_db.list_accounts()) == 1

    def test_store_failure_is_wrapped(self, library_db):
        with patch.object(library_db, "upsert_account", side_effect=sqlite3.OperationalError("locked")):
            with pytest.raises(AccountStoreError):
                register_or_refresh(library_db, NEWCOMER, registration_open=True)

    def test_refusal_is_logged(self, library_db, caplog):
        with caplog.at_level("INFO", logger="bookscout.core.registration"):
            with pytest.raises(RegistrationClosedError):
                register_or_refresh(library_db, NEWCOMER, registration_open=False)
        assert "google-new" in caplog.text
