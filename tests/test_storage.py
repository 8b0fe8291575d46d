"""
Unit tests for the storage module.

Tests the StateDatabase class for device identity and settings operations.
"""

import pytest

from photosync.storage.db import (
    SETTING_AUTH_TOKEN,
    SETTING_USER_EMAIL,
    SETTING_USER_ID,
    StateDatabase,
)


@pytest.fixture
def db():
    """Create an initialized in-memory database."""
    database = StateDatabase(":memory:")
    database.initialize()
    return database


class TestStateDatabaseInitialization:
    """Tests for database initialization."""

    def test_initialize_creates_tables(self, db):
        with db.connection() as conn:
            for table in ("device_identity", "settings"):
                cursor = conn.execute(
                    "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
                    (table,),
                )
                assert cursor.fetchone() is not None

    def test_initialize_is_idempotent(self, db):
        db.set_setting("k", "v")
        db.initialize()
        assert db.get_setting("k") == "v"

    def test_file_database_persists(self, tmp_path):
        path = str(tmp_path / "state.db")
        first = StateDatabase(path)
        first.initialize()
        first.set_device_identity("a@b.com", "uuid-1")

        second = StateDatabase(path)
        second.initialize()
        assert second.get_device_identity("a@b.com") == "uuid-1"


class TestDeviceIdentity:
    """Tests for device identity operations."""

    def test_get_missing_identity(self, db):
        assert db.get_device_identity("nobody@example.com") is None

    def test_set_and_get(self, db):
        db.set_device_identity("a@b.com", "uuid-1")
        assert db.get_device_identity("a@b.com") == "uuid-1"

    def test_set_overwrites(self, db):
        db.set_device_identity("a@b.com", "uuid-1")
        db.set_device_identity("a@b.com", "uuid-2")

        assert db.get_device_identity("a@b.com") == "uuid-2"

    def test_identities_are_per_email(self, db):
        db.set_device_identity("a@b.com", "uuid-1")
        db.set_device_identity("c@d.com", "uuid-2")

        assert db.get_device_identity("a@b.com") == "uuid-1"
        assert db.get_device_identity("c@d.com") == "uuid-2"


class TestSettings:
    """Tests for key/value settings."""

    def test_default_for_missing_key(self, db):
        assert db.get_setting("missing") is None
        assert db.get_setting("missing", "fallback") == "fallback"

    def test_set_and_update(self, db):
        db.set_setting("server_type", "local")
        db.set_setting("server_type", "remote")
        assert db.get_setting("server_type") == "remote"

    def test_none_deletes(self, db):
        db.set_setting("local_host", "nas")
        db.set_setting("local_host", None)
        assert db.get_setting("local_host") is None

    def test_get_settings_returns_only_set_keys(self, db):
        db.set_setting("a", "1")
        db.set_setting("b", "2")
        assert db.get_settings(("a", "b", "c")) == {"a": "1", "b": "2"}

    def test_get_settings_empty_keys(self, db):
        assert db.get_settings(()) == {}


class TestClearOperations:
    """Tests for clearing the session."""

    def test_clear_session_keeps_identity_and_email(self, db):
        db.set_device_identity("a@b.com", "uuid-1")
        db.set_setting(SETTING_AUTH_TOKEN, "token")
        db.set_setting(SETTING_USER_ID, "7")
        db.set_setting(SETTING_USER_EMAIL, "a@b.com")

        db.clear_session()

        assert db.get_setting(SETTING_AUTH_TOKEN) is None
        assert db.get_setting(SETTING_USER_ID) is None
        assert db.get_setting(SETTING_USER_EMAIL) == "a@b.com"
        assert db.get_device_identity("a@b.com") == "uuid-1"
