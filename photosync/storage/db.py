"""
SQLite database module for persisted client state.

Stores the per-email device identity, the session token, the remembered
login email and the user-entered server settings. Nothing about the media
inventories is persisted: every pass re-derives them from full listings.
"""

import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

SCHEMA = """
CREATE TABLE IF NOT EXISTS device_identity (
    id INTEGER PRIMARY KEY,
    email TEXT NOT NULL,
    device_uuid TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE(email)
);

CREATE INDEX IF NOT EXISTS idx_device_identity_email ON device_identity(email);

CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

# Setting keys
SETTING_AUTH_TOKEN = "auth_token"
SETTING_USER_EMAIL = "user_email"
SETTING_USER_ID = "user_id"
SETTING_SERVER_TYPE = "server_type"
SETTING_LOCAL_HOST = "local_host"
SETTING_REMOTE_HOST = "remote_host"
SETTING_SERVER_PORT = "server_port"

SERVER_SETTING_KEYS = (
    SETTING_SERVER_TYPE,
    SETTING_LOCAL_HOST,
    SETTING_REMOTE_HOST,
    SETTING_SERVER_PORT,
)

SESSION_SETTING_KEYS = (SETTING_AUTH_TOKEN, SETTING_USER_ID)


class StateDatabase:
    """
    SQLite database manager for client state.

    Provides methods for:
    - Reading and upserting the device identity bound to an email
    - Key/value settings (session token, remembered email, server settings)

    Usage:
        db = StateDatabase('/path/to/state.db')
        db.initialize()

        # Or use in-memory for testing:
        db = StateDatabase(':memory:')
        db.initialize()
    """

    def __init__(self, db_path: str):
        """
        Initialize the database manager.

        Args:
            db_path: Path to SQLite database file, or ':memory:' for in-memory database
        """
        self.db_path = db_path
        self._shared_connection: Optional[sqlite3.Connection] = None

    def _get_connection(self) -> sqlite3.Connection:
        """
        Get a database connection.

        For in-memory databases, returns a shared connection so the schema
        persists across operations. For file databases, creates a new
        connection each time.
        """
        if self.db_path == ":memory:":
            if self._shared_connection is None:
                self._shared_connection = sqlite3.connect(":memory:")
                self._shared_connection.row_factory = sqlite3.Row
            return self._shared_connection

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections.

        Commits on success and rolls back on error.

        Yields:
            sqlite3.Connection: Database connection
        """
        conn = self._get_connection()
        is_shared = self.db_path == ":memory:"
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            if not is_shared:
                conn.close()

    def initialize(self) -> None:
        """Create the tables if they don't exist."""
        with self.connection() as conn:
            conn.executescript(SCHEMA)

    # =========================================================================
    # Device Identity Operations
    # =========================================================================

    def get_device_identity(self, email: str) -> Optional[str]:
        """
        Get the persisted device identity for a normalized email.

        Args:
            email: Normalized (lower-cased) email

        Returns:
            Device UUID string, or None if none is stored
        """
        with self.connection() as conn:
            cursor = conn.execute(
                "SELECT device_uuid FROM device_identity WHERE email = ?",
                (email,),
            )
            row = cursor.fetchone()
            return row["device_uuid"] if row else None

    def set_device_identity(self, email: str, device_uuid: str) -> None:
        """
        Insert or overwrite the device identity for a normalized email.

        Args:
            email: Normalized (lower-cased) email
            device_uuid: Device UUID string
        """
        now = datetime.now(timezone.utc).isoformat()
        with self.connection() as conn:
            conn.execute(
                """
                INSERT INTO device_identity (email, device_uuid, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(email) DO UPDATE SET
                    device_uuid = excluded.device_uuid,
                    updated_at = excluded.updated_at
                """,
                (email, device_uuid, now, now),
            )

    # =========================================================================
    # Settings Operations
    # =========================================================================

    def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get a setting value.

        Args:
            key: Setting key
            default: Value returned when the key is not set

        Returns:
            Stored string value or default
        """
        with self.connection() as conn:
            cursor = conn.execute("SELECT value FROM settings WHERE key = ?", (key,))
            row = cursor.fetchone()
            if row is None or row["value"] is None:
                return default
            return str(row["value"])

    def set_setting(self, key: str, value: Optional[str]) -> None:
        """
        Insert or update a setting. A None value deletes the key.

        Args:
            key: Setting key
            value: String value
        """
        if value is None:
            self.delete_setting(key)
            return

        with self.connection() as conn:
            conn.execute(
                """
                INSERT INTO settings (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, str(value), datetime.now(timezone.utc).isoformat()),
            )

    def delete_setting(self, key: str) -> bool:
        """
        Delete a setting.

        Returns:
            True if the key existed
        """
        with self.connection() as conn:
            cursor = conn.execute("DELETE FROM settings WHERE key = ?", (key,))
            return cursor.rowcount > 0

    def get_settings(self, keys: tuple[str, ...]) -> dict[str, str]:
        """
        Get several settings at once.

        Args:
            keys: Setting keys to fetch

        Returns:
            Dict of the keys that are set
        """
        if not keys:
            return {}
        placeholders = ", ".join("?" for _ in keys)
        with self.connection() as conn:
            cursor = conn.execute(
                f"SELECT key, value FROM settings WHERE key IN ({placeholders})",
                keys,
            )
            return {
                row["key"]: row["value"]
                for row in cursor.fetchall()
                if row["value"] is not None
            }

    # =========================================================================
    # Utility Operations
    # =========================================================================

    def clear_session(self) -> None:
        """Remove the session token and user id, keeping identities."""
        with self.connection() as conn:
            conn.executemany(
                "DELETE FROM settings WHERE key = ?",
                [(key,) for key in SESSION_SETTING_KEYS],
            )

