"""
Device identity derivation for PhotoSync.

The device identity binds server-side records to a logical device without
storing the password. It is a version-5 UUID over the lower-cased email and
the password:

    device_uuid = uuid5(NAMESPACE, f"{email.lower()}:{password}")

The same credentials therefore yield the same identity on every device and
after every reinstall. The identity is computed at login or registration and
persisted per email; on a cold start, when no password is available, only
the persisted value can be used.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from typing import Protocol

from photosync.utils.normalization import normalize_email

# Fixed namespace shared with the mobile client
DEVICE_NAMESPACE = uuid.UUID("6ba7b810-9dad-11d1-80b4-00c04fd430c8")

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """Raised when no device identity can be resolved (must re-authenticate)."""

    pass


class IdentityStore(Protocol):
    """Persistence used by the resolver (implemented by StateDatabase)."""

    def get_device_identity(self, email: str) -> str | None: ...

    def set_device_identity(self, email: str, device_uuid: str) -> None: ...


def derive_device_uuid(email: str, password: str) -> uuid.UUID:
    """
    Derive the device identity for a pair of credentials.

    Args:
        email: Email as typed (normalized here)
        password: Password as typed

    Returns:
        Deterministic version-5 UUID

    Example:
        >>> derive_device_uuid("A@B.com", "x") == derive_device_uuid("a@b.com", "x")
        True
    """
    return uuid.uuid5(DEVICE_NAMESPACE, f"{normalize_email(email)}:{password}")


class IdentityResolver:
    """
    Resolves and persists the device identity for an email.

    Usage:
        resolver = IdentityResolver(db)

        # At login: derive from credentials and persist
        device_uuid = resolver.resolve("me@example.com", "secret")

        # At cold start: read the persisted value only
        device_uuid = resolver.resolve("me@example.com")
    """

    def __init__(self, store: IdentityStore):
        self.store = store

    def _read_persisted(self, normalized_email: str) -> uuid.UUID | None:
        try:
            persisted = self.store.get_device_identity(normalized_email)
        except sqlite3.Error as e:
            logger.warning(f"Could not read device identity for {normalized_email}: {e}")
            return None

        if not persisted:
            return None

        try:
            return uuid.UUID(persisted)
        except ValueError:
            logger.warning(
                f"Ignoring malformed device identity stored for {normalized_email}"
            )
            return None

    def resolve(self, email: str | None, password: str | None = None) -> uuid.UUID | None:
        """
        Resolve the device identity for an email.

        With a password the identity is derived from the credentials and the
        persisted value is overwritten when it differs. Without a password
        only the persisted value is returned.

        Args:
            email: Login email (case-insensitive)
            password: Password, or None on a cold start

        Returns:
            Device UUID, or None when no email is given or nothing is
            persisted and no password was supplied
        """
        normalized = normalize_email(email)
        if not normalized:
            return None

        persisted = self._read_persisted(normalized)

        if not password:
            return persisted

        expected = derive_device_uuid(normalized, password)

        if persisted != expected:
            try:
                self.store.set_device_identity(normalized, str(expected))
                logger.debug(f"Persisted device identity for {normalized}")
            except sqlite3.Error as e:
                # Derivation is still valid; the next login persists it again
                logger.warning(f"Could not persist device identity for {normalized}: {e}")

        return expected

    def require(self, email: str | None) -> uuid.UUID:
        """
        Return the persisted identity for an email or fail.

        Args:
            email: Remembered login email

        Returns:
            Device UUID

        Raises:
            IdentityError: If no identity is persisted for the email
        """
        device_uuid = self.resolve(email)
        if device_uuid is None:
            raise IdentityError(
                "Device identity missing. Please log out and log in again."
            )
        return device_uuid
