"""
Login session management.

Ties together the identity resolver, the persisted settings and the server
client:

- login/register derive the device identity from the credentials
- the session token, remembered email and user id are stored in the state
  database
- on a cold start the identity can only be read back; a token without a
  resolvable identity is discarded and the user must log in again
"""

import logging
import platform
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from photosync.api.server_api import AuthenticationRequiredError, ServerAPI
from photosync.auth.identity import IdentityError, IdentityResolver
from photosync.config.server_config import ServerConfig
from photosync.storage.db import (
    SERVER_SETTING_KEYS,
    SETTING_AUTH_TOKEN,
    SETTING_USER_EMAIL,
    SETTING_USER_ID,
    StateDatabase,
)
from photosync.utils.normalization import normalize_email

logger = logging.getLogger(__name__)

ApiFactory = Callable[..., ServerAPI]


class SessionError(Exception):
    """Raised when login or registration input is invalid."""

    pass


@dataclass(frozen=True)
class Session:
    """An authenticated session restored from, or written to, the state DB."""

    email: str
    token: str
    device_uuid: uuid.UUID
    server: ServerConfig
    user_id: Optional[str] = None


class SessionManager:
    """
    Manages login state for the CLI.

    Usage:
        db = StateDatabase(str(state_db_path(config_dir)))
        db.initialize()
        sessions = SessionManager(db)

        sessions.login("me@example.com", "secret", ServerConfig(local_host="nas"))
        session = sessions.restore()    # on the next run
        api = sessions.create_api(session)
    """

    def __init__(
        self,
        db: StateDatabase,
        resolver: Optional[IdentityResolver] = None,
        api_factory: ApiFactory = ServerAPI,
        device_name: Optional[str] = None,
    ):
        self.db = db
        self.resolver = resolver or IdentityResolver(db)
        self.api_factory = api_factory
        self.device_name = device_name or platform.node() or "photosync"

    # =========================================================================
    # Server settings
    # =========================================================================

    def server_config(self) -> ServerConfig:
        """Server settings remembered from the last login (or defaults)."""
        return ServerConfig.from_dict(self.db.get_settings(SERVER_SETTING_KEYS))

    def save_server_config(self, server: ServerConfig) -> None:
        """Remember server settings for later runs."""
        for key, value in server.to_dict().items():
            self.db.set_setting(key, str(value) if value != "" else None)

    # =========================================================================
    # Login / registration
    # =========================================================================

    def _validate_credentials(self, email: str, password: str) -> str:
        normalized = normalize_email(email)
        if not normalized:
            raise SessionError("Email is required")
        if not password:
            raise SessionError("Password is required")
        return normalized

    def login(
        self, email: str, password: str, server: Optional[ServerConfig] = None
    ) -> Session:
        """
        Log in and persist the session.

        Args:
            email: Login email (case-insensitive)
            password: Password
            server: Server settings; the remembered ones when None

        Returns:
            The new Session

        Raises:
            SessionError: If email or password is empty
            ServerAPIError: If the server rejects the login
        """
        normalized = self._validate_credentials(email, password)
        server = server or self.server_config()
        self.save_server_config(server)

        device_uuid = self.resolver.resolve(normalized, password)
        if device_uuid is None:
            raise IdentityError("Could not derive a device identity")

        api = self.api_factory(server.base_url)
        response = api.login(normalized, password, device_uuid, self.device_name)

        user_id = str(response.user_id) if response.user_id is not None else None
        self.db.set_setting(SETTING_AUTH_TOKEN, response.token)
        self.db.set_setting(SETTING_USER_EMAIL, normalized)
        self.db.set_setting(SETTING_USER_ID, user_id)

        logger.info(f"Logged in as {normalized} (device {device_uuid})")
        return Session(
            email=normalized,
            token=response.token,
            device_uuid=device_uuid,
            server=server,
            user_id=user_id,
        )

    def register(
        self,
        email: str,
        password: str,
        confirm_password: str,
        server: Optional[ServerConfig] = None,
    ) -> uuid.UUID:
        """
        Create an account on the server.

        Args:
            email: Login email
            password: Password
            confirm_password: Must equal password
            server: Server settings; the remembered ones when None

        Returns:
            Device identity derived for the new account

        Raises:
            SessionError: If the input is invalid or the passwords differ
            ServerAPIError: If the server rejects the registration
        """
        normalized = self._validate_credentials(email, password)
        if password != confirm_password:
            raise SessionError("Passwords do not match")

        server = server or self.server_config()
        self.save_server_config(server)

        device_uuid = self.resolver.resolve(normalized, password)
        if device_uuid is None:
            raise IdentityError("Could not derive a device identity")

        api = self.api_factory(server.base_url)
        api.register(normalized, password, device_uuid, self.device_name)

        logger.info(f"Registered {normalized}")
        return device_uuid

    # =========================================================================
    # Cold start
    # =========================================================================

    def restore(self) -> Optional[Session]:
        """
        Restore the session saved by a previous login.

        Returns:
            Session, or None when nobody is logged in

        Raises:
            IdentityError: If a token is stored but no identity resolves for
                the remembered email. The token is cleared first.
        """
        token = self.db.get_setting(SETTING_AUTH_TOKEN)
        if not token:
            return None

        email = self.db.get_setting(SETTING_USER_EMAIL)
        device_uuid = self.resolver.resolve(email)
        if device_uuid is None:
            logger.warning("Stored session has no device identity, clearing it")
            self.db.clear_session()
            raise IdentityError(
                "Device identity missing. Please log in again."
            )

        return Session(
            email=normalize_email(email),
            token=token,
            device_uuid=device_uuid,
            server=self.server_config(),
            user_id=self.db.get_setting(SETTING_USER_ID),
        )

    def require(self) -> Session:
        """Return the restored session or raise AuthenticationRequiredError."""
        session = self.restore()
        if session is None:
            raise AuthenticationRequiredError("Not logged in. Run 'photosync login' first.")
        return session

    def logout(self) -> None:
        """Forget the session token. Device identities are kept."""
        self.db.clear_session()
        logger.info("Logged out")

    def auth_headers(self) -> dict[str, str]:
        """
        Headers for file requests of the current session.

        Raises:
            AuthenticationRequiredError: If nobody is logged in
            IdentityError: If the identity cannot be resolved
        """
        session = self.require()
        return {
            "Authorization": f"Bearer {session.token}",
            "X-Device-UUID": str(session.device_uuid),
        }

    def create_api(self, session: Session, **kwargs) -> ServerAPI:
        """Build a server client carrying the session's credentials."""
        return self.api_factory(
            session.server.base_url,
            token=session.token,
            device_uuid=session.device_uuid,
            **kwargs,
        )
