"""
PhotoSync server API client.

Provides a thin wrapper over the server's HTTP interface for:
- Listing the files stored for this user and device
- Uploading one file (multipart, field ``file``)
- Downloading one file to a staging path
- Logging in and registering
- Exponential backoff retry for idempotent requests

Every file request carries two headers:

    Authorization: Bearer <session token>
    X-Device-UUID: <device identity>

A request without a resolvable device identity fails locally and is never
sent.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

import requests
from requests.exceptions import RequestException

from photosync import __version__
from photosync.auth.identity import IdentityError
from photosync.media.asset import RemoteFile

# Server routes
LOGIN_ENDPOINT = "/api/login"
REGISTER_ENDPOINT = "/api/register"
FILES_ENDPOINT = "/api/files"
DEFAULT_UPLOAD_ENDPOINT = "/api/upload"

# Timeouts (seconds)
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_UPLOAD_TIMEOUT = 30.0

# Retry configuration defaults
DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_RETRY_DELAY = 1.0
DEFAULT_MAX_RETRY_DELAY = 30.0

# Download chunk size
DOWNLOAD_CHUNK_SIZE = 64 * 1024

USER_AGENT = f"photosync/{__version__}"

logger = logging.getLogger(__name__)


class ServerAPIError(Exception):
    """Raised when a server request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationRequiredError(ServerAPIError):
    """Raised when there is no session token or the server rejects it."""

    pass


@dataclass(frozen=True)
class UploadResult:
    """Server acknowledgment of one upload."""

    filename: str
    duplicate: bool = False


@dataclass(frozen=True)
class LoginResponse:
    """Session data returned by a successful login."""

    token: str
    user_id: Optional[int] = None


def _error_message(response: requests.Response) -> str:
    """Best-effort extraction of the server's error text."""
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] if response.text else response.reason or ""
    if isinstance(data, dict):
        return str(data.get("error") or data.get("message") or data)
    return str(data)


class ServerAPI:
    """
    HTTP client for the PhotoSync server.

    Attributes:
        base_url: Server base URL, e.g. ``http://192.168.1.20:3000``
        token: Session token from login
        device_uuid: Device identity bound to the session

    Usage:
        api = ServerAPI("http://192.168.1.20:3000", token=token, device_uuid=uuid)

        files = api.list_files()
        result = api.upload_file(Path("/photos/IMG_0001.JPG"), "IMG_0001.JPG", "image/jpeg")
        api.download_file("IMG_0002.JPG", Path("/tmp/staging/IMG_0002.JPG"))
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        device_uuid: Optional[uuid.UUID | str] = None,
        session: Optional[requests.Session] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        upload_timeout: float = DEFAULT_UPLOAD_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_retry_delay: float = DEFAULT_INITIAL_RETRY_DELAY,
        max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY,
        upload_endpoint: str = DEFAULT_UPLOAD_ENDPOINT,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.device_uuid = str(device_uuid) if device_uuid else None
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.request_timeout = request_timeout
        self.upload_timeout = upload_timeout
        self.max_retries = max(1, max_retries)
        self.initial_retry_delay = initial_retry_delay
        self.max_retry_delay = max_retry_delay
        self.upload_endpoint = upload_endpoint

    def set_credentials(
        self, token: Optional[str], device_uuid: Optional[uuid.UUID | str]
    ) -> None:
        """Replace the session token and device identity."""
        self.token = token
        self.device_uuid = str(device_uuid) if device_uuid else None

    def auth_headers(self) -> dict[str, str]:
        """
        Build the headers required by file requests.

        Returns:
            Authorization and X-Device-UUID headers

        Raises:
            IdentityError: If no device identity is set
            AuthenticationRequiredError: If no session token is set
        """
        if not self.device_uuid:
            raise IdentityError(
                "Device identity missing. Please log out and log in again."
            )
        if not self.token:
            raise AuthenticationRequiredError("Not logged in. Please log in first.")
        return {
            "Authorization": f"Bearer {self.token}",
            "X-Device-UUID": self.device_uuid,
        }

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _raise_for_status(self, response: requests.Response, operation_name: str) -> None:
        if response.status_code in (401, 403):
            raise AuthenticationRequiredError(
                f"{operation_name} rejected by server ({response.status_code}): "
                f"{_error_message(response)}",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise ServerAPIError(
                f"{operation_name} failed ({response.status_code}): "
                f"{_error_message(response)}",
                status_code=response.status_code,
            )

    def _request_with_retry(
        self, method: str, path: str, operation_name: str, **kwargs: Any
    ) -> requests.Response:
        """
        Send an idempotent request with exponential backoff retry.

        Retries on timeouts, connection errors and 5xx responses.

        Args:
            method: HTTP method
            path: Route below base_url
            operation_name: Name for logging purposes
            **kwargs: Passed to ``requests.Session.request``

        Returns:
            Successful response

        Raises:
            ServerAPIError: If the request fails after all retries
            AuthenticationRequiredError: If the server rejects the session
        """
        kwargs.setdefault("timeout", self.request_timeout)
        delay = self.initial_retry_delay
        url = self._url(path)

        for attempt in range(self.max_retries):
            is_last = attempt >= self.max_retries - 1
            try:
                response = self.session.request(method, url, **kwargs)
            except RequestException as e:
                if not is_last:
                    logger.warning(
                        f"{operation_name} network error, retrying in {delay:.1f}s "
                        f"(attempt {attempt + 1}/{self.max_retries}): {e}"
                    )
                    time.sleep(delay)
                    delay = min(delay * 2, self.max_retry_delay)
                    continue
                logger.error(f"{operation_name} failed after {self.max_retries} attempts: {e}")
                raise ServerAPIError(f"{operation_name} failed: {e}") from e

            if response.status_code >= 500 and not is_last:
                logger.warning(
                    f"{operation_name} server error ({response.status_code}), "
                    f"retrying in {delay:.1f}s"
                )
                response.close()
                time.sleep(delay)
                delay = min(delay * 2, self.max_retry_delay)
                continue

            self._raise_for_status(response, operation_name)
            return response

        # Should not reach here, but just in case
        raise ServerAPIError(f"{operation_name} failed after all retries")

    # =========================================================================
    # Session Operations
    # =========================================================================

    def _credentials_payload(
        self, email: str, password: str, device_uuid: uuid.UUID | str, device_name: str
    ) -> dict[str, str]:
        # The server accepts both spellings of the device field
        return {
            "email": email,
            "password": password,
            "device_uuid": str(device_uuid),
            "deviceUuid": str(device_uuid),
            "device_name": device_name,
        }

    def login(
        self, email: str, password: str, device_uuid: uuid.UUID | str, device_name: str
    ) -> LoginResponse:
        """
        Log in and obtain a session token bound to the device identity.

        Raises:
            AuthenticationRequiredError: If the credentials are rejected
            ServerAPIError: If the server cannot be reached or replies badly
        """
        logger.debug(f"Logging in as {email} at {self.base_url}")
        try:
            response = self.session.post(
                self._url(LOGIN_ENDPOINT),
                json=self._credentials_payload(email, password, device_uuid, device_name),
                timeout=self.request_timeout,
            )
        except RequestException as e:
            raise ServerAPIError(f"Cannot reach server at {self.base_url}: {e}") from e

        self._raise_for_status(response, "Login")

        try:
            data = response.json()
        except ValueError as e:
            raise ServerAPIError("Login response is not valid JSON") from e

        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise ServerAPIError("Login response did not include a token")

        user_id = data.get("userId")
        return LoginResponse(
            token=token, user_id=int(user_id) if user_id is not None else None
        )

    def register(
        self, email: str, password: str, device_uuid: uuid.UUID | str, device_name: str
    ) -> None:
        """
        Create an account on the server.

        Raises:
            ServerAPIError: If registration fails
        """
        logger.debug(f"Registering {email} at {self.base_url}")
        try:
            response = self.session.post(
                self._url(REGISTER_ENDPOINT),
                json=self._credentials_payload(email, password, device_uuid, device_name),
                timeout=self.request_timeout,
            )
        except RequestException as e:
            raise ServerAPIError(f"Cannot reach server at {self.base_url}: {e}") from e

        self._raise_for_status(response, "Registration")

    # =========================================================================
    # File Operations
    # =========================================================================

    def list_files(self) -> list[RemoteFile]:
        """
        List every file the server holds for this user and device.

        Returns:
            Remote files in server order

        Raises:
            IdentityError: If no device identity is set
            ServerAPIError: If the listing cannot be fetched or parsed
        """
        headers = self.auth_headers()
        response = self._request_with_retry(
            "GET", FILES_ENDPOINT, "list_files", headers=headers
        )

        try:
            data = response.json()
        except ValueError as e:
            raise ServerAPIError("File listing is not valid JSON") from e

        entries = data.get("files") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            raise ServerAPIError("File listing is missing the 'files' array")

        files: list[RemoteFile] = []
        for entry in entries:
            try:
                files.append(RemoteFile.from_dict(entry))
            except (ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed listing entry: {e}")
                continue

        logger.info(f"Listed {len(files)} files on server")
        return files

    def upload_file(self, path: Path, filename: str, mime_type: str) -> UploadResult:
        """
        Upload one file.

        The multipart part is named ``file`` and carries the actual filename.
        Uploads are not retried; a second attempt belongs to the next pass.

        Args:
            path: Local file to read
            filename: Filename to store on the server
            mime_type: Content type of the part

        Returns:
            UploadResult; ``duplicate`` is True when the server already had
            the content

        Raises:
            IdentityError: If no device identity is set
            ServerAPIError: If the upload fails
        """
        headers = self.auth_headers()
        try:
            with open(path, "rb") as fh:
                response = self.session.post(
                    self._url(self.upload_endpoint),
                    headers=headers,
                    files={"file": (filename, fh, mime_type)},
                    timeout=self.upload_timeout,
                )
        except OSError as e:
            raise ServerAPIError(f"Cannot read {path}: {e}") from e
        except RequestException as e:
            raise ServerAPIError(f"Upload of {filename} failed: {e}") from e

        self._raise_for_status(response, f"Upload of {filename}")

        try:
            data = response.json()
        except ValueError:
            data = {}

        duplicate = bool(data.get("duplicate")) if isinstance(data, dict) else False
        return UploadResult(filename=filename, duplicate=duplicate)

    def download_file(self, filename: str, dest_path: Path) -> Path:
        """
        Download one file to a staging path.

        Any file already at ``dest_path`` is removed first. An empty body is
        treated as a failure and leaves nothing behind.

        Args:
            filename: Server filename
            dest_path: Where to write the content

        Returns:
            dest_path

        Raises:
            IdentityError: If no device identity is set
            ServerAPIError: If the download fails or is empty
        """
        headers = self.auth_headers()
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        dest_path.unlink(missing_ok=True)

        response = self._request_with_retry(
            "GET",
            f"{FILES_ENDPOINT}/{quote(filename)}",
            f"download({filename})",
            headers=headers,
            stream=True,
        )

        written = 0
        try:
            with open(dest_path, "wb") as out:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        out.write(chunk)
                        written += len(chunk)
        except (OSError, RequestException) as e:
            dest_path.unlink(missing_ok=True)
            raise ServerAPIError(f"Download of {filename} failed: {e}") from e
        finally:
            response.close()

        if written == 0:
            dest_path.unlink(missing_ok=True)
            raise ServerAPIError(f"Download of {filename} returned no content")

        logger.debug(f"Downloaded {filename} ({written} bytes)")
        return dest_path

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()
