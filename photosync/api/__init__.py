"""
photosync.api - PhotoSync server client
"""

from photosync.api.server_api import (
    AuthenticationRequiredError,
    LoginResponse,
    ServerAPI,
    ServerAPIError,
    UploadResult,
)

__all__ = [
    "AuthenticationRequiredError",
    "LoginResponse",
    "ServerAPI",
    "ServerAPIError",
    "UploadResult",
]
