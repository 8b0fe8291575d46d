"""
photosync.auth - device identity and login sessions
"""

from photosync.auth.identity import (
    IdentityError,
    IdentityResolver,
    derive_device_uuid,
)

__all__ = [
    "IdentityError",
    "IdentityResolver",
    "derive_device_uuid",
]
