"""
Normalization utilities for filename and credential identity.

Filenames are compared case-insensitively everywhere: "IMG_0001.MOV" and
"img_0001.mov" name the same asset on both sides of a reconciliation.
"""

from __future__ import annotations

from urllib.parse import unquote, urlsplit


def normalize_filename(filename: str | None) -> str:
    """
    Normalize a filename into its reconciliation key.

    Only case is folded. Whitespace, unicode form and extensions are left
    untouched so that the key stays compatible with the server listing.

    Args:
        filename: Filename as reported by the library or the server

    Returns:
        Lower-cased filename, or empty string for missing input
    """
    if not filename:
        return ""
    return filename.lower()


def normalize_email(email: str | None) -> str:
    """
    Normalize an email address for identity derivation.

    The mobile client lower-cases the address and nothing else; any other
    transformation would derive a different device identity for the same
    credentials, so surrounding whitespace is preserved as typed.

    Args:
        email: Email address as entered by the user

    Returns:
        Lower-cased email, or empty string for missing input
    """
    if not email:
        return ""
    return email.lower()


def normalize_host_input(value: str | None) -> str:
    """
    Reduce a user-entered server address to a bare host.

    Users may paste a full URL. The scheme, path, query, fragment and port
    are dropped; ports are added back when the base URL is built.

    Args:
        value: Raw host or URL string

    Returns:
        Host name or IP address, or empty string

    Example:
        >>> normalize_host_input("https://photos.example.com:3000/api?x=1")
        'photos.example.com'
    """
    raw = (value or "").strip()
    if not raw:
        return ""

    if "://" not in raw:
        raw = f"//{raw}"
    parts = urlsplit(raw)
    host = parts.netloc or parts.path.split("/")[0]

    # Drop credentials and port
    host = host.rsplit("@", 1)[-1]
    if ":" in host:
        host = host.split(":")[0]
    return unquote(host)
