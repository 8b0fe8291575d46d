"""
photosync - Photo and video backup between a device media library and a
PhotoSync server.

Reconciles the local media library with the server's file listing,
uploads what the server is missing, restores what the device is missing
and removes exact duplicate media from the local library.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
