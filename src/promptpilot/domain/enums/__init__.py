"""
Domain enums package.
"""

from .version_status import VersionOrigin, VersionStatus

__all__ = [
    "VersionStatus",
    "VersionOrigin",
]
