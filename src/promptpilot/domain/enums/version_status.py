"""
Lifecycle enums for prompt versions.
"""

from enum import Enum


class VersionStatus(str, Enum):
    """Lifecycle status of a prompt version within its group."""

    DRAFT = "draft"
    CURRENT = "current"        # Active for everyday use, at most one per group
    PRODUCTION = "production"  # Vetted/deployed, at most one per group

    @property
    def is_exclusive(self) -> bool:
        """Whether only one version per group may hold this status."""
        return self in (VersionStatus.CURRENT, VersionStatus.PRODUCTION)


class VersionOrigin(str, Enum):
    """How a version came to exist."""

    MANUAL = "manual"
    IMPROVED = "improved"
    GENERATED = "generated"
    REWRITTEN = "rewritten"
