"""
Domain-specific error types for business rule violations.
"""

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class InvalidPromptDataError(DomainError):
    """Invalid prompt group or version data."""

    def __init__(self, field: str, value: Any, reason: str = "must not be empty") -> None:
        message = f"Invalid prompt data. Field: {field} {reason}"
        super().__init__(
            message, "INVALID_PROMPT_DATA", {"field": field, "value": value}
        )


class LastVersionDeletionError(DomainError):
    """Attempted to delete the only remaining version of a group."""

    def __init__(self, version_id: str, group_id: str) -> None:
        message = f"Version '{version_id}' is the last version of group '{group_id}'"
        super().__init__(
            message,
            "LAST_VERSION_DELETION",
            {"version_id": version_id, "group_id": group_id},
        )
