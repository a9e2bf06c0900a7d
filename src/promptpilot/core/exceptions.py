"""
Exception handling for PromptPilot.

This module provides custom exception classes for the infrastructure
layers (configuration, local cache, remote store).
"""

from typing import Any, Dict, Optional


class PromptPilotException(Exception):
    """Base exception class for PromptPilot."""

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


class ConfigurationError(PromptPilotException):
    """Raised when there's a configuration error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "CONFIG_ERROR", details)


class CacheError(PromptPilotException):
    """Raised when the local cache cannot be read or written."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "CACHE_ERROR", details)


class ExternalServiceError(PromptPilotException):
    """Raised when there's an external service error."""

    def __init__(
        self, service: str, message: str, details: Optional[Dict[str, Any]] = None
    ) -> None:
        self.service = service
        full_message = f"{service} service error: {message}"
        super().__init__(full_message, "EXTERNAL_SERVICE_ERROR", details)


class RemoteStoreError(ExternalServiceError):
    """Raised when the remote prompt store rejects or fails an operation."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("RemoteStore", message, details)


class RemoteRecordNotFoundError(RemoteStoreError):
    """Raised when a remote group or version record does not exist."""

    def __init__(self, collection: str, record_id: str) -> None:
        super().__init__(
            f"{collection} record '{record_id}' not found",
            {"collection": collection, "record_id": record_id},
        )
