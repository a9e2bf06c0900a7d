"""
API schemas package.
"""

from .common import ApiResponse, ErrorResponse
from .prompts import (
    AddVersionRequest,
    CreateGroupRequest,
    PromptGroupSchema,
    PromptVersionSchema,
    SetVersionStatusRequest,
    StorageUsageSchema,
    UpdateGroupRequest,
    UpdateVersionRequest,
    VersionMatchSchema,
)

__all__ = [
    "ApiResponse",
    "ErrorResponse",
    "AddVersionRequest",
    "CreateGroupRequest",
    "PromptGroupSchema",
    "PromptVersionSchema",
    "SetVersionStatusRequest",
    "StorageUsageSchema",
    "UpdateGroupRequest",
    "UpdateVersionRequest",
    "VersionMatchSchema",
]
