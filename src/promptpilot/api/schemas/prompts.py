"""
Prompt group and version schemas.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ...application.dto.prompt_dto import StorageUsage, VersionMatch
from ...domain.entities.prompt_group import PromptGroup
from ...domain.entities.prompt_version import PromptVersion
from ...domain.enums.version_status import VersionOrigin, VersionStatus


def _not_blank(v: Optional[str]) -> Optional[str]:
    if v is not None and not v.strip():
        raise ValueError("must not be empty")
    return v


def _clean_tags(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return v
    tags = [t.strip() for t in v if t and t.strip()]
    return list(dict.fromkeys(tags))


# ============================================================================
# REQUESTS
# ============================================================================


class CreateGroupRequest(BaseModel):
    """Create a prompt group with its first version."""

    name: str = Field(..., description="Group name")
    content: str = Field(..., description="Prompt text of the first version")
    description: Optional[str] = Field(None, description="Group description")
    tags: List[str] = Field(default_factory=list, description="Free-form tags")

    @field_validator("name", "content")
    @classmethod
    def validate_text(cls, v: str) -> str:
        return _not_blank(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        return _clean_tags(v)


class UpdateGroupRequest(BaseModel):
    name: Optional[str] = Field(None, description="New group name")
    description: Optional[str] = Field(None, description="New description")
    tags: Optional[List[str]] = Field(None, description="Replacement tag list")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return _not_blank(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_tags(v)


class AddVersionRequest(BaseModel):
    """Append a version to a group."""

    content: str = Field(..., description="Prompt text")
    name: Optional[str] = Field(None, description="Version label, defaults to v<number>")
    description: Optional[str] = Field(None)
    status: VersionStatus = Field(VersionStatus.DRAFT, description="Initial status")
    parent_version_id: Optional[str] = Field(None, description="Version this one was derived from")
    created_from: VersionOrigin = Field(VersionOrigin.MANUAL, description="How the text was produced")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _not_blank(v)


class UpdateVersionRequest(BaseModel):
    name: Optional[str] = Field(None)
    description: Optional[str] = Field(None)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return _not_blank(v)


class SetVersionStatusRequest(BaseModel):
    status: VersionStatus = Field(..., description="draft, current or production")


# ============================================================================
# RESPONSES
# ============================================================================


class PromptVersionSchema(BaseModel):
    id: str
    group_id: str
    version_number: int
    name: str
    content: str
    status: VersionStatus
    description: Optional[str] = None
    parent_version_id: Optional[str] = None
    created_from: VersionOrigin = VersionOrigin.MANUAL
    remote_id: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_entity(cls, version: PromptVersion) -> "PromptVersionSchema":
        return cls(
            id=version.id,
            group_id=version.group_id,
            version_number=version.version_number,
            name=version.name,
            content=version.content,
            status=version.status,
            description=version.description,
            parent_version_id=version.parent_version_id,
            created_from=version.created_from,
            remote_id=version.remote_id,
            created_at=version.created_at,
        )


class PromptGroupSchema(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    current_version_id: Optional[str] = None
    production_version_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    remote_id: Optional[str] = None
    synced_version_ids: List[str] = Field(default_factory=list)
    created_at: datetime
    last_modified_at: datetime
    versions: List[PromptVersionSchema] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, group: PromptGroup) -> "PromptGroupSchema":
        return cls(
            id=group.id,
            name=group.name,
            description=group.description,
            current_version_id=group.current_version_id,
            production_version_id=group.production_version_id,
            tags=list(group.tags),
            remote_id=group.remote_id,
            synced_version_ids=sorted(group.synced_version_ids),
            created_at=group.created_at,
            last_modified_at=group.last_modified_at,
            versions=[PromptVersionSchema.from_entity(v) for v in group.versions_descending()],
        )


class VersionMatchSchema(BaseModel):
    """A version together with the group it belongs to."""

    group_id: str
    group_name: str
    version: PromptVersionSchema

    @classmethod
    def from_match(cls, match: VersionMatch) -> "VersionMatchSchema":
        return cls(
            group_id=match.group.id,
            group_name=match.group.name,
            version=PromptVersionSchema.from_entity(match.version),
        )


class StorageUsageSchema(BaseModel):
    total_bytes: int
    capacity_bytes: int
    used_ratio: float
    is_near_limit: bool
    group_count: int
    version_count: int

    @classmethod
    def from_usage(cls, usage: StorageUsage) -> "StorageUsageSchema":
        return cls(
            total_bytes=usage.total_bytes,
            capacity_bytes=usage.capacity_bytes,
            used_ratio=round(usage.used_ratio, 4),
            is_near_limit=usage.is_near_limit,
            group_count=usage.group_count,
            version_count=usage.version_count,
        )
