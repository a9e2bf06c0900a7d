"""PromptVersion domain entity: one snapshot of a prompt's text."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from ..enums.version_status import VersionOrigin, VersionStatus
from ..errors import InvalidPromptDataError


def utcnow() -> datetime:
    """Timezone-aware current UTC time used for all entity timestamps."""
    return datetime.now(timezone.utc)


def new_entity_id() -> str:
    """Generate an opaque identifier for a group or version."""
    return str(uuid.uuid4())


def default_version_name(version_number: int) -> str:
    return f"v{version_number}"


@dataclass
class PromptVersion:
    """Prompt version domain entity.

    Content is fixed at creation; status, name and description are the only
    fields mutated in place.
    """

    id: str
    group_id: str
    version_number: int
    name: str
    content: str
    status: VersionStatus = VersionStatus.DRAFT
    description: Optional[str] = None
    parent_version_id: Optional[str] = None
    created_from: VersionOrigin = VersionOrigin.MANUAL
    remote_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        """Validate version data."""
        if not self.content or not self.content.strip():
            raise InvalidPromptDataError("content", self.content)
        if not isinstance(self.version_number, int) or self.version_number < 1:
            raise InvalidPromptDataError(
                "version_number", self.version_number, "must be a positive integer"
            )
        if not self.name or not self.name.strip():
            self.name = default_version_name(self.version_number)
        # Accept raw strings coming back from storage
        self.status = VersionStatus(self.status)
        self.created_from = VersionOrigin(self.created_from)

    @classmethod
    def create(
        cls,
        group_id: str,
        version_number: int,
        content: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        status: VersionStatus = VersionStatus.DRAFT,
        parent_version_id: Optional[str] = None,
        created_from: VersionOrigin = VersionOrigin.MANUAL,
    ) -> "PromptVersion":
        """Create a brand-new version with a freshly generated id."""
        return cls(
            id=new_entity_id(),
            group_id=group_id,
            version_number=version_number,
            name=name or default_version_name(version_number),
            content=content,
            status=status,
            description=description,
            parent_version_id=parent_version_id,
            created_from=created_from,
        )

    def rename(self, name: Optional[str] = None, description: Optional[str] = None) -> None:
        """Patch version metadata; ``None`` leaves a field unchanged."""
        if name is not None:
            if not name.strip():
                raise InvalidPromptDataError("name", name)
            self.name = name
        if description is not None:
            self.description = description

    def matches(self, lowercase_query: str) -> bool:
        """Case-insensitive substring match over name, content and description."""
        return (
            lowercase_query in self.content.lower()
            or lowercase_query in self.name.lower()
            or (self.description is not None and lowercase_query in self.description.lower())
        )
