"""PromptGroup aggregate: a named prompt and the versions it owns."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Set

from ..enums.version_status import VersionOrigin, VersionStatus
from ..errors import InvalidPromptDataError, LastVersionDeletionError
from .prompt_version import PromptVersion, new_entity_id, utcnow


@dataclass
class PromptGroup:
    """Prompt group aggregate root.

    Invariants enforced here:
    - at most one version is ``current`` and at most one is ``production``;
    - the group always owns at least one version;
    - version numbers grow as ``max(existing) + 1``.

    ``current_version_id`` / ``production_version_id`` are derived from the
    version statuses after every status change, so they are never stale.
    """

    id: str
    name: str
    versions: List[PromptVersion] = field(default_factory=list)
    description: Optional[str] = None
    current_version_id: Optional[str] = None
    production_version_id: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    remote_id: Optional[str] = None
    synced_version_ids: Set[str] = field(default_factory=set)
    created_at: datetime = field(default_factory=utcnow)
    last_modified_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        """Validate group data."""
        if not self.name or not self.name.strip():
            raise InvalidPromptDataError("name", self.name)
        self.synced_version_ids = set(self.synced_version_ids or ())

    @classmethod
    def create(
        cls,
        name: str,
        content: str,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> "PromptGroup":
        """Create a group together with its initial ``current`` version.

        Both objects are validated before either is returned, so a caller
        never sees a group without its first version.
        """
        group_id = new_entity_id()
        first = PromptVersion.create(
            group_id=group_id,
            version_number=1,
            content=content,
            description=description or "Initial version",
            status=VersionStatus.CURRENT,
        )
        group = cls(
            id=group_id,
            name=name,
            description=description,
            versions=[first],
            tags=list(tags or []),
            created_at=first.created_at,
            last_modified_at=first.created_at,
        )
        group.refresh_pointers()
        return group

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_version(self, version_id: str) -> Optional[PromptVersion]:
        for version in self.versions:
            if version.id == version_id:
                return version
        return None

    def find_version_by_remote_id(self, remote_id: str) -> Optional[PromptVersion]:
        for version in self.versions:
            if version.remote_id == remote_id:
                return version
        return None

    def next_version_number(self) -> int:
        if not self.versions:
            return 1
        return max(v.version_number for v in self.versions) + 1

    def versions_descending(self) -> List[PromptVersion]:
        return sorted(self.versions, key=lambda v: v.version_number, reverse=True)

    def unsynced_versions(self) -> List[PromptVersion]:
        """Versions not yet confirmed present in the remote store, oldest first."""
        pending = [v for v in self.versions if v.id not in self.synced_version_ids]
        return sorted(pending, key=lambda v: v.version_number)

    @property
    def current_version(self) -> Optional[PromptVersion]:
        return self.find_version(self.current_version_id) if self.current_version_id else None

    @property
    def production_version(self) -> Optional[PromptVersion]:
        return self.find_version(self.production_version_id) if self.production_version_id else None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def touch(self) -> None:
        self.last_modified_at = utcnow()

    def refresh_pointers(self) -> None:
        """Re-derive the group-level status pointers from version statuses."""
        self.current_version_id = None
        self.production_version_id = None
        for version in self.versions:
            if version.status == VersionStatus.CURRENT:
                self.current_version_id = version.id
            elif version.status == VersionStatus.PRODUCTION:
                self.production_version_id = version.id

    def apply_status(self, version: PromptVersion, status: VersionStatus) -> None:
        """Move ``version`` to ``status``, demoting any other holder first."""
        status = VersionStatus(status)
        if status.is_exclusive:
            for other in self.versions:
                if other.id != version.id and other.status == status:
                    other.status = VersionStatus.DRAFT
        version.status = status
        self.refresh_pointers()
        self.touch()

    def add_version(
        self,
        content: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        status: VersionStatus = VersionStatus.DRAFT,
        parent_version_id: Optional[str] = None,
        created_from: VersionOrigin = VersionOrigin.MANUAL,
    ) -> PromptVersion:
        """Append a new version numbered ``max(existing) + 1``."""
        version = PromptVersion.create(
            group_id=self.id,
            version_number=self.next_version_number(),
            content=content,
            name=name,
            description=description,
            status=VersionStatus.DRAFT,
            parent_version_id=parent_version_id,
            created_from=created_from,
        )
        self.versions.append(version)
        self.apply_status(version, status)
        return version

    def remove_version(self, version_id: str) -> Optional[PromptVersion]:
        """Remove a version and return the version promoted to ``current``, if any.

        Raises ``LastVersionDeletionError`` when the version is the only one
        left. When the removed version held ``current`` the remaining version
        with the highest number takes over; ``production`` is never
        auto-assigned.
        """
        version = self.find_version(version_id)
        if version is None:
            return None
        if len(self.versions) == 1:
            raise LastVersionDeletionError(version_id, self.id)

        self.versions = [v for v in self.versions if v.id != version_id]
        self.synced_version_ids.discard(version_id)

        promoted = None
        if version.status == VersionStatus.CURRENT:
            promoted = max(self.versions, key=lambda v: v.version_number)
            promoted.status = VersionStatus.CURRENT
        self.refresh_pointers()
        self.touch()
        return promoted

    def update_metadata(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> None:
        """Patch group metadata; ``None`` leaves a field unchanged."""
        if name is not None:
            if not name.strip():
                raise InvalidPromptDataError("name", name)
            self.name = name
        if description is not None:
            self.description = description
        if tags is not None:
            self.tags = list(tags)
        self.touch()

    def matches(self, lowercase_query: str) -> bool:
        return lowercase_query in self.name.lower()
