"""Prompt DTOs passed between the engine, the sync manager and the API."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ...domain.entities.prompt_group import PromptGroup
from ...domain.entities.prompt_version import PromptVersion
from ...domain.enums.version_status import VersionOrigin, VersionStatus


@dataclass
class AddVersionOptions:
    """Optional fields for ``add_version``."""

    name: Optional[str] = None
    description: Optional[str] = None
    status: VersionStatus = VersionStatus.DRAFT
    parent_version_id: Optional[str] = None
    created_from: VersionOrigin = VersionOrigin.MANUAL


@dataclass
class VersionMatch:
    """A version paired with the group that owns it (search / recent results)."""

    group: PromptGroup
    version: PromptVersion


@dataclass
class StorageUsage:
    """Local cache size report."""

    total_bytes: int
    capacity_bytes: int
    is_near_limit: bool
    group_count: int = 0
    version_count: int = 0

    @property
    def used_ratio(self) -> float:
        return self.total_bytes / self.capacity_bytes if self.capacity_bytes else 0.0


@dataclass
class DeadLetter:
    """A record that exhausted its push attempts."""

    group_id: str
    version_id: Optional[str]
    attempts: int
    last_error: str
    failed_at: datetime


@dataclass
class SyncStatus:
    """Snapshot of reconciliation state for diagnostics."""

    enabled: bool
    active_pushes: int = 0
    pull_in_progress: bool = False
    pending_tasks: int = 0
    last_pull_at: Optional[datetime] = None
    last_pull_error: Optional[str] = None
    dead_letters: List[DeadLetter] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "active_pushes": self.active_pushes,
            "pull_in_progress": self.pull_in_progress,
            "pending_tasks": self.pending_tasks,
            "last_pull_at": self.last_pull_at.isoformat() if self.last_pull_at else None,
            "last_pull_error": self.last_pull_error,
            "dead_letters": [
                {
                    "group_id": d.group_id,
                    "version_id": d.version_id,
                    "attempts": d.attempts,
                    "last_error": d.last_error,
                    "failed_at": d.failed_at.isoformat(),
                }
                for d in self.dead_letters
            ],
        }
