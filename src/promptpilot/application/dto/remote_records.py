"""Record shapes exchanged with the remote prompt store.

These mirror the remote ``prompt_groups`` / ``prompt_versions`` columns and
are independent of the local entity shapes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ...domain.enums.version_status import VersionStatus


@dataclass
class RemoteVersionRecord:
    id: str
    group_id: str
    name: str
    content: str
    status: VersionStatus
    version_number: int
    created_at: datetime
    updated_at: datetime
    description: Optional[str] = None
    parent_version_id: Optional[str] = None
    author_notes: Optional[str] = None
    performance_score: Optional[float] = None
    usage_count: int = 0
    is_archived: bool = False


@dataclass
class RemoteGroupRecord:
    id: str
    name: str
    created_at: datetime
    updated_at: datetime
    # Carries the first version's prompt text, not the local description
    description: Optional[str] = None
    user_id: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    is_archived: bool = False
    sort_order: int = 0
    versions: List[RemoteVersionRecord] = field(default_factory=list)
