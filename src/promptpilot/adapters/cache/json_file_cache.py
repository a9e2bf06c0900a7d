"""
JSON file implementation of PromptCacheStore.

Each namespace key is one JSON file in the cache directory. The prompt group
collection lives under a single key and is always read and written whole.
"""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

from promptpilot.application.dto.prompt_dto import StorageUsage
from promptpilot.application.ports.repositories.prompt_cache import PromptCacheStore
from promptpilot.domain.entities.prompt_group import PromptGroup
from promptpilot.domain.entities.prompt_version import PromptVersion

logger = logging.getLogger(__name__)

FILE_SUFFIX = ".json"
DEFAULT_CAPACITY_BYTES = 5 * 1024 * 1024
DEFAULT_NEAR_LIMIT_RATIO = 0.8


def version_to_dict(version: PromptVersion) -> Dict[str, Any]:
    return {
        "id": version.id,
        "group_id": version.group_id,
        "version_number": version.version_number,
        "name": version.name,
        "content": version.content,
        "status": version.status.value,
        "description": version.description,
        "parent_version_id": version.parent_version_id,
        "created_from": version.created_from.value,
        "remote_id": version.remote_id,
        "created_at": version.created_at.isoformat(),
    }


def version_from_dict(data: Dict[str, Any]) -> PromptVersion:
    return PromptVersion(
        id=data["id"],
        group_id=data["group_id"],
        version_number=int(data["version_number"]),
        name=data.get("name") or "",
        content=data["content"],
        status=data.get("status", "draft"),
        description=data.get("description"),
        parent_version_id=data.get("parent_version_id"),
        created_from=data.get("created_from", "manual"),
        remote_id=data.get("remote_id"),
        created_at=datetime.fromisoformat(data["created_at"]),
    )


def group_to_dict(group: PromptGroup) -> Dict[str, Any]:
    """Serialize a group; the synced-id set is flattened to a sorted list."""
    return {
        "id": group.id,
        "name": group.name,
        "description": group.description,
        "current_version_id": group.current_version_id,
        "production_version_id": group.production_version_id,
        "tags": list(group.tags),
        "remote_id": group.remote_id,
        "synced_version_ids": sorted(group.synced_version_ids),
        "created_at": group.created_at.isoformat(),
        "last_modified_at": group.last_modified_at.isoformat(),
        "versions": [version_to_dict(v) for v in group.versions],
    }


def group_from_dict(data: Dict[str, Any]) -> PromptGroup:
    """Rebuild a group; the stored id list becomes a set again."""
    group = PromptGroup(
        id=data["id"],
        name=data["name"],
        description=data.get("description"),
        versions=[version_from_dict(v) for v in data.get("versions", [])],
        tags=list(data.get("tags") or []),
        remote_id=data.get("remote_id"),
        synced_version_ids=set(data.get("synced_version_ids") or []),
        created_at=datetime.fromisoformat(data["created_at"]),
        last_modified_at=datetime.fromisoformat(data["last_modified_at"]),
    )
    group.refresh_pointers()
    return group


class JsonFileCacheStore(PromptCacheStore):
    """File-backed local cache for prompt groups."""

    def __init__(
        self,
        directory: str,
        namespace: str = "promptpilot_prompt_groups",
        capacity_bytes: int = DEFAULT_CAPACITY_BYTES,
        near_limit_ratio: float = DEFAULT_NEAR_LIMIT_RATIO,
    ) -> None:
        super().__init__()
        self.directory = Path(directory)
        self.namespace = namespace
        self.capacity_bytes = capacity_bytes
        self.near_limit_ratio = near_limit_ratio

    @classmethod
    def from_settings(cls, cache_settings) -> "JsonFileCacheStore":
        return cls(
            directory=cache_settings.directory,
            namespace=cache_settings.namespace,
            capacity_bytes=cache_settings.capacity_bytes,
            near_limit_ratio=cache_settings.near_limit_ratio,
        )

    @property
    def path(self) -> Path:
        return self.directory / f"{self.namespace}{FILE_SUFFIX}"

    def load(self) -> List[PromptGroup]:
        """Load all groups; missing or corrupt data yields an empty list."""
        with self.lock:
            try:
                if not self.path.exists():
                    return []
                raw = json.loads(self.path.read_text(encoding="utf-8"))
                if not isinstance(raw, list):
                    raise ValueError(f"expected a list, got {type(raw).__name__}")
                return [group_from_dict(item) for item in raw]
            except Exception as e:
                logger.error("Error reading cache namespace %r: %s", self.namespace, e)
                return []

    def save(self, groups: List[PromptGroup]) -> bool:
        """Atomically replace the stored collection."""
        with self.lock:
            try:
                payload = json.dumps([group_to_dict(g) for g in groups], ensure_ascii=False)
                encoded = payload.encode("utf-8")

                others = self._size_of_other_namespaces()
                if others + len(encoded) + len(self.namespace) > self.capacity_bytes:
                    logger.error(
                        "Cache write rejected for %r: %d bytes would exceed capacity of %d bytes",
                        self.namespace,
                        others + len(encoded),
                        self.capacity_bytes,
                    )
                    return False

                self.directory.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(dir=str(self.directory), suffix=".tmp")
                try:
                    with os.fdopen(fd, "wb") as fh:
                        fh.write(encoded)
                    os.replace(tmp_path, self.path)
                except BaseException:
                    if os.path.exists(tmp_path):
                        os.unlink(tmp_path)
                    raise
                return True
            except Exception as e:
                logger.error("Error writing cache namespace %r: %s", self.namespace, e)
                return False

    def clear(self) -> bool:
        with self.lock:
            try:
                if self.path.exists():
                    self.path.unlink()
                return True
            except OSError as e:
                logger.error("Error removing cache namespace %r: %s", self.namespace, e)
                return False

    def usage(self) -> StorageUsage:
        """Size across every namespace in the cache directory."""
        with self.lock:
            total = self._size_of_other_namespaces() + self._size_of(self.path)
            groups = self.load()
        return StorageUsage(
            total_bytes=total,
            capacity_bytes=self.capacity_bytes,
            is_near_limit=total > self.capacity_bytes * self.near_limit_ratio,
            group_count=len(groups),
            version_count=sum(len(g.versions) for g in groups),
        )

    def _size_of(self, path: Path) -> int:
        try:
            # Key length counts toward usage
            return path.stat().st_size + len(path.stem) if path.exists() else 0
        except OSError:
            return 0

    def _size_of_other_namespaces(self) -> int:
        if not self.directory.exists():
            return 0
        return sum(
            self._size_of(p)
            for p in self.directory.glob(f"*{FILE_SUFFIX}")
            if p != self.path
        )
