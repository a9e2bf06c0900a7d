"""Version control engine: the operation surface for prompt groups and versions.

Every mutation is applied to the local cache first and returns as soon as the
cache write succeeds. Remote reconciliation is requested afterwards and never
awaited, with the single exception of ``delete_group``.
"""

import logging
from typing import Callable, List, Optional, Tuple

from ...core.exceptions import CacheError
from ...domain.entities.prompt_group import PromptGroup
from ...domain.entities.prompt_version import PromptVersion
from ...domain.enums.version_status import VersionStatus
from ...domain.errors import InvalidPromptDataError, LastVersionDeletionError
from ..dto.prompt_dto import AddVersionOptions, StorageUsage, VersionMatch
from ..ports.repositories.prompt_cache import PromptCacheStore
from .sync_manager import SyncManager

logger = logging.getLogger(__name__)

Listener = Callable[[List[PromptGroup]], None]


def _require_text(field: str, value: Optional[str]) -> None:
    if value is None or not value.strip():
        raise InvalidPromptDataError(field, value)


class VersionControlService:
    """Create, mutate and query prompt groups held in the local cache."""

    def __init__(self, store: PromptCacheStore, sync_manager: Optional[SyncManager] = None):
        self._store = store
        self._sync = sync_manager
        self._listeners: List[Listener] = []
        if sync_manager is not None:
            sync_manager.add_listener(self._notify)

    @property
    def store(self) -> PromptCacheStore:
        return self._store

    @property
    def sync_manager(self) -> Optional[SyncManager]:
        return self._sync

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register for change notifications; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_prompt_group(
        self,
        name: str,
        content: str,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> PromptGroup:
        """Create a group together with its first ``current`` version."""
        _require_text("name", name)
        _require_text("content", content)

        with self._store.lock:
            groups = self._store.load()
            group = PromptGroup.create(name, content, description=description, tags=tags)
            groups.append(group)
            self._commit(groups)

        logger.info("Created prompt group %s (%s)", group.id, group.name)
        if self._sync is not None:
            self._sync.schedule_push()
            self._sync.schedule_pull()
        return group

    create_group = create_prompt_group

    def add_version(
        self,
        group_id: str,
        content: str,
        options: Optional[AddVersionOptions] = None,
    ) -> Optional[PromptVersion]:
        """Append a version to a group; ``None`` when the group does not exist."""
        _require_text("content", content)
        options = options or AddVersionOptions()

        with self._store.lock:
            groups = self._store.load()
            group = self._find_group(groups, group_id)
            if group is None:
                logger.warning("add_version: group %s not found", group_id)
                return None
            if options.parent_version_id and group.find_version(options.parent_version_id) is None:
                raise InvalidPromptDataError(
                    "parent_version_id", options.parent_version_id, "must name a version in the same group"
                )
            version = group.add_version(
                content,
                name=options.name,
                description=options.description,
                status=options.status,
                parent_version_id=options.parent_version_id,
                created_from=options.created_from,
            )
            self._commit(groups)

        logger.info("Added version %d to group %s", version.version_number, group_id)
        if self._sync is not None:
            self._sync.schedule_push()
        return version

    def set_version_status(self, version_id: str, status: VersionStatus) -> bool:
        """Apply the status transition rule; ``False`` when the version is unknown."""
        status = VersionStatus(status)
        with self._store.lock:
            groups = self._store.load()
            group, version = self._locate_version(groups, version_id)
            if version is None:
                return False
            group.apply_status(version, status)
            self._commit(groups)

        logger.info("Version %s set to %s", version_id, status.value)
        if self._sync is not None:
            self._sync.push_version_status(version)
        return True

    def delete_version(self, version_id: str) -> bool:
        """Delete a version; refused for unknown ids and for a group's last version."""
        with self._store.lock:
            groups = self._store.load()
            group, version = self._locate_version(groups, version_id)
            if version is None:
                return False
            try:
                promoted = group.remove_version(version_id)
            except LastVersionDeletionError as e:
                logger.warning("delete_version refused: %s", e.message)
                return False
            self._commit(groups)

        logger.info("Deleted version %s from group %s", version_id, group.id)
        if self._sync is not None:
            self._sync.push_version_delete(version)
            if promoted is not None:
                self._sync.push_version_status(promoted)
        return True

    async def delete_group(self, group_id: str) -> bool:
        """Delete a group remotely first, then locally whatever the remote outcome."""
        with self._store.lock:
            group = self._find_group(self._store.load(), group_id)
        if group is None:
            return False

        remote_id = self._sync.remote_id_for(group) if self._sync is not None else None
        if remote_id:
            deleted = await self._sync.delete_remote_group(group)
            if not deleted:
                logger.warning(
                    "Remote deletion of group %s (%s) failed; removing locally",
                    group_id,
                    remote_id,
                )

        with self._store.lock:
            groups = self._store.load()
            remaining = [g for g in groups if g.id != group_id]
            if len(remaining) == len(groups):
                return False
            self._commit(remaining)

        logger.info("Deleted prompt group %s", group_id)
        if self._sync is not None:
            self._sync.schedule_pull()
        return True

    def update_group(
        self,
        group_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> Optional[PromptGroup]:
        with self._store.lock:
            groups = self._store.load()
            group = self._find_group(groups, group_id)
            if group is None:
                return None
            group.update_metadata(name=name, description=description, tags=tags)
            self._commit(groups)

        if self._sync is not None:
            self._sync.push_group_metadata(group)
        return group

    def update_version(
        self,
        version_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[PromptVersion]:
        with self._store.lock:
            groups = self._store.load()
            group, version = self._locate_version(groups, version_id)
            if version is None:
                return None
            version.rename(name=name, description=description)
            group.touch()
            self._commit(groups)

        if self._sync is not None:
            self._sync.push_version_metadata(version)
        return version

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all_groups(self) -> List[PromptGroup]:
        """Return every group; also requests a pull from the remote store."""
        groups = self._store.load()
        if self._sync is not None:
            self._sync.schedule_pull(delay=0)
        return groups

    def get_group_by_id(self, group_id: str) -> Optional[PromptGroup]:
        return self._find_group(self._store.load(), group_id)

    def get_version_by_id(self, version_id: str) -> Optional[PromptVersion]:
        _, version = self._locate_version(self._store.load(), version_id)
        return version

    def get_versions_for_group(self, group_id: str) -> List[PromptVersion]:
        """Versions of a group, newest number first; empty for unknown groups."""
        group = self.get_group_by_id(group_id)
        return group.versions_descending() if group else []

    def search_versions(self, query: str) -> List[VersionMatch]:
        """Case-insensitive substring search over version text and group name.

        The query is used as given; an empty query matches every version.
        """
        needle = (query or "").lower()
        matches: List[VersionMatch] = []
        for group in self._store.load():
            group_hit = group.matches(needle)
            for version in group.versions_descending():
                if group_hit or version.matches(needle):
                    matches.append(VersionMatch(group=group, version=version))
        return matches

    def get_recent_versions(self, limit: int = 10) -> List[VersionMatch]:
        """All versions across groups, newest first, truncated to ``limit``."""
        if limit <= 0:
            return []
        pairs = [
            VersionMatch(group=group, version=version)
            for group in self._store.load()
            for version in group.versions
        ]
        pairs.sort(key=lambda m: m.version.created_at, reverse=True)
        return pairs[:limit]

    def get_storage_usage(self) -> StorageUsage:
        usage = self._store.usage()
        if usage.is_near_limit:
            logger.warning(
                "Local cache is near capacity: %d of %d bytes",
                usage.total_bytes,
                usage.capacity_bytes,
            )
        return usage

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _commit(self, groups: List[PromptGroup]) -> None:
        if not self._store.save(groups):
            raise CacheError("Failed to write prompt groups to the local cache")
        self._notify(groups)

    def _notify(self, groups: List[PromptGroup]) -> None:
        for listener in list(self._listeners):
            try:
                listener(groups)
            except Exception as e:
                logger.error("Change listener failed: %s", e, exc_info=True)

    @staticmethod
    def _find_group(groups: List[PromptGroup], group_id: str) -> Optional[PromptGroup]:
        for group in groups:
            if group.id == group_id:
                return group
        return None

    @staticmethod
    def _locate_version(
        groups: List[PromptGroup], version_id: str
    ) -> Tuple[Optional[PromptGroup], Optional[PromptVersion]]:
        for group in groups:
            version = group.find_version(version_id)
            if version is not None:
                return group, version
        return None, None
