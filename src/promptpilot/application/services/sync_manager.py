"""
Reconciliation between the local prompt cache and the remote prompt store.

Pushes send local groups and versions the remote store has not confirmed yet.
Pulls fetch the remote collection and merge it into the cache. Both run as
background tasks on the running event loop; callers of the version control
service never wait on them.
"""

import asyncio
import itertools
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from ...core.config import SyncSettings
from ...core.exceptions import RemoteRecordNotFoundError
from ...core.structured_logger import get_logger
from ...domain.entities.prompt_group import PromptGroup
from ...domain.entities.prompt_version import PromptVersion, new_entity_id, utcnow
from ...domain.enums.version_status import VersionOrigin, VersionStatus
from ...domain.errors import DomainError
from ..dto.prompt_dto import DeadLetter, SyncStatus
from ..dto.remote_records import RemoteGroupRecord
from ..ports.repositories.prompt_cache import PromptCacheStore
from ..ports.services.remote_prompt_store import RemotePromptStore

logger = logging.getLogger(__name__)
dead_letter_log = get_logger("promptpilot.sync.dead_letters", component="sync")

Listener = Callable[[List[PromptGroup]], None]
PushKey = Tuple[str, str]

OP_SET_STATUS = "set_version_status"
OP_UPDATE_GROUP = "update_group"
OP_UPDATE_VERSION = "update_version"
OP_DELETE_VERSION = "delete_version"
OP_DELETE_GROUP = "delete_group"


@dataclass
class _PushFailure:
    attempts: int = 0
    last_error: str = ""
    next_attempt_at: float = 0.0


def _find_group(groups: List[PromptGroup], group_id: str) -> Optional[PromptGroup]:
    for group in groups:
        if group.id == group_id:
            return group
    return None


class SyncManager:
    """Background push/pull reconciliation for one cache and one remote store.

    A single event loop is assumed. Pushes may run concurrently with each
    other; a pull waits until no push is active and blocks new pushes while
    it applies its snapshot.
    """

    def __init__(
        self,
        store: PromptCacheStore,
        remote: RemotePromptStore,
        settings: SyncSettings,
    ) -> None:
        self.store = store
        self.remote = remote
        self.settings = settings

        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[Listener] = []

        self._cond = asyncio.Condition()
        self._active_pushes = 0
        self._pulling = False
        self._pull_pending = False

        self._groups_in_flight: Set[str] = set()
        self._versions_in_flight: Set[str] = set()
        self._failures: Dict[PushKey, _PushFailure] = {}
        self._dead_letters: Dict[PushKey, DeadLetter] = {}
        # Created remotely but the cache refused the remote id; local id -> remote id
        self._created_groups: Dict[str, str] = {}
        self._created_versions: Dict[str, str] = {}

        # Remote writes that failed, replayed on the next push pass
        self._replay: Dict[PushKey, Callable[[], Awaitable[Any]]] = {}
        self._op_seq: Dict[PushKey, int] = {}
        self._seq_counter = itertools.count(1)
        # Status writes not yet confirmed; overlaid on pulled versions
        self._unconfirmed_status: Dict[str, VersionStatus] = {}

        self._last_pull_at: Optional[datetime] = None
        self._last_pull_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def schedule_push(self) -> None:
        if self.enabled:
            self._spawn(self.push_pending())

    def schedule_pull(self, delay: Optional[float] = None) -> None:
        """Request a pull; at most one is pending at a time."""
        if not self.enabled or self._pull_pending:
            return
        if delay is None:
            delay = self.settings.pull_delay_seconds
        if self._spawn(self._delayed_pull(delay)) is not None:
            self._pull_pending = True

    def push_version_status(self, version: PromptVersion) -> None:
        """Send a status change for an already pushed version."""
        if not self.enabled or not version.remote_id:
            return
        remote_id = version.remote_id
        status = VersionStatus(version.status)
        self._unconfirmed_status[remote_id] = status
        self._submit(
            OP_SET_STATUS,
            remote_id,
            lambda: self.remote.set_version_status(remote_id, status),
        )

    def push_group_metadata(self, group: PromptGroup) -> None:
        # The remote description holds prompt text, so only name and tags go out
        if not self.enabled or not group.remote_id:
            return
        remote_id, name, tags = group.remote_id, group.name, list(group.tags)
        self._submit(
            OP_UPDATE_GROUP,
            remote_id,
            lambda: self.remote.update_group(remote_id, name=name, tags=tags),
        )

    def push_version_metadata(self, version: PromptVersion) -> None:
        if not self.enabled or not version.remote_id:
            return
        remote_id, name, description = version.remote_id, version.name, version.description
        self._submit(
            OP_UPDATE_VERSION,
            remote_id,
            lambda: self.remote.update_version(remote_id, name=name, description=description),
        )

    def push_version_delete(self, version: PromptVersion) -> None:
        remote_id = version.remote_id or self._created_versions.pop(version.id, None)
        if not self.enabled or not remote_id:
            return
        self._unconfirmed_status.pop(remote_id, None)
        self._submit(OP_DELETE_VERSION, remote_id, lambda: self.remote.delete_version(remote_id))

    def remote_id_for(self, group: PromptGroup) -> Optional[str]:
        """The group's remote id, including one created but not yet recorded locally."""
        return group.remote_id or self._created_groups.get(group.id)

    async def delete_remote_group(self, group: PromptGroup) -> bool:
        """Delete a group remotely, awaited by the caller. Failures are queued."""
        remote_id = self.remote_id_for(group)
        if not self.enabled or not remote_id:
            return False
        self._created_groups.pop(group.id, None)
        key = (OP_DELETE_GROUP, remote_id)
        seq = self._next_seq(key)
        return await self._run_remote_op(key, seq, lambda: self.remote.delete_group(remote_id))

    async def drain(self) -> None:
        """Wait for all background work, including work it spawns."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel outstanding background work."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._pull_pending = False

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    @property
    def dead_letters(self) -> List[DeadLetter]:
        return list(self._dead_letters.values())

    def status(self) -> SyncStatus:
        return SyncStatus(
            enabled=self.enabled,
            active_pushes=self._active_pushes,
            pull_in_progress=self._pulling,
            pending_tasks=len(self._tasks),
            last_pull_at=self._last_pull_at,
            last_pull_error=self._last_pull_error,
            dead_letters=self.dead_letters,
        )

    def retry_dead_letters(self) -> int:
        """Re-admit dead-lettered records to the push path."""
        count = len(self._dead_letters)
        for key in list(self._dead_letters):
            self._failures.pop(key, None)
        self._dead_letters.clear()
        if count:
            logger.info("[Sync] Re-queued %d dead-lettered record(s)", count)
            self.schedule_push()
        return count

    # ------------------------------------------------------------------
    # Push path
    # ------------------------------------------------------------------

    async def push_pending(self) -> None:
        """Push every group and version the remote store has not confirmed."""
        with self.store.lock:
            groups = self.store.load()
        self._forget_missing(groups)

        jobs: List[Awaitable[Any]] = []
        for group in groups:
            if group.remote_id is None:
                if group.id in self._groups_in_flight:
                    continue
                created_id = self._created_groups.get(group.id)
                if created_id is not None:
                    # Already created remotely, only the local marker is missing
                    self._groups_in_flight.add(group.id)
                    jobs.append(self._resume_new_group(group.id, created_id))
                    continue
                if not self._is_due(("group", group.id)):
                    continue
                self._groups_in_flight.add(group.id)
                jobs.append(self._push_new_group(group))
                continue

            for version in group.unsynced_versions():
                if version.id in self._versions_in_flight:
                    continue
                created_id = self._created_versions.get(version.id)
                if created_id is not None:
                    self._versions_in_flight.add(version.id)
                    jobs.append(self._resume_version(group.id, version.id, created_id))
                    continue
                if not self._is_due(("version", version.id)):
                    continue
                self._versions_in_flight.add(version.id)
                jobs.append(self._push_version(group.id, group.remote_id, version))

        for key, factory in list(self._replay.items()):
            del self._replay[key]
            jobs.append(self._run_remote_op(key, self._op_seq.get(key, 0), factory))

        if jobs:
            logger.debug("[Sync] Push pass started with %d job(s)", len(jobs))
            await asyncio.gather(*jobs)

    async def _push_new_group(self, group: PromptGroup) -> None:
        key = ("group", group.id)
        try:
            async with self._push_slot():
                first = min(group.versions, key=lambda v: v.version_number)
                try:
                    record = await self._call(
                        self.remote.create_group(group.name, description=first.content, tags=list(group.tags))
                    )
                except Exception as e:
                    self._record_failure(key, group.id, None, e)
                    return
                self._failures.pop(key, None)
                found, pending = self._record_group(group.id, record.id)
            await self._finish_new_group(group.id, record.id, found, pending)
        finally:
            self._groups_in_flight.discard(group.id)

    async def _resume_new_group(self, group_id: str, remote_id: str) -> None:
        try:
            async with self._push_slot():
                found, pending = self._record_group(group_id, remote_id)
            await self._finish_new_group(group_id, remote_id, found, pending)
        finally:
            self._groups_in_flight.discard(group_id)

    def _record_group(
        self, group_id: str, remote_id: str
    ) -> Tuple[bool, Optional[List[PromptVersion]]]:
        """Store a group's remote id in the cache.

        Returns whether the group still exists locally, and the versions to
        push next, or None when the cache refused the write.
        """
        with self.store.lock:
            groups = self.store.load()
            local = _find_group(groups, group_id)
            if local is None:
                return False, None
            local.remote_id = remote_id
            if not self.store.save(groups):
                self._created_groups[group_id] = remote_id
                return True, None
            self._created_groups.pop(group_id, None)
            pending = [v for v in local.unsynced_versions() if v.id not in self._versions_in_flight]
            self._versions_in_flight.update(v.id for v in pending)
            return True, pending

    async def _finish_new_group(
        self, group_id: str, remote_id: str, found: bool, pending: Optional[List[PromptVersion]]
    ) -> None:
        if not found:
            self._created_groups.pop(group_id, None)
            logger.info(
                "[Sync] Group %s was deleted while being pushed; removing remote %s", group_id, remote_id
            )
            seq = self._next_seq((OP_DELETE_GROUP, remote_id))
            await self._run_remote_op(
                (OP_DELETE_GROUP, remote_id), seq, lambda: self.remote.delete_group(remote_id)
            )
            return
        if pending is None:
            logger.warning(
                "[Sync] Remote group %s exists for %s but the cache write failed; will record it on next push",
                remote_id,
                group_id,
            )
            return

        logger.info("[Sync] Created remote group %s for %s", remote_id, group_id)
        # Versions of a new group go out one at a time, in order
        try:
            for version in pending:
                if not await self._push_version(group_id, remote_id, version):
                    break
        finally:
            self._versions_in_flight.difference_update(v.id for v in pending)

    async def _push_version(
        self, group_id: str, remote_group_id: str, version: PromptVersion
    ) -> bool:
        """Create one version remotely and record it as synced."""
        key = ("version", version.id)
        try:
            async with self._push_slot():
                parent = None
                if version.parent_version_id:
                    with self.store.lock:
                        fresh = _find_group(self.store.load(), group_id)
                    parent = fresh.find_version(version.parent_version_id) if fresh else None
                try:
                    record = await self._call(
                        self.remote.create_version(
                            remote_group_id,
                            version.name,
                            version.content,
                            description=version.description,
                            parent_version_id=parent.remote_id if parent else None,
                            version_number=version.version_number,
                        )
                    )
                except Exception as e:
                    self._record_failure(key, group_id, version.id, e)
                    return False
                self._failures.pop(key, None)
                found, status = self._record_version(group_id, version.id, record.id)
            return await self._finish_version(version.id, record.id, found, status)
        finally:
            self._versions_in_flight.discard(version.id)

    async def _resume_version(self, group_id: str, version_id: str, remote_id: str) -> bool:
        try:
            async with self._push_slot():
                found, status = self._record_version(group_id, version_id, remote_id)
            return await self._finish_version(version_id, remote_id, found, status)
        finally:
            self._versions_in_flight.discard(version_id)

    def _record_version(
        self, group_id: str, version_id: str, remote_id: str
    ) -> Tuple[bool, Optional[VersionStatus]]:
        """Mark a version as synced. The status is None when the cache refused the write."""
        with self.store.lock:
            groups = self.store.load()
            local_group = _find_group(groups, group_id)
            local_version = local_group.find_version(version_id) if local_group else None
            if local_version is None:
                return False, None
            local_version.remote_id = remote_id
            local_group.synced_version_ids.add(version_id)
            if not self.store.save(groups):
                self._created_versions[version_id] = remote_id
                return True, None
            self._created_versions.pop(version_id, None)
            return True, VersionStatus(local_version.status)

    async def _finish_version(
        self, version_id: str, remote_id: str, found: bool, status: Optional[VersionStatus]
    ) -> bool:
        if not found:
            self._created_versions.pop(version_id, None)
            logger.info("[Sync] Version %s was deleted while being pushed", version_id)
            seq = self._next_seq((OP_DELETE_VERSION, remote_id))
            await self._run_remote_op(
                (OP_DELETE_VERSION, remote_id), seq, lambda: self.remote.delete_version(remote_id)
            )
            return True
        if status is None:
            logger.warning(
                "[Sync] Remote version %s exists for %s but the cache write failed; will record it on next push",
                remote_id,
                version_id,
            )
            return False

        logger.info("[Sync] Created remote version %s for %s", remote_id, version_id)
        if status != VersionStatus.DRAFT:
            # Remote creates always start as draft
            self._unconfirmed_status[remote_id] = status
            op_key = (OP_SET_STATUS, remote_id)
            await self._run_remote_op(
                op_key,
                self._next_seq(op_key),
                lambda: self.remote.set_version_status(remote_id, status),
            )
        return True

    def _submit(self, op: str, record_id: str, factory: Callable[[], Awaitable[Any]]) -> None:
        key = (op, record_id)
        seq = self._next_seq(key)
        if self._spawn(self._run_remote_op(key, seq, factory)) is None:
            self._replay[key] = factory

    async def _run_remote_op(
        self, key: PushKey, seq: int, factory: Callable[[], Awaitable[Any]]
    ) -> bool:
        op, record_id = key
        async with self._push_slot():
            try:
                await self._call(factory())
            except RemoteRecordNotFoundError as e:
                logger.warning("[Sync] %s skipped, remote record %s is gone: %s", op, record_id, e)
                self._confirm(key, seq)
                return True
            except Exception as e:
                logger.warning("[Sync] %s on %s failed, will retry on next push: %s", op, record_id, e)
                # A newer write for the same record supersedes this one
                if self._op_seq.get(key) == seq:
                    self._replay[key] = factory
                return False
        self._confirm(key, seq)
        return True

    def _confirm(self, key: PushKey, seq: int) -> None:
        if self._op_seq.get(key) != seq:
            return
        del self._op_seq[key]
        self._replay.pop(key, None)
        op, record_id = key
        if op == OP_SET_STATUS:
            self._unconfirmed_status.pop(record_id, None)
        elif op in (OP_DELETE_VERSION, OP_DELETE_GROUP):
            # Nothing else can be written to a deleted record
            for other in [k for k in self._op_seq if k[1] == record_id]:
                self._op_seq.pop(other, None)
                self._replay.pop(other, None)
            self._unconfirmed_status.pop(record_id, None)

    def _next_seq(self, key: PushKey) -> int:
        # Globally increasing, so a confirmed key can be dropped and reused safely
        self._op_seq[key] = next(self._seq_counter)
        return self._op_seq[key]

    def _forget_missing(self, groups: List[PromptGroup]) -> None:
        """Drop retry bookkeeping for groups and versions no longer in the cache."""
        live: Set[PushKey] = set()
        for group in groups:
            live.add(("group", group.id))
            live.update(("version", v.id) for v in group.versions)
        for key in [k for k in self._failures if k not in live]:
            del self._failures[key]
        for key in [k for k in self._dead_letters if k not in live]:
            del self._dead_letters[key]

        # Deleted locally before their remote id was recorded
        for group_id in [g for g in self._created_groups if ("group", g) not in live]:
            remote_id = self._created_groups.pop(group_id)
            self._submit(OP_DELETE_GROUP, remote_id, lambda rid=remote_id: self.remote.delete_group(rid))
        for version_id in [v for v in self._created_versions if ("version", v) not in live]:
            remote_id = self._created_versions.pop(version_id)
            self._submit(OP_DELETE_VERSION, remote_id, lambda rid=remote_id: self.remote.delete_version(rid))

    def _is_due(self, key: PushKey) -> bool:
        if key in self._dead_letters:
            return False
        failure = self._failures.get(key)
        return failure is None or time.monotonic() >= failure.next_attempt_at

    def _record_failure(
        self, key: PushKey, group_id: str, version_id: Optional[str], error: Exception
    ) -> None:
        failure = self._failures.setdefault(key, _PushFailure())
        failure.attempts += 1
        failure.last_error = str(error) or type(error).__name__

        if failure.attempts >= self.settings.max_push_attempts:
            self._failures.pop(key, None)
            self._dead_letters[key] = DeadLetter(
                group_id=group_id,
                version_id=version_id,
                attempts=failure.attempts,
                last_error=failure.last_error,
                failed_at=utcnow(),
            )
            dead_letter_log.error(
                "Push abandoned after repeated failures",
                record_type=key[0],
                group_id=group_id,
                version_id=version_id,
                attempts=failure.attempts,
                error=failure.last_error,
            )
            return

        delay = min(
            self.settings.backoff_base_seconds * (2 ** (failure.attempts - 1)),
            self.settings.backoff_max_seconds,
        )
        failure.next_attempt_at = time.monotonic() + delay
        logger.warning(
            "[Sync] Push of %s %s failed (attempt %d/%d), next try in %.1fs: %s",
            key[0],
            key[1],
            failure.attempts,
            self.settings.max_push_attempts,
            delay,
            failure.last_error,
        )

    # ------------------------------------------------------------------
    # Pull path
    # ------------------------------------------------------------------

    async def _delayed_pull(self, delay: float) -> None:
        try:
            if delay > 0:
                await asyncio.sleep(delay)
        finally:
            self._pull_pending = False
        await self.pull()

    async def pull(self) -> bool:
        """Merge the full remote collection into the cache."""
        async with self._pull_slot():
            try:
                records = await self._call(self.remote.list_groups())
            except Exception as e:
                self._last_pull_error = str(e) or type(e).__name__
                logger.error("[Sync] Pull failed: %s", self._last_pull_error)
                return False

            with self.store.lock:
                merged = self._merge(self.store.load(), records)
                saved = self.store.save(merged)
            if saved:
                self._forget_recorded(merged)

            self._last_pull_at = utcnow()
            self._last_pull_error = None if saved else "cache write failed"
            logger.info("[Sync] Pulled %d remote group(s)", len(records))
        self._notify(merged)
        return saved

    async def pull_group(self, group_id: str) -> bool:
        """Refresh one remote-correlated group."""
        with self.store.lock:
            group = _find_group(self.store.load(), group_id)
        remote_id = self.remote_id_for(group) if group is not None else None
        if not remote_id:
            return False

        async with self._pull_slot():
            try:
                record = await self._call(self.remote.get_group(remote_id))
            except Exception as e:
                logger.error("[Sync] Pull of group %s failed: %s", group_id, e)
                return False

            with self.store.lock:
                groups = self.store.load()
                local = _find_group(groups, group_id)
                if local is None:
                    return False
                index = groups.index(local)
                merged = self._group_from_record(record, local) if record else None
                if merged is None:
                    del groups[index]
                else:
                    groups[index] = merged
                saved = self.store.save(groups)
            if saved and merged is not None:
                self._forget_recorded([merged])
        self._notify(groups)
        return saved

    async def run_cycle(self) -> None:
        """One periodic round: push what is pending, then pull."""
        await self.push_pending()
        await self.pull()

    def _merge(
        self, local_groups: List[PromptGroup], records: List[RemoteGroupRecord]
    ) -> List[PromptGroup]:
        deleted_groups = {rid for (op, rid) in self._replay if op == OP_DELETE_GROUP}
        remote_by_id = {r.id: r for r in records if r.id not in deleted_groups}

        merged: List[PromptGroup] = []
        matched: Set[str] = set()
        for local in local_groups:
            remote_id = self.remote_id_for(local)
            if remote_id is None:
                merged.append(local)
                continue
            record = remote_by_id.get(remote_id)
            if record is None:
                # Removed remotely
                continue
            matched.add(record.id)
            group = self._group_from_record(record, local)
            if group is not None:
                merged.append(group)

        for record in records:
            if record.id in remote_by_id and record.id not in matched:
                group = self._group_from_record(record, None)
                if group is not None:
                    merged.append(group)
        return merged

    def _forget_recorded(self, groups: List[PromptGroup]) -> None:
        """Drop pending remote ids that a pull has now written to the cache."""
        for group in groups:
            if group.remote_id:
                self._created_groups.pop(group.id, None)
            for version_id in group.synced_version_ids:
                self._created_versions.pop(version_id, None)

    def _group_from_record(
        self, record: RemoteGroupRecord, local: Optional[PromptGroup]
    ) -> Optional[PromptGroup]:
        """Build the local view of a remote group, keeping local ids where matched."""
        deleted_versions = {rid for (op, rid) in self._replay if op == OP_DELETE_VERSION}
        unrecorded = {rid: vid for vid, rid in self._created_versions.items()}
        group_id = local.id if local else new_entity_id()

        versions: List[PromptVersion] = []
        matched: Set[str] = set()
        remote_parents: Dict[str, Optional[str]] = {}
        local_parents: Dict[str, Optional[str]] = {}
        for rv in sorted(record.versions, key=lambda v: v.version_number):
            if rv.id in deleted_versions:
                continue
            existing = None
            if local is not None:
                existing = local.find_version_by_remote_id(rv.id)
                if existing is None and rv.id in unrecorded:
                    existing = local.find_version(unrecorded[rv.id])
            try:
                version = PromptVersion(
                    id=existing.id if existing else new_entity_id(),
                    group_id=group_id,
                    version_number=rv.version_number,
                    name=rv.name,
                    content=rv.content,
                    status=rv.status,
                    description=rv.description,
                    created_from=existing.created_from if existing else VersionOrigin.MANUAL,
                    remote_id=rv.id,
                    created_at=existing.created_at if existing else rv.created_at,
                )
            except DomainError as e:
                logger.warning("[Sync] Skipping invalid remote version %s: %s", rv.id, e)
                continue
            versions.append(version)
            if existing is not None:
                matched.add(existing.id)
                local_parents[version.id] = existing.parent_version_id
            remote_parents[version.id] = rv.parent_version_id

        local_id_by_remote = {v.remote_id: v.id for v in versions}
        for version in versions:
            parent_remote_id = remote_parents.get(version.id)
            parent_id = local_id_by_remote.get(parent_remote_id) if parent_remote_id else None
            # A parent deleted since keeps the link the cache already had
            version.parent_version_id = parent_id or local_parents.get(version.id)

        carried: List[PromptVersion] = []
        if local is not None:
            carried = [
                v for v in local.unsynced_versions()
                if v.remote_id is None and v.id not in matched
            ]

        if not versions and not carried:
            logger.info("[Sync] Remote group %s has no versions; not materialized", record.id)
            return None

        group = PromptGroup(
            id=group_id,
            name=record.name,
            description=local.description if local else None,
            versions=versions,
            tags=list(record.tags),
            remote_id=record.id,
            synced_version_ids={v.id for v in versions},
            created_at=local.created_at if local else record.created_at,
            last_modified_at=record.updated_at,
        )
        group.refresh_pointers()

        # Status writes still on their way out win over the remote snapshot
        for version in versions:
            pending_status = self._unconfirmed_status.get(version.remote_id)
            if pending_status is not None and pending_status != version.status:
                group.apply_status(version, pending_status)
        group.last_modified_at = record.updated_at

        # Local versions still waiting to be pushed stay, with their statuses winning
        for version in carried:
            status = version.status
            version.status = VersionStatus.DRAFT
            if any(v.version_number == version.version_number for v in group.versions):
                version.version_number = group.next_version_number()
            group.versions.append(version)
            group.apply_status(version, status)
        if carried:
            group.last_modified_at = max(group.last_modified_at, local.last_modified_at)
        return group

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _spawn(self, coro: Awaitable[Any]) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.debug("[Sync] No running event loop; background work skipped")
            return None
        task = loop.create_task(self._guarded(coro))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guarded(self, coro: Awaitable[Any]) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("[Sync] Background task failed: %s", e, exc_info=True)

    async def _call(self, awaitable: Awaitable[Any]) -> Any:
        timeout = self.settings.remote_timeout_seconds
        if timeout and timeout > 0:
            return await asyncio.wait_for(awaitable, timeout)
        return await awaitable

    def _notify(self, groups: List[PromptGroup]) -> None:
        for listener in list(self._listeners):
            try:
                listener(groups)
            except Exception as e:
                logger.error("[Sync] Listener failed: %s", e, exc_info=True)

    @asynccontextmanager
    async def _push_slot(self):
        async with self._cond:
            while self._pulling:
                await self._cond.wait()
            self._active_pushes += 1
        try:
            yield
        finally:
            async with self._cond:
                self._active_pushes -= 1
                self._cond.notify_all()

    @asynccontextmanager
    async def _pull_slot(self):
        async with self._cond:
            while self._pulling or self._active_pushes:
                await self._cond.wait()
            self._pulling = True
        try:
            yield
        finally:
            async with self._cond:
                self._pulling = False
                self._cond.notify_all()
