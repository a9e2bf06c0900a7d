"""
Shared fixtures: a temp-dir cache, an in-memory remote store and wired services.
"""

import asyncio
import copy
import itertools
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from promptpilot.adapters.cache.json_file_cache import JsonFileCacheStore
from promptpilot.application.dto.remote_records import RemoteGroupRecord, RemoteVersionRecord
from promptpilot.application.ports.services.remote_prompt_store import RemotePromptStore
from promptpilot.application.services.sync_manager import SyncManager
from promptpilot.application.services.version_control import VersionControlService
from promptpilot.core.config import (
    CacheSettings,
    DatabaseSettings,
    LoggingSettings,
    Settings,
    SyncSettings,
)
from promptpilot.core.container import build_container
from promptpilot.core.exceptions import RemoteRecordNotFoundError, RemoteStoreError
from promptpilot.domain.enums.version_status import VersionStatus


def _now() -> datetime:
    return datetime.now(timezone.utc)


class FakeRemotePromptStore(RemotePromptStore):
    """In-memory remote store applying the same server-side rules as MongoDB.

    ``fail(op, times)`` makes the next ``times`` calls of ``op`` raise
    (``times=-1`` fails forever). ``gate(op)`` returns an event that the
    operation waits on before doing anything.
    """

    def __init__(self) -> None:
        self.groups: Dict[str, RemoteGroupRecord] = {}
        self.versions: Dict[str, RemoteVersionRecord] = {}
        self.calls: Counter = Counter()
        self.failures: Dict[str, int] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.delay = 0.0
        self._ids = itertools.count(1)

    def fail(self, op: str, times: int = -1) -> None:
        self.failures[op] = times

    def heal(self, op: Optional[str] = None) -> None:
        if op is None:
            self.failures.clear()
        else:
            self.failures.pop(op, None)

    def gate(self, op: str) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[op] = event
        return event

    async def _enter(self, op: str) -> None:
        self.calls[op] += 1
        if op in self.gates:
            await self.gates[op].wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        remaining = self.failures.get(op, 0)
        if remaining:
            if remaining > 0:
                self.failures[op] = remaining - 1
            raise RemoteStoreError(f"injected {op} failure")

    def _group(self, group_id: str) -> RemoteGroupRecord:
        if group_id not in self.groups:
            raise RemoteRecordNotFoundError("prompt_groups", group_id)
        return self.groups[group_id]

    def _version(self, version_id: str) -> RemoteVersionRecord:
        if version_id not in self.versions:
            raise RemoteRecordNotFoundError("prompt_versions", version_id)
        return self.versions[version_id]

    def versions_of(self, group_id: str) -> List[RemoteVersionRecord]:
        return sorted(
            (v for v in self.versions.values() if v.group_id == group_id),
            key=lambda v: v.version_number,
        )

    async def create_group(self, name, description=None, tags=None):
        await self._enter("create_group")
        now = _now()
        record = RemoteGroupRecord(
            id=f"rg-{next(self._ids)}",
            name=name,
            description=description,
            tags=list(tags or []),
            created_at=now,
            updated_at=now,
        )
        self.groups[record.id] = record
        return copy.deepcopy(record)

    async def create_version(
        self, group_id, name, content, description=None, parent_version_id=None, version_number=None
    ):
        await self._enter("create_version")
        self._group(group_id)
        if version_number is None:
            existing = self.versions_of(group_id)
            version_number = existing[-1].version_number + 1 if existing else 1
        now = _now()
        record = RemoteVersionRecord(
            id=f"rv-{next(self._ids)}",
            group_id=group_id,
            name=name,
            content=content,
            status=VersionStatus.DRAFT,
            version_number=version_number,
            created_at=now,
            updated_at=now,
            description=description,
            parent_version_id=parent_version_id,
        )
        self.versions[record.id] = record
        return copy.deepcopy(record)

    async def update_group(self, group_id, name=None, description=None, tags=None):
        await self._enter("update_group")
        record = self._group(group_id)
        if name is not None:
            record.name = name
        if description is not None:
            record.description = description
        if tags is not None:
            record.tags = list(tags)
        record.updated_at = _now()

    async def update_version(self, version_id, name=None, description=None):
        await self._enter("update_version")
        record = self._version(version_id)
        if name is not None:
            record.name = name
        if description is not None:
            record.description = description
        record.updated_at = _now()

    async def set_version_status(self, version_id, status):
        await self._enter("set_version_status")
        record = self._version(version_id)
        status = VersionStatus(status)
        if status.is_exclusive:
            for other in self.versions_of(record.group_id):
                if other.id != version_id and other.status == status:
                    other.status = VersionStatus.DRAFT
        record.status = status
        record.updated_at = _now()

    async def delete_version(self, version_id):
        await self._enter("delete_version")
        self._version(version_id)
        del self.versions[version_id]

    async def delete_group(self, group_id):
        await self._enter("delete_group")
        self._group(group_id)
        for version in self.versions_of(group_id):
            del self.versions[version.id]
        del self.groups[group_id]

    async def list_groups(self):
        await self._enter("list_groups")
        result = []
        for record in self.groups.values():
            group = copy.deepcopy(record)
            group.versions = copy.deepcopy(self.versions_of(record.id))
            result.append(group)
        return result

    async def get_group(self, group_id):
        await self._enter("get_group")
        if group_id not in self.groups:
            return None
        group = copy.deepcopy(self.groups[group_id])
        group.versions = copy.deepcopy(self.versions_of(group_id))
        return group


@pytest.fixture
def cache_store(tmp_path):
    return JsonFileCacheStore(str(tmp_path / "cache"))


@pytest.fixture
def remote():
    return FakeRemotePromptStore()


@pytest.fixture
def sync_settings():
    return SyncSettings(
        enabled=True,
        pull_interval_seconds=0,
        pull_delay_seconds=0,
        max_push_attempts=3,
        backoff_base_seconds=0,
        backoff_max_seconds=0,
        remote_timeout_seconds=0,
    )


@pytest.fixture
def sync_manager(cache_store, remote, sync_settings):
    return SyncManager(cache_store, remote, sync_settings)


@pytest.fixture
def service(cache_store):
    """Local-only engine."""
    return VersionControlService(cache_store)


@pytest.fixture
def synced_service(cache_store, sync_manager):
    """Engine wired to the in-memory remote store."""
    return VersionControlService(cache_store, sync_manager)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        app_env="testing",
        database=DatabaseSettings(uri=""),
        cache=CacheSettings(directory=str(tmp_path / "api-cache")),
        sync=SyncSettings(pull_interval_seconds=0),
        logging=LoggingSettings(level="WARNING", format="text"),
    )


@pytest.fixture
def client(settings):
    """Test client for an app running in local-only mode."""
    from promptpilot.app import create_app

    app = create_app(container=build_container(settings), run_pull_worker=False)
    with TestClient(app) as test_client:
        yield test_client
