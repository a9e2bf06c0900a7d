"""
MongoDB implementation of RemotePromptStore.

The server-side rules of the remote schema are applied here on every write:
missing version numbers are assigned as ``max + 1`` per group, at most one
version per group holds ``current`` or ``production``, ``updated_at`` is
refreshed on update, and deleting a group removes its versions first.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from beanie.operators import In
from pymongo.errors import PyMongoError

from promptpilot.application.dto.remote_records import RemoteGroupRecord, RemoteVersionRecord
from promptpilot.application.ports.services.remote_prompt_store import RemotePromptStore
from promptpilot.core.exceptions import RemoteRecordNotFoundError, RemoteStoreError
from promptpilot.domain.enums.version_status import VersionStatus

from ..models.prompt_group_m import PromptGroupMongo
from ..models.prompt_version_m import PromptVersionMongo

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MongoRemotePromptStore(RemotePromptStore):
    """MongoDB implementation of RemotePromptStore."""

    async def create_group(
        self,
        name: str,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> RemoteGroupRecord:
        try:
            group_mongo = PromptGroupMongo(
                group_id=str(uuid.uuid4()),
                name=name,
                description=description,
                tags=list(tags or []),
            )
            await group_mongo.insert()
            return self._group_to_record(group_mongo, [])
        except PyMongoError as e:
            raise RemoteStoreError(f"Failed to create group: {e}", {"name": name}) from e

    async def create_version(
        self,
        group_id: str,
        name: str,
        content: str,
        description: Optional[str] = None,
        parent_version_id: Optional[str] = None,
        version_number: Optional[int] = None,
    ) -> RemoteVersionRecord:
        try:
            await self._require_group(group_id)
            if version_number is None:
                version_number = await self._next_version_number(group_id)
            version_mongo = PromptVersionMongo(
                version_id=str(uuid.uuid4()),
                group_id=group_id,
                name=name,
                content=content,
                description=description,
                status=VersionStatus.DRAFT.value,
                version_number=version_number,
                parent_version_id=parent_version_id,
            )
            await version_mongo.insert()
            return self._version_to_record(version_mongo)
        except PyMongoError as e:
            raise RemoteStoreError(
                f"Failed to create version: {e}", {"group_id": group_id}
            ) from e

    async def update_group(
        self,
        group_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> None:
        try:
            group_mongo = await self._require_group(group_id)
            if name is not None:
                group_mongo.name = name
            if description is not None:
                group_mongo.description = description
            if tags is not None:
                group_mongo.tags = list(tags)
            group_mongo.updated_at = _utcnow()
            await group_mongo.save()
        except PyMongoError as e:
            raise RemoteStoreError(
                f"Failed to update group: {e}", {"group_id": group_id}
            ) from e

    async def update_version(
        self,
        version_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        try:
            version_mongo = await self._require_version(version_id)
            if name is not None:
                version_mongo.name = name
            if description is not None:
                version_mongo.description = description
            version_mongo.updated_at = _utcnow()
            await version_mongo.save()
        except PyMongoError as e:
            raise RemoteStoreError(
                f"Failed to update version: {e}", {"version_id": version_id}
            ) from e

    async def set_version_status(self, version_id: str, status: VersionStatus) -> None:
        status = VersionStatus(status)
        try:
            version_mongo = await self._require_version(version_id)
            now = _utcnow()
            if status.is_exclusive:
                await PromptVersionMongo.find(
                    PromptVersionMongo.group_id == version_mongo.group_id,
                    PromptVersionMongo.status == status.value,
                    PromptVersionMongo.version_id != version_id,
                ).update({"$set": {"status": VersionStatus.DRAFT.value, "updated_at": now}})
            version_mongo.status = status.value
            version_mongo.updated_at = now
            await version_mongo.save()
        except PyMongoError as e:
            raise RemoteStoreError(
                f"Failed to set version status: {e}",
                {"version_id": version_id, "status": status.value},
            ) from e

    async def delete_version(self, version_id: str) -> None:
        try:
            version_mongo = await self._require_version(version_id)
            await version_mongo.delete()
        except PyMongoError as e:
            raise RemoteStoreError(
                f"Failed to delete version: {e}", {"version_id": version_id}
            ) from e

    async def delete_group(self, group_id: str) -> None:
        try:
            group_mongo = await self._require_group(group_id)
            await PromptVersionMongo.find(PromptVersionMongo.group_id == group_id).delete()
            await group_mongo.delete()
        except PyMongoError as e:
            raise RemoteStoreError(
                f"Failed to delete group: {e}", {"group_id": group_id}
            ) from e

    async def list_groups(self) -> List[RemoteGroupRecord]:
        try:
            groups = await PromptGroupMongo.find_all().sort(
                +PromptGroupMongo.sort_order, +PromptGroupMongo.created_at
            ).to_list()
            if not groups:
                return []

            group_ids = [g.group_id for g in groups]
            versions = await PromptVersionMongo.find(
                In(PromptVersionMongo.group_id, group_ids)
            ).sort(+PromptVersionMongo.version_number).to_list()

            by_group: Dict[str, List[PromptVersionMongo]] = {}
            for version_mongo in versions:
                by_group.setdefault(version_mongo.group_id, []).append(version_mongo)

            return [self._group_to_record(g, by_group.get(g.group_id, [])) for g in groups]
        except PyMongoError as e:
            raise RemoteStoreError(f"Failed to list groups: {e}") from e

    async def get_group(self, group_id: str) -> Optional[RemoteGroupRecord]:
        try:
            group_mongo = await PromptGroupMongo.find_one(PromptGroupMongo.group_id == group_id)
            if not group_mongo:
                return None
            versions = await PromptVersionMongo.find(
                PromptVersionMongo.group_id == group_id
            ).sort(+PromptVersionMongo.version_number).to_list()
            return self._group_to_record(group_mongo, versions)
        except PyMongoError as e:
            raise RemoteStoreError(
                f"Failed to fetch group: {e}", {"group_id": group_id}
            ) from e

    async def _require_group(self, group_id: str) -> PromptGroupMongo:
        group_mongo = await PromptGroupMongo.find_one(PromptGroupMongo.group_id == group_id)
        if not group_mongo:
            raise RemoteRecordNotFoundError("prompt_groups", group_id)
        return group_mongo

    async def _require_version(self, version_id: str) -> PromptVersionMongo:
        version_mongo = await PromptVersionMongo.find_one(
            PromptVersionMongo.version_id == version_id
        )
        if not version_mongo:
            raise RemoteRecordNotFoundError("prompt_versions", version_id)
        return version_mongo

    async def _next_version_number(self, group_id: str) -> int:
        latest = await PromptVersionMongo.find(
            PromptVersionMongo.group_id == group_id
        ).sort(-PromptVersionMongo.version_number).first_or_none()
        return (latest.version_number + 1) if latest else 1

    def _version_to_record(self, version_mongo: PromptVersionMongo) -> RemoteVersionRecord:
        return RemoteVersionRecord(
            id=version_mongo.version_id,
            group_id=version_mongo.group_id,
            name=version_mongo.name,
            content=version_mongo.content,
            status=VersionStatus(version_mongo.status),
            version_number=version_mongo.version_number,
            created_at=version_mongo.created_at,
            updated_at=version_mongo.updated_at,
            description=version_mongo.description,
            parent_version_id=version_mongo.parent_version_id,
            author_notes=version_mongo.author_notes,
            performance_score=version_mongo.performance_score,
            usage_count=version_mongo.usage_count,
            is_archived=version_mongo.is_archived,
        )

    def _group_to_record(
        self, group_mongo: PromptGroupMongo, versions: List[PromptVersionMongo]
    ) -> RemoteGroupRecord:
        return RemoteGroupRecord(
            id=group_mongo.group_id,
            name=group_mongo.name,
            created_at=group_mongo.created_at,
            updated_at=group_mongo.updated_at,
            description=group_mongo.description,
            user_id=group_mongo.user_id,
            tags=list(group_mongo.tags),
            is_archived=group_mongo.is_archived,
            sort_order=group_mongo.sort_order,
            versions=[self._version_to_record(v) for v in versions],
        )


def document_models() -> List[Any]:
    """Beanie document classes to register with ``init_beanie``."""
    return [PromptGroupMongo, PromptVersionMongo]
