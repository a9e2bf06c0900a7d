"""
Remote prompt store interface.

Every method may fail with ``RemoteStoreError``. Callers on the reconciliation
path catch it; nothing here is awaited by a local mutation.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ....domain.enums.version_status import VersionStatus
from ...dto.remote_records import RemoteGroupRecord, RemoteVersionRecord


class RemotePromptStore(ABC):
    """Abstract remote store exposing prompt groups and versions."""

    @abstractmethod
    async def create_group(
        self,
        name: str,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> RemoteGroupRecord:
        """Insert a group record; the store assigns its id."""
        pass

    @abstractmethod
    async def create_version(
        self,
        group_id: str,
        name: str,
        content: str,
        description: Optional[str] = None,
        parent_version_id: Optional[str] = None,
        version_number: Optional[int] = None,
    ) -> RemoteVersionRecord:
        """Insert a version as ``draft``; the store fills in a missing number."""
        pass

    @abstractmethod
    async def update_group(
        self,
        group_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> None:
        """Patch group fields that are not ``None``."""
        pass

    @abstractmethod
    async def update_version(
        self,
        version_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        """Patch version fields that are not ``None``."""
        pass

    @abstractmethod
    async def set_version_status(self, version_id: str, status: VersionStatus) -> None:
        """Set a status; the store demotes any other holder of an exclusive status."""
        pass

    @abstractmethod
    async def delete_version(self, version_id: str) -> None:
        """Delete one version record."""
        pass

    @abstractmethod
    async def delete_group(self, group_id: str) -> None:
        """Delete a group record and all of its versions."""
        pass

    @abstractmethod
    async def list_groups(self) -> List[RemoteGroupRecord]:
        """Return every group with its versions."""
        pass

    @abstractmethod
    async def get_group(self, group_id: str) -> Optional[RemoteGroupRecord]:
        """Return one group with its versions, or ``None``."""
        pass
