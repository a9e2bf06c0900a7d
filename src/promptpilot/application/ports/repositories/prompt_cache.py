"""
Local cache interface for prompt group persistence.
"""

import threading
from abc import ABC, abstractmethod
from typing import List

from ....domain.entities.prompt_group import PromptGroup
from ...dto.prompt_dto import StorageUsage


class PromptCacheStore(ABC):
    """Synchronous, process-local store holding every prompt group.

    Implementations never raise from ``load``/``save``: read failures degrade
    to an empty collection and write failures to a ``False`` return.
    """

    def __init__(self) -> None:
        # Guards read-modify-write cycles shared by the engine and the sync manager
        self.lock = threading.RLock()

    @abstractmethod
    def load(self) -> List[PromptGroup]:
        """Return all stored groups, or an empty list."""
        pass

    @abstractmethod
    def save(self, groups: List[PromptGroup]) -> bool:
        """Replace the stored collection."""
        pass

    @abstractmethod
    def usage(self) -> StorageUsage:
        """Report stored byte size and the near-capacity signal."""
        pass

    @abstractmethod
    def clear(self) -> bool:
        """Remove the stored collection."""
        pass
