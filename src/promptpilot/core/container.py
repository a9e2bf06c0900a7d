"""
Dependency injection container for PromptPilot.

One container is built per app (or per worker process) and holds the
settings, the cache store, the optional remote store and the services
wired on top of them.
"""

from typing import Any, Dict, Optional

from .config import Settings, get_settings
from .exceptions import ConfigurationError


class Container:
    """Named registry of the objects one app instance shares."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._instances: Dict[str, Any] = {ServiceNames.SETTINGS: self._settings}

    @property
    def settings(self) -> Settings:
        return self._settings

    def register(self, name: str, instance: Any) -> None:
        if name in self._instances:
            raise ConfigurationError(f"Service '{name}' is already registered")
        self._instances[name] = instance

    def get(self, name: str) -> Any:
        try:
            return self._instances[name]
        except KeyError:
            raise ConfigurationError(f"Service '{name}' not found") from None

    def get_or_none(self, name: str) -> Optional[Any]:
        return self._instances.get(name)

    def has(self, name: str) -> bool:
        return name in self._instances


class ServiceNames:
    """Service names used throughout the application."""

    SETTINGS = "settings"
    CACHE_STORE = "cache_store"
    REMOTE_STORE = "remote_store"
    SYNC_MANAGER = "sync_manager"
    VERSION_CONTROL = "version_control"


def build_container(
    settings: Optional[Settings] = None,
    cache_store: Any = None,
    remote_store: Any = None,
) -> Container:
    """Wire the cache, the optional remote store and the services built on them.

    Without a remote store (none passed and no Mongo URI configured) the
    engine runs in local-only mode and no sync manager is registered.
    """
    from ..adapters.cache.json_file_cache import JsonFileCacheStore
    from ..application.services.sync_manager import SyncManager
    from ..application.services.version_control import VersionControlService

    container = Container(settings)
    settings = container.settings

    if cache_store is None:
        cache_store = JsonFileCacheStore.from_settings(settings.cache)
    container.register(ServiceNames.CACHE_STORE, cache_store)

    if remote_store is None and settings.database.is_configured:
        from ..adapters.db.mongo.repositories.remote_prompt_store import MongoRemotePromptStore

        remote_store = MongoRemotePromptStore()

    sync_manager = None
    if remote_store is not None:
        container.register(ServiceNames.REMOTE_STORE, remote_store)
        if settings.sync.enabled:
            sync_manager = SyncManager(cache_store, remote_store, settings.sync)
            container.register(ServiceNames.SYNC_MANAGER, sync_manager)

    container.register(
        ServiceNames.VERSION_CONTROL, VersionControlService(cache_store, sync_manager)
    )
    return container
