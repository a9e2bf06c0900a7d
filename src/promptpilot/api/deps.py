"""FastAPI dependency providers.

Services live in the container attached to ``app.state`` by ``create_app``.
"""

from typing import Annotated, Optional

from fastapi import Depends, Request

from ..application.services.sync_manager import SyncManager
from ..application.services.version_control import VersionControlService
from ..core.config import Settings
from ..core.container import Container, ServiceNames


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_settings_dep(container: Annotated[Container, Depends(get_container)]) -> Settings:
    return container.settings


def get_version_control(
    container: Annotated[Container, Depends(get_container)],
) -> VersionControlService:
    """Get the version control engine."""
    return container.get(ServiceNames.VERSION_CONTROL)


def get_sync_manager(
    container: Annotated[Container, Depends(get_container)],
) -> Optional[SyncManager]:
    """Get the sync manager, or None in local-only mode."""
    return container.get_or_none(ServiceNames.SYNC_MANAGER)


SettingsDep = Annotated[Settings, Depends(get_settings_dep)]
VersionControlDep = Annotated[VersionControlService, Depends(get_version_control)]
SyncManagerDep = Annotated[Optional[SyncManager], Depends(get_sync_manager)]
