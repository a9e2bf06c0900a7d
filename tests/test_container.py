"""
Container wiring tests.
"""

import pytest

from promptpilot.core.config import SyncSettings
from promptpilot.core.container import Container, ServiceNames, build_container
from promptpilot.core.exceptions import ConfigurationError


def test_local_only_wiring(settings):
    container = build_container(settings)

    assert container.get(ServiceNames.SETTINGS) is settings
    assert container.has(ServiceNames.CACHE_STORE)
    assert not container.has(ServiceNames.REMOTE_STORE)
    assert container.get_or_none(ServiceNames.SYNC_MANAGER) is None
    assert container.get(ServiceNames.VERSION_CONTROL).sync_manager is None


def test_remote_store_enables_sync(settings, cache_store, remote):
    container = build_container(settings, cache_store=cache_store, remote_store=remote)

    sync_manager = container.get(ServiceNames.SYNC_MANAGER)
    assert sync_manager.remote is remote
    assert container.get(ServiceNames.VERSION_CONTROL).sync_manager is sync_manager


def test_sync_switched_off(settings, cache_store, remote):
    settings.sync = SyncSettings(enabled=False)
    container = build_container(settings, cache_store=cache_store, remote_store=remote)

    assert container.get(ServiceNames.REMOTE_STORE) is remote
    assert not container.has(ServiceNames.SYNC_MANAGER)


def test_unknown_and_duplicate_names(settings):
    container = Container(settings)
    with pytest.raises(ConfigurationError):
        container.get("missing")

    container.register("thing", object())
    with pytest.raises(ConfigurationError):
        container.register("thing", object())
