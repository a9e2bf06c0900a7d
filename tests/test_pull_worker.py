"""
Periodic reconciliation loop tests.
"""

import asyncio
import logging

import pytest

from promptpilot.workers.remote_pull_worker import run_pull_worker_forever


@pytest.mark.asyncio
async def test_zero_interval_disables_worker(sync_manager, remote):
    await asyncio.wait_for(run_pull_worker_forever(sync_manager, 0), timeout=1)
    assert sum(remote.calls.values()) == 0


@pytest.mark.asyncio
async def test_worker_pushes_then_pulls_until_stopped(service, sync_manager, remote):
    group = service.create_prompt_group("G", "one")
    stop_event = asyncio.Event()

    task = asyncio.create_task(run_pull_worker_forever(sync_manager, 60, stop_event))
    while remote.calls["list_groups"] == 0:
        await asyncio.sleep(0.01)
    stop_event.set()
    await asyncio.wait_for(task, timeout=1)

    assert remote.calls["create_group"] == 1
    assert service.get_group_by_id(group.id).remote_id is not None


@pytest.mark.asyncio
async def test_worker_survives_failed_iteration(sync_manager, remote):
    remote.fail("list_groups")
    stop_event = asyncio.Event()

    task = asyncio.create_task(run_pull_worker_forever(sync_manager, 60, stop_event))
    while remote.calls["list_groups"] == 0:
        await asyncio.sleep(0.01)
    stop_event.set()
    await asyncio.wait_for(task, timeout=1)

    assert task.exception() is None
    assert sync_manager.status().last_pull_error is not None


@pytest.mark.asyncio
async def test_worker_reports_dead_letters(service, sync_manager, remote, caplog):
    service.create_prompt_group("G", "one")
    remote.fail("create_group")
    for _ in range(3):
        await sync_manager.push_pending()
    stop_event = asyncio.Event()

    with caplog.at_level(logging.WARNING):
        task = asyncio.create_task(run_pull_worker_forever(sync_manager, 60, stop_event))
        while remote.calls["list_groups"] == 0:
            await asyncio.sleep(0.01)
        stop_event.set()
        await asyncio.wait_for(task, timeout=1)

    assert any("dead-letter log" in r.getMessage() for r in caplog.records)
