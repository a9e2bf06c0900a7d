import asyncio
import logging
from typing import Optional

from promptpilot.application.services.sync_manager import SyncManager

logger = logging.getLogger(__name__)

MIN_INTERVAL_SECONDS = 5


async def _sync_once(sync_manager: SyncManager) -> None:
    """
    Push anything still pending (including records whose backoff has expired),
    then pull the remote collection into the local cache.
    """
    await sync_manager.run_cycle()
    status = sync_manager.status()
    if status.dead_letters:
        logger.warning(
            "[PullWorker] %d record(s) in the dead-letter log", len(status.dead_letters)
        )


async def run_pull_worker_forever(
    sync_manager: SyncManager,
    interval_seconds: float,
    stop_event: Optional[asyncio.Event] = None,
) -> None:
    """
    Run periodic reconciliation until cancelled or ``stop_event`` is set.

    An interval of 0 disables the loop.
    """
    if interval_seconds <= 0:
        logger.info("[PullWorker] Disabled (interval=%s)", interval_seconds)
        return

    interval = max(MIN_INTERVAL_SECONDS, interval_seconds)
    stop_event = stop_event or asyncio.Event()
    logger.info("[PullWorker] Starting (interval=%ss)", interval)

    while not stop_event.is_set():
        try:
            await _sync_once(sync_manager)
        except Exception as e:
            logger.error("[PullWorker] Iteration failed: %s", e, exc_info=True)
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass

    logger.info("[PullWorker] Stopped")
