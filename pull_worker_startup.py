import asyncio
import logging
import signal

from promptpilot.adapters.db.mongo.client import init_mongo
from promptpilot.core.config import get_settings
from promptpilot.core.container import ServiceNames, build_container
from promptpilot.core.structured_logger import configure_logging
from promptpilot.workers.remote_pull_worker import run_pull_worker_forever

logger = logging.getLogger("promptpilot")


async def main() -> None:
    """
    Entry point for the periodic reconciliation worker.

    Keeps a local cache directory in step with the remote store without
    running the API:
        PYTHONPATH=./src python3 pull_worker_startup.py
    """
    settings = get_settings()
    configure_logging(settings.logging)

    if not settings.remote_sync_enabled:
        logger.info("Remote sync is disabled. Set MONGO_URI and SYNC_ENABLED=true to enable.")
        return

    logger.info(
        "Starting pull worker: db=%s, cache=%s, interval=%ss",
        settings.database.db_name,
        settings.cache.directory,
        settings.sync.pull_interval_seconds,
    )

    client = await init_mongo(settings.database)
    container = build_container(settings)
    sync_manager = container.get(ServiceNames.SYNC_MANAGER)

    # Graceful shutdown via signals
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received for pull worker, stopping gracefully")
        stop_event.set()

    loop = asyncio.get_running_loop()
    if hasattr(signal, "SIGTERM"):
        loop.add_signal_handler(signal.SIGTERM, _signal_handler)
    if hasattr(signal, "SIGINT"):
        loop.add_signal_handler(signal.SIGINT, _signal_handler)

    try:
        await run_pull_worker_forever(sync_manager, settings.sync.pull_interval_seconds, stop_event)
    finally:
        await sync_manager.close()
        client.close()
        logger.info("Pull worker MongoDB client closed.")


if __name__ == "__main__":
    asyncio.run(main())
