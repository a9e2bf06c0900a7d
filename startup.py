import logging
import os
import sys
import traceback

import uvicorn

# Configure logging to stdout
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)

# Add the src directory to Python path
current_dir = os.path.dirname(os.path.abspath(__file__))
src_path = os.path.join(current_dir, 'src')
sys.path.insert(0, src_path)

logger.info("=" * 60)
logger.info("PromptPilot Startup")
logger.info("=" * 60)
logger.info("Python version: %s", sys.version.split()[0])
logger.info("Source path: %s", src_path)

# Log critical environment variables (without exposing secrets)
logger.info("Environment Configuration:")
logger.info("  PORT: %s", os.environ.get('PORT', 'not set'))
logger.info("  APP_ENV: %s", os.environ.get('APP_ENV', 'not set'))
logger.info("  MONGO_URI: %s", 'set' if os.environ.get('MONGO_URI') else 'not set (local-only mode)')
logger.info("  MONGO_DB_NAME: %s", os.environ.get('MONGO_DB_NAME', 'not set'))
logger.info("  CACHE_DIRECTORY: %s", os.environ.get('CACHE_DIRECTORY', 'not set'))
logger.info("  SYNC_ENABLED: %s", os.environ.get('SYNC_ENABLED', 'not set'))

if __name__ == "__main__":
    try:
        # Settings validation errors surface here, before uvicorn starts
        try:
            from promptpilot.core.config import get_settings
            settings = get_settings()
        except ValueError as ve:
            logger.error("Configuration validation failed: %s", ve)
            logger.error(traceback.format_exc())
            logger.error("Common configuration issues:")
            logger.error("  1. MONGO_URI must start with mongodb:// or mongodb+srv:// when set")
            logger.error("  2. CACHE_NEAR_LIMIT_RATIO must be within (0, 1]")
            logger.error("  3. SYNC_BACKOFF_MAX_SECONDS must be >= SYNC_BACKOFF_BASE_SECONDS")
            sys.exit(1)

        port = int(os.environ.get("PORT", settings.port))
        host = os.environ.get("HOST", settings.host)

        logger.info("App name: %s", settings.app_name)
        logger.info("App version: %s", settings.app_version)
        logger.info("App environment: %s", settings.app_env)
        logger.info("Remote sync: %s", "enabled" if settings.remote_sync_enabled else "disabled")
        logger.info("Starting uvicorn server on %s:%s...", host, port)

        uvicorn.run(
            "promptpilot.app:app",
            host=host,
            port=port,
            # One process: the local cache file and the sync manager are per-process
            workers=1,
            log_level="info",
            access_log=True,
            timeout_keep_alive=75,
            timeout_graceful_shutdown=30,
        )
    except KeyboardInterrupt:
        logger.info("Shutting down due to keyboard interrupt")
        sys.exit(0)
    except Exception as e:
        logger.error("CRITICAL: Failed to start application: %s (%s)", e, type(e).__name__)
        logger.error(traceback.format_exc())
        sys.exit(1)
