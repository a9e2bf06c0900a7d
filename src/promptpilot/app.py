"""
FastAPI application setup for PromptPilot.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .api.errors import APIError, ConflictError, InsufficientStorageError, ValidationError
from .api.routers import health, prompt_groups, prompt_versions, sync
from .api.utils.responses import error_response
from .core.config import Settings, get_settings
from .core.container import Container, ServiceNames, build_container
from .core.exceptions import CacheError
from .core.structured_logger import configure_logging
from .domain.errors import DomainError, InvalidPromptDataError, LastVersionDeletionError
from .middleware.performance_middleware import PerformanceMiddleware
from .middleware.request_id_middleware import RequestIDMiddleware
from .workers.remote_pull_worker import run_pull_worker_forever

logger = logging.getLogger(__name__)

SHUTDOWN_DRAIN_SECONDS = 10.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    container: Container = app.state.container
    settings = container.settings

    logger.info("Starting %s v%s (env=%s)", settings.app_name, settings.app_version, settings.app_env)

    mongo_client = None
    if settings.database.is_configured and container.has(ServiceNames.REMOTE_STORE):
        try:
            from .adapters.db.mongo.client import init_mongo

            mongo_client = await init_mongo(settings.database)
            logger.info("Database connection established")
        except Exception as e:
            # The local cache keeps working; sync calls fail until the remote is reachable
            logger.error("Database connection failed: %s", e, exc_info=True)
    app.state.mongo_client = mongo_client

    sync_manager = container.get_or_none(ServiceNames.SYNC_MANAGER)
    stop_event = asyncio.Event()
    worker_task = None
    if sync_manager is not None and app.state.run_pull_worker:
        worker_task = asyncio.create_task(
            run_pull_worker_forever(sync_manager, settings.sync.pull_interval_seconds, stop_event)
        )
    elif sync_manager is None:
        logger.info("Remote sync disabled; running in local-only mode")

    try:
        yield
    finally:
        stop_event.set()
        if worker_task is not None:
            worker_task.cancel()
            try:
                await worker_task
            except asyncio.CancelledError:
                pass
        if sync_manager is not None:
            try:
                await asyncio.wait_for(sync_manager.drain(), timeout=SHUTDOWN_DRAIN_SECONDS)
            except asyncio.TimeoutError:
                logger.warning("Background sync did not finish within %ss; cancelling", SHUTDOWN_DRAIN_SECONDS)
            await sync_manager.close()
        if mongo_client is not None:
            mongo_client.close()
            logger.info("MongoDB client closed")
        logger.info("Shutting down %s", settings.app_name)


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[Container] = None,
    run_pull_worker: bool = True,
) -> FastAPI:
    """Create and configure FastAPI application."""
    if container is None:
        container = build_container(settings or get_settings())
    settings = container.settings
    configure_logging(settings.logging)

    app = FastAPI(
        title=settings.app_name,
        description="Prompt version control with local caching and remote sync",
        version=settings.app_version,
        debug=settings.debug,
        # No interactive docs in production
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        openapi_url=None if settings.is_production else "/openapi.json",
        lifespan=lifespan,
    )
    app.state.container = container
    app.state.run_pull_worker = run_pull_worker
    app.state.mongo_client = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        max_age=600,
        expose_headers=["X-Request-ID", "X-Process-Time"],
    )
    app.add_middleware(PerformanceMiddleware)
    # Added last so it runs first and the request ID is set for everything else
    app.add_middleware(RequestIDMiddleware)

    app.include_router(health.router)
    app.include_router(prompt_groups.router)
    app.include_router(prompt_versions.router)
    app.include_router(sync.router)

    def render_api_error(request: Request, exc: APIError):
        return error_response(request, exc.http_status, exc.code, exc.message, exc.details)

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        logger.warning("DomainError: %s %s", exc.error_code, exc.message)
        if isinstance(exc, InvalidPromptDataError):
            return render_api_error(request, ValidationError(exc.message, exc.details))
        if isinstance(exc, LastVersionDeletionError):
            return render_api_error(request, ConflictError(exc.message, exc.details))
        return error_response(request, 400, exc.error_code or "DOMAIN_ERROR", exc.message, exc.details)

    @app.exception_handler(CacheError)
    async def cache_error_handler(request: Request, exc: CacheError):
        logger.error("CacheError: %s", exc.message)
        return render_api_error(request, InsufficientStorageError(exc.message, exc.details))

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        logger.warning(
            "APIError: %s (%s) %s | request_id=%s",
            exc.code,
            exc.http_status,
            exc.message,
            getattr(request.state, "request_id", None),
        )
        return render_api_error(request, exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [{k: v for k, v in e.items() if k != "ctx"} for e in exc.errors()]
        messages = []
        for error in errors:
            loc = " -> ".join(str(x) for x in error.get("loc", []))
            messages.append(f"{loc}: {error.get('msg', 'Validation error')}")
        logger.warning("ValidationError on %s %s: %s", request.method, request.url.path, messages)
        return render_api_error(
            request,
            ValidationError(
                f"Input validation failed: {'; '.join(messages)}",
                {"errors": jsonable_encoder(errors), "path": request.url.path},
            ),
        )

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled error: %s | request_id=%s",
            type(exc).__name__,
            getattr(request.state, "request_id", None),
            exc_info=exc,
        )
        return error_response(
            request, 500, "INTERNAL_ERROR", "An unexpected error has occurred. Please try again later."
        )

    @app.get("/", tags=["health"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.app_env,
            "remote_sync": container.has(ServiceNames.SYNC_MANAGER),
            "status": "running",
        }

    return app


# Create the app instance
app = create_app()
