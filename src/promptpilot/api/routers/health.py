"""
Health check endpoints.
"""

import os
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from pydantic import BaseModel

from ... import __version__
from ..deps import SettingsDep, SyncManagerDep, VersionControlDep
from ..schemas.common import ApiResponse
from ..utils.responses import ok

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    timestamp: datetime
    version: str
    service: str


@router.get("", response_model=ApiResponse[HealthResponse])
async def health_check(request: Request, settings: SettingsDep):
    """
    Health check endpoint.

    Returns the current status of the service.
    """
    return ok(request, data=HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        service=settings.app_name,
    ), message="OK")


@router.get("/ready", response_model=ApiResponse[dict])
async def readiness_check(
    request: Request,
    settings: SettingsDep,
    service: VersionControlDep,
    sync_manager: SyncManagerDep,
):
    """
    Readiness check endpoint.

    Checks that the local cache is usable and, when a remote store is
    configured, that MongoDB answers a ping.
    """
    checks = {}
    all_ok = True

    cache_dir = settings.cache.directory
    if os.path.isdir(cache_dir):
        checks["local_cache"] = "ok" if os.access(cache_dir, os.W_OK) else "read_only"
        all_ok = all_ok and checks["local_cache"] == "ok"
    else:
        # Created on first write
        checks["local_cache"] = "not_created"

    usage = service.get_storage_usage()
    checks["local_cache_near_limit"] = usage.is_near_limit

    mongo_client = getattr(request.app.state, "mongo_client", None)
    if not settings.database.is_configured:
        checks["remote_store"] = "not_configured"
    elif mongo_client is None:
        checks["remote_store"] = "not_connected"
        all_ok = False
    else:
        try:
            await mongo_client.admin.command("ping")
            checks["remote_store"] = "ok"
        except Exception as e:
            checks["remote_store"] = f"error: {str(e)[:50]}"
            all_ok = False

    checks["sync"] = "enabled" if sync_manager is not None else "disabled"

    return ok(request, data={
        "status": "ready" if all_ok else "degraded",
        "timestamp": datetime.now(timezone.utc),
        "checks": checks,
    }, message="OK" if all_ok else "Some services unavailable")


@router.get("/live", response_model=ApiResponse[dict])
async def liveness_check(request: Request):
    """
    Liveness check endpoint.

    Returns whether the service is alive.
    """
    return ok(request, data={"status": "alive", "timestamp": datetime.now(timezone.utc)}, message="OK")
