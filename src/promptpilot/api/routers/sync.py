"""
Local storage and reconciliation endpoints.
"""

from fastapi import APIRouter, Request

from ...application.dto.prompt_dto import SyncStatus
from ..deps import SyncManagerDep, VersionControlDep
from ..errors import ServiceUnavailableError
from ..schemas.common import ApiResponse
from ..schemas.prompts import StorageUsageSchema
from ..utils.responses import ok

router = APIRouter(tags=["sync"])


def _require_sync(sync_manager):
    if sync_manager is None:
        raise ServiceUnavailableError("Remote sync is not configured")
    return sync_manager


@router.get("/storage/usage", response_model=ApiResponse[StorageUsageSchema])
async def storage_usage(request: Request, service: VersionControlDep):
    usage = service.get_storage_usage()
    message = "Local cache is near capacity" if usage.is_near_limit else "OK"
    return ok(request, data=StorageUsageSchema.from_usage(usage), message=message)


@router.get("/sync/status", response_model=ApiResponse[dict])
async def sync_status(request: Request, sync_manager: SyncManagerDep):
    if sync_manager is None:
        return ok(request, data=SyncStatus(enabled=False).to_dict(), message="Local-only mode")
    return ok(request, data=sync_manager.status().to_dict())


@router.post("/sync/pull", response_model=ApiResponse[dict])
async def trigger_pull(request: Request, sync_manager: SyncManagerDep):
    """Run a pull now and wait for it."""
    manager = _require_sync(sync_manager)
    pulled = await manager.pull()
    return ok(
        request,
        data={"pulled": pulled, **manager.status().to_dict()},
        message="Pull complete" if pulled else "Pull failed",
    )


@router.post("/sync/push", response_model=ApiResponse[dict])
async def trigger_push(request: Request, sync_manager: SyncManagerDep):
    """Run a push pass now and wait for it."""
    manager = _require_sync(sync_manager)
    await manager.push_pending()
    return ok(request, data=manager.status().to_dict(), message="Push pass complete")


@router.post("/sync/dead-letters/retry", response_model=ApiResponse[dict])
async def retry_dead_letters(request: Request, sync_manager: SyncManagerDep):
    manager = _require_sync(sync_manager)
    count = manager.retry_dead_letters()
    return ok(request, data={"requeued": count}, message=f"Re-queued {count} record(s)")
