"""
Prompt version endpoints.
"""

from typing import List

from fastapi import APIRouter, Query, Request

from ..deps import VersionControlDep
from ..errors import LastVersionConflictError, VersionNotFoundError
from ..schemas.common import ApiResponse
from ..schemas.prompts import (
    PromptVersionSchema,
    SetVersionStatusRequest,
    UpdateVersionRequest,
    VersionMatchSchema,
)
from ..utils.responses import ok

router = APIRouter(prefix="/versions", tags=["versions"])


@router.get("/search", response_model=ApiResponse[List[VersionMatchSchema]])
async def search_versions(
    request: Request,
    service: VersionControlDep,
    q: str = Query(..., min_length=1, description="Case-insensitive substring"),
):
    """Match version name, content or description, or the owning group's name."""
    matches = service.search_versions(q)
    return ok(request, data=[VersionMatchSchema.from_match(m) for m in matches])


@router.get("/recent", response_model=ApiResponse[List[VersionMatchSchema]])
async def recent_versions(
    request: Request,
    service: VersionControlDep,
    limit: int = Query(10, ge=1, le=100),
):
    matches = service.get_recent_versions(limit)
    return ok(request, data=[VersionMatchSchema.from_match(m) for m in matches])


@router.get("/{version_id}", response_model=ApiResponse[PromptVersionSchema])
async def get_version(request: Request, version_id: str, service: VersionControlDep):
    version = service.get_version_by_id(version_id)
    if version is None:
        raise VersionNotFoundError(version_id)
    return ok(request, data=PromptVersionSchema.from_entity(version))


@router.patch("/{version_id}", response_model=ApiResponse[PromptVersionSchema])
async def update_version(
    request: Request, version_id: str, payload: UpdateVersionRequest, service: VersionControlDep
):
    version = service.update_version(version_id, name=payload.name, description=payload.description)
    if version is None:
        raise VersionNotFoundError(version_id)
    return ok(request, data=PromptVersionSchema.from_entity(version), message="Version updated")


@router.put("/{version_id}/status", response_model=ApiResponse[PromptVersionSchema])
async def set_version_status(
    request: Request, version_id: str, payload: SetVersionStatusRequest, service: VersionControlDep
):
    """Move a version to draft, current or production."""
    if not service.set_version_status(version_id, payload.status):
        raise VersionNotFoundError(version_id)
    version = service.get_version_by_id(version_id)
    return ok(request, data=PromptVersionSchema.from_entity(version), message="Status updated")


@router.delete("/{version_id}", response_model=ApiResponse[dict])
async def delete_version(request: Request, version_id: str, service: VersionControlDep):
    version = service.get_version_by_id(version_id)
    if version is None:
        raise VersionNotFoundError(version_id)
    if not service.delete_version(version_id):
        raise LastVersionConflictError(version_id, version.group_id)
    return ok(request, data={"id": version_id, "deleted": True}, message="Version deleted")
