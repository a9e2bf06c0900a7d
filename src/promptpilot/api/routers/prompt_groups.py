"""
Prompt group endpoints.
"""

from typing import List

from fastapi import APIRouter, Request, status

from ...application.dto.prompt_dto import AddVersionOptions
from ..deps import VersionControlDep
from ..errors import GroupNotFoundError
from ..schemas.common import ApiResponse
from ..schemas.prompts import (
    AddVersionRequest,
    CreateGroupRequest,
    PromptGroupSchema,
    PromptVersionSchema,
    UpdateGroupRequest,
)
from ..utils.responses import ok

router = APIRouter(prefix="/groups", tags=["groups"])


@router.post(
    "",
    response_model=ApiResponse[PromptGroupSchema],
    status_code=status.HTTP_201_CREATED,
)
async def create_group(request: Request, payload: CreateGroupRequest, service: VersionControlDep):
    """Create a prompt group with its first, current version."""
    group = service.create_prompt_group(
        payload.name,
        payload.content,
        description=payload.description,
        tags=payload.tags,
    )
    return ok(request, data=PromptGroupSchema.from_entity(group), message="Prompt group created")


@router.get("", response_model=ApiResponse[List[PromptGroupSchema]])
async def list_groups(request: Request, service: VersionControlDep):
    groups = service.get_all_groups()
    return ok(request, data=[PromptGroupSchema.from_entity(g) for g in groups])


@router.get("/{group_id}", response_model=ApiResponse[PromptGroupSchema])
async def get_group(request: Request, group_id: str, service: VersionControlDep):
    group = service.get_group_by_id(group_id)
    if group is None:
        raise GroupNotFoundError(group_id)
    return ok(request, data=PromptGroupSchema.from_entity(group))


@router.patch("/{group_id}", response_model=ApiResponse[PromptGroupSchema])
async def update_group(
    request: Request, group_id: str, payload: UpdateGroupRequest, service: VersionControlDep
):
    group = service.update_group(
        group_id, name=payload.name, description=payload.description, tags=payload.tags
    )
    if group is None:
        raise GroupNotFoundError(group_id)
    return ok(request, data=PromptGroupSchema.from_entity(group), message="Prompt group updated")


@router.delete("/{group_id}", response_model=ApiResponse[dict])
async def delete_group(request: Request, group_id: str, service: VersionControlDep):
    """Delete a group and every version it owns."""
    if not await service.delete_group(group_id):
        raise GroupNotFoundError(group_id)
    return ok(request, data={"id": group_id, "deleted": True}, message="Prompt group deleted")


@router.get("/{group_id}/versions", response_model=ApiResponse[List[PromptVersionSchema]])
async def list_versions(request: Request, group_id: str, service: VersionControlDep):
    """Versions of a group, highest version number first."""
    if service.get_group_by_id(group_id) is None:
        raise GroupNotFoundError(group_id)
    versions = service.get_versions_for_group(group_id)
    return ok(request, data=[PromptVersionSchema.from_entity(v) for v in versions])


@router.post(
    "/{group_id}/versions",
    response_model=ApiResponse[PromptVersionSchema],
    status_code=status.HTTP_201_CREATED,
)
async def add_version(
    request: Request, group_id: str, payload: AddVersionRequest, service: VersionControlDep
):
    version = service.add_version(
        group_id,
        payload.content,
        AddVersionOptions(
            name=payload.name,
            description=payload.description,
            status=payload.status,
            parent_version_id=payload.parent_version_id,
            created_from=payload.created_from,
        ),
    )
    if version is None:
        raise GroupNotFoundError(group_id)
    return ok(request, data=PromptVersionSchema.from_entity(version), message="Version added")
