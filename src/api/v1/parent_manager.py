# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Parent manager API endpoints.

This module provides the actions used by the parent management page:
- GET /parents - List parents (paged, searchable, sortable)
- POST /parents - Mark users as parents
- DELETE /parents/{parent_id} - Remove a parent and all their relations
- GET /parents/{parent_id}/children - List a parent's children
- POST /parents/{parent_id}/children - Assign children to a parent
- DELETE /relations/{relation_id} - Remove one parent-child relation
- GET /unassigned-users - Users that can be assigned as a child
- GET /parent-candidates - Users that can be marked as parents

Every endpoint requires the parent management capability. Mutating actions
answer with {"success": bool}; per-item failures are logged by the service.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Path, Query

from src.api.dependencies import ParentManager, ParentManagerUser
from src.core.config import get_settings
from src.domains.parent_manager.service import DEFAULT_SORT
from src.models.parent_manager import (
    AssignChildrenRequest,
    ChildItem,
    ChildrenResponse,
    MAX_RECORD_ID,
    MarkParentsRequest,
    ParentItem,
    ParentListResponse,
    SuccessResponse,
    UserItem,
    UsersResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

ParentId = Annotated[int, Path(ge=1, le=MAX_RECORD_ID, description="Parent user ID")]


@router.get(
    "/parents",
    response_model=ParentListResponse,
    summary="List parents",
    description="List parents with their child counts, one page at a time.",
)
async def list_parents(
    current_user: ParentManagerUser,
    service: ParentManager,
    page: Annotated[int, Query(ge=0, description="Zero-based page number")] = 0,
    perpage: Annotated[int | None, Query(ge=1, le=100, description="Page size")] = None,
    search: Annotated[str | None, Query(max_length=255, description="Name or email filter")] = None,
    tsort: Annotated[str, Query(description="Sort column")] = DEFAULT_SORT,
    tdir: Annotated[str, Query(description="Sort direction (asc or desc)")] = "asc",
) -> ParentListResponse:
    """List parents.

    Unknown sort columns fall back to last name.
    """
    settings = get_settings().parent_manager
    per_page = perpage or settings.default_per_page

    parents, total = await service.list_parents(
        search=search.strip() if search else None,
        sort=tsort,
        direction=tdir.lower(),
        page=page,
        per_page=per_page,
    )

    return ParentListResponse(
        parents=[
            ParentItem(
                id=parent.id,
                fullname=parent.fullname,
                email=parent.email,
                childcount=parent.child_count,
                lastaccess=parent.last_access,
                profileurl=settings.profile_url(parent.id),
            )
            for parent in parents
        ],
        total=total,
        page=page,
        perpage=per_page,
    )


@router.post(
    "/parents",
    response_model=SuccessResponse,
    summary="Mark users as parents",
)
async def mark_as_parents(
    data: MarkParentsRequest,
    current_user: ParentManagerUser,
    service: ParentManager,
) -> SuccessResponse:
    """Mark users as parents.

    Every user is attempted; success is false if any of them failed.
    """
    logger.info("Marking users as parents: users=%s, by=%s", data.userids, current_user.id)

    result = await service.mark_as_parents(data.userids)
    return SuccessResponse(success=result.success)


@router.delete(
    "/parents/{parent_id}",
    response_model=SuccessResponse,
    summary="Remove parent",
    description="Revoke role grants, delete all relations and clear the parent marker.",
)
async def remove_parent(
    parent_id: ParentId,
    current_user: ParentManagerUser,
    service: ParentManager,
) -> SuccessResponse:
    logger.info("Removing parent: parent=%s, by=%s", parent_id, current_user.id)

    result = await service.remove_parent(parent_id)
    return SuccessResponse(success=result.success)


@router.get(
    "/parents/{parent_id}/children",
    response_model=ChildrenResponse,
    summary="Get children of a parent",
)
async def get_children(
    parent_id: ParentId,
    current_user: ParentManagerUser,
    service: ParentManager,
) -> ChildrenResponse:
    """Get the children assigned to a parent.

    Args:
        parent_id: Parent user ID.
        current_user: User holding the manage capability.
        service: Parent manager service.

    Returns:
        Children with relation ids and profile links.
    """
    settings = get_settings().parent_manager
    children = await service.list_children(parent_id)

    return ChildrenResponse(
        children=[
            ChildItem(
                id=child.id,
                relationid=child.relation_id,
                fullname=child.fullname,
                email=child.email,
                profileurl=settings.profile_url(child.id),
            )
            for child in children
        ]
    )


@router.post(
    "/parents/{parent_id}/children",
    response_model=SuccessResponse,
    summary="Assign children to a parent",
)
async def assign_children(
    parent_id: ParentId,
    data: AssignChildrenRequest,
    current_user: ParentManagerUser,
    service: ParentManager,
) -> SuccessResponse:
    """Assign children to a parent.

    Existing relations are left untouched. Success is false if any new
    relation could not be stored.
    """
    logger.info(
        "Assigning children: parent=%s, children=%s, by=%s",
        parent_id,
        data.childids,
        current_user.id,
    )

    result = await service.assign_children(parent_id, data.childids)
    return SuccessResponse(success=result.success)


@router.delete(
    "/relations/{relation_id}",
    response_model=SuccessResponse,
    summary="Remove a child from a parent",
)
async def remove_child(
    relation_id: Annotated[int, Path(ge=1, le=MAX_RECORD_ID, description="Relation ID")],
    current_user: ParentManagerUser,
    service: ParentManager,
) -> SuccessResponse:
    logger.info("Removing relation: relation=%s, by=%s", relation_id, current_user.id)

    success = await service.remove_child(relation_id)
    return SuccessResponse(success=success)


@router.get(
    "/unassigned-users",
    response_model=UsersResponse,
    summary="Get users available as children",
    description="Active users that are neither parents nor assigned to any parent.",
)
async def get_unassigned_users(
    current_user: ParentManagerUser,
    service: ParentManager,
    parentid: Annotated[
        int | None, Query(ge=1, le=MAX_RECORD_ID, description="Parent to leave out")
    ] = None,
) -> UsersResponse:
    users = await service.list_unassigned_candidates(exclude_parent_id=parentid)
    return UsersResponse(
        users=[UserItem(id=user.id, fullname=user.fullname, email=user.email) for user in users]
    )


@router.get(
    "/parent-candidates",
    response_model=UsersResponse,
    summary="Get users that can be marked as parents",
)
async def get_parent_candidates(
    current_user: ParentManagerUser,
    service: ParentManager,
) -> UsersResponse:
    users = await service.list_parent_candidates()
    return UsersResponse(
        users=[UserItem(id=user.id, fullname=user.fullname, email=user.email) for user in users]
    )
