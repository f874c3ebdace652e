# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Parent manager DTOs.

Summaries are returned by ParentManagerService. Request and response models
define the JSON shapes of the remote actions; their field names (``childids``,
``relationid``, ``profileurl`` ...) are what the admin page's scripts expect.
"""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field

# Largest id the INTEGER key columns can hold.
MAX_RECORD_ID = 2**31 - 1

RecordId = Annotated[int, Field(ge=1, le=MAX_RECORD_ID)]


# =============================================================================
# Service summaries
# =============================================================================


class UserSummary(BaseModel):
    """Minimal user listing entry."""

    id: int
    fullname: str
    email: str


class ParentSummary(BaseModel):
    """A parent with the number of children assigned to them."""

    id: int
    fullname: str
    email: str
    last_access: datetime | None = None
    child_count: int = 0


class ChildSummary(BaseModel):
    """A child together with the relationship that links it to a parent."""

    id: int
    relation_id: int
    fullname: str
    email: str


# =============================================================================
# Requests
# =============================================================================


class AssignChildrenRequest(BaseModel):
    """Children to assign to a parent."""

    childids: list[RecordId] = Field(min_length=1, description="Child user IDs")


class MarkParentsRequest(BaseModel):
    """Users to mark as parents."""

    userids: list[RecordId] = Field(min_length=1, description="User IDs to mark as parents")


# =============================================================================
# Responses
# =============================================================================


class SuccessResponse(BaseModel):
    """Outcome of a mutating action."""

    success: bool


class ChildItem(BaseModel):
    """Child entry returned by get_children."""

    id: int = Field(description="User ID")
    relationid: int = Field(description="Relation ID")
    fullname: str
    email: str
    profileurl: str


class ChildrenResponse(BaseModel):
    """Response of get_children."""

    children: list[ChildItem]


class UserItem(BaseModel):
    """User entry returned by the candidate listings."""

    id: int = Field(description="User ID")
    fullname: str
    email: str


class UsersResponse(BaseModel):
    """Response of get_unassigned_users and the parent candidate listing."""

    users: list[UserItem]


class ParentItem(BaseModel):
    """Row of the parent listing."""

    id: int = Field(description="User ID")
    fullname: str
    email: str
    childcount: int = Field(description="Number of assigned children")
    lastaccess: datetime | None = None
    profileurl: str


class ParentListResponse(BaseModel):
    """One page of the parent listing."""

    parents: list[ParentItem]
    total: int = Field(description="Number of parents matching the filter")
    page: int = Field(description="Zero-based page number")
    perpage: int = Field(description="Page size")
