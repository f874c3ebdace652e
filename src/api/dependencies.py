# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get database sessions
- Get authenticated users and check their capabilities
- Get service instances

Example:
    @router.get("/parents")
    async def list_parents(
        current_user: ParentManagerUser,
        service: ParentManager,
    ):
        ...
"""

import logging
from typing import Annotated, AsyncGenerator, Protocol

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.middleware.auth import CurrentUser, get_current_user
from src.core.config import get_settings
from src.domains.parent_manager import (
    ParentManagerService,
    RoleSyncConfig,
    RoleSynchronizer,
    SqlRoleGrantGateway,
)
from src.infrastructure.database.connection import get_session

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session.

    Yields:
        AsyncSession for the request.
    """
    async with get_session() as session:
        yield session


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


class CapabilityChecker(Protocol):
    """Decides whether a user holds a capability."""

    def has_capability(self, user: CurrentUser, capability: str) -> bool:
        ...


class TokenPermissionChecker:
    """Grants a capability when the access token lists it as a permission."""

    def has_capability(self, user: CurrentUser, capability: str) -> bool:
        return user.has_permission(capability)


def get_capability_checker() -> CapabilityChecker:
    """Get the capability checker.

    Override this dependency to plug in the host's access-control layer.
    """
    return TokenPermissionChecker()


def require_manage_capability(
    request: Request,
    checker: CapabilityChecker = Depends(get_capability_checker),
) -> CurrentUser:
    """Require a user allowed to manage parents.

    Raises:
        HTTPException: 401 if not authenticated, 403 without the capability.
    """
    user = require_auth(request)
    capability = get_settings().parent_manager.manage_permission

    if not checker.has_capability(user, capability):
        logger.info("Capability %s denied for user %s", capability, user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Missing capability: {capability}",
        )
    return user


# =========================================================================
# Service Dependencies
# =========================================================================


def get_role_sync_config() -> RoleSyncConfig:
    """Build the role synchronization config from settings."""
    return RoleSyncConfig.from_settings(get_settings().parent_manager)


def get_parent_manager_service(
    db: AsyncSession = Depends(get_db),
    config: RoleSyncConfig = Depends(get_role_sync_config),
) -> ParentManagerService:
    """Get parent manager service instance.

    Args:
        db: Database session.
        config: Role synchronization config.

    Returns:
        Configured ParentManagerService instance.
    """
    role_sync = RoleSynchronizer(SqlRoleGrantGateway(db), config)
    return ParentManagerService(
        db=db,
        role_sync=role_sync,
        excluded_candidate_ids=get_settings().parent_manager.reserved_user_id_list,
    )


# =========================================================================
# Type Aliases for Dependency Injection
# =========================================================================

ParentManagerUser = Annotated[CurrentUser, Depends(require_manage_capability)]
ParentManager = Annotated[ParentManagerService, Depends(get_parent_manager_service)]
