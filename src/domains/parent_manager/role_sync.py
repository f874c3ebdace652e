# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Role synchronization for parent-child relationships.

When a relationship is created the parent receives the configured parent role
inside the child's personal (user-level) context, which lets the host's
access-control layer show the parent their child's data. When the relationship
is removed the grant is revoked again.

Grants created here are tagged with a component name. Revocation only touches
grants carrying that tag, so a role the administrator assigned by hand in the
same context is left alone.

Role synchronization never fails the caller: gateway errors are logged and
reported as ``False``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models import CONTEXT_LEVEL_USER, RoleAssignment

if TYPE_CHECKING:
    from src.core.config.settings import ParentManagerSettings

logger = logging.getLogger(__name__)

DEFAULT_COMPONENT = "parent_manager"


@dataclass(frozen=True)
class RoleScope:
    """Access-control context a role is granted in.

    Attributes:
        level: Context level, e.g. "user".
        instance_id: Identifier of the context instance.
    """

    level: str
    instance_id: int

    @classmethod
    def for_user(cls, user_id: int) -> RoleScope:
        """Personal context of a user."""
        return cls(level=CONTEXT_LEVEL_USER, instance_id=user_id)


@dataclass(frozen=True)
class RoleSyncConfig:
    """Role synchronization settings.

    Attributes:
        auto_assign_enabled: Grant the role when a relationship is created.
        parent_role_id: Role to grant; 0 disables synchronization.
        component: Tag stored on created grants.
    """

    auto_assign_enabled: bool = True
    parent_role_id: int = 0
    component: str = DEFAULT_COMPONENT

    @classmethod
    def from_settings(cls, settings: ParentManagerSettings) -> RoleSyncConfig:
        return cls(
            auto_assign_enabled=settings.auto_role_assign,
            parent_role_id=settings.parent_role_id,
            component=settings.role_component,
        )


class RoleGrantGateway(Protocol):
    """Access to the host's role assignments."""

    async def has_grant(self, role_id: int, user_id: int, scope: RoleScope) -> bool:
        """Whether any grant exists for the role, user and scope."""
        ...

    async def grant(self, role_id: int, user_id: int, scope: RoleScope, component: str) -> None:
        """Create a grant tagged with ``component``."""
        ...

    async def revoke(self, role_id: int, user_id: int, scope: RoleScope, component: str) -> None:
        """Remove the grant tagged with ``component``, if present."""
        ...


class SqlRoleGrantGateway:
    """RoleGrantGateway backed by the ``role_assignments`` table.

    Each change is committed on its own. On a database error the session is
    rolled back and the error re-raised to the synchronizer.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def has_grant(self, role_id: int, user_id: int, scope: RoleScope) -> bool:
        # Any component counts: a manual grant already gives the parent access.
        result = await self.db.execute(
            select(RoleAssignment.id)
            .where(
                RoleAssignment.role_id == role_id,
                RoleAssignment.user_id == user_id,
                RoleAssignment.context_level == scope.level,
                RoleAssignment.context_instance_id == scope.instance_id,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def grant(self, role_id: int, user_id: int, scope: RoleScope, component: str) -> None:
        try:
            self.db.add(
                RoleAssignment(
                    role_id=role_id,
                    user_id=user_id,
                    context_level=scope.level,
                    context_instance_id=scope.instance_id,
                    component=component,
                )
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def revoke(self, role_id: int, user_id: int, scope: RoleScope, component: str) -> None:
        try:
            await self.db.execute(
                delete(RoleAssignment).where(
                    RoleAssignment.role_id == role_id,
                    RoleAssignment.user_id == user_id,
                    RoleAssignment.context_level == scope.level,
                    RoleAssignment.context_instance_id == scope.instance_id,
                    RoleAssignment.component == component,
                )
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise


class RoleSynchronizer:
    """Keeps parent role grants in line with parent-child relationships.

    Attributes:
        gateway: Role assignment access.
        config: Synchronization settings.
    """

    def __init__(self, gateway: RoleGrantGateway, config: RoleSyncConfig) -> None:
        self.gateway = gateway
        self.config = config

    async def on_relationship_created(self, parent_id: int, child_id: int) -> bool:
        """Grant the parent role in the child's context.

        Does nothing when auto-assignment is disabled, no role is configured,
        or the parent already holds the role there (from any source).

        Returns:
            False if the gateway raised, True otherwise.
        """
        if not self.config.auto_assign_enabled or not self.config.parent_role_id:
            return True

        role_id = self.config.parent_role_id
        scope = RoleScope.for_user(child_id)
        try:
            if await self.gateway.has_grant(role_id, parent_id, scope):
                return True
            await self.gateway.grant(role_id, parent_id, scope, self.config.component)
        except Exception as e:
            logger.warning(
                "Failed to grant role %s to parent %s for child %s: %s",
                role_id,
                parent_id,
                child_id,
                e,
            )
            return False

        logger.info("Granted role %s to parent %s for child %s", role_id, parent_id, child_id)
        return True

    async def on_relationship_removed(self, parent_id: int, child_id: int) -> bool:
        """Revoke the grant created for this relationship.

        Only the configured role id gates revocation. The auto-assign flag
        is not consulted, so grants made while it was enabled are still
        cleaned up after it has been switched off.

        Returns:
            False if the gateway raised, True otherwise.
        """
        if not self.config.parent_role_id:
            return True

        role_id = self.config.parent_role_id
        try:
            await self.gateway.revoke(
                role_id,
                parent_id,
                RoleScope.for_user(child_id),
                self.config.component,
            )
        except Exception as e:
            logger.warning(
                "Failed to revoke role %s from parent %s for child %s: %s",
                role_id,
                parent_id,
                child_id,
                e,
            )
            return False

        logger.info("Revoked role %s from parent %s for child %s", role_id, parent_id, child_id)
        return True
