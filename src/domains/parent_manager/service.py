# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Parent manager service for parent markers and parent-child relations.

This module provides the ParentManagerService class for:
- Listing parents, their children and assignable users
- Assigning and removing children
- Marking and unmarking users as parents

Mutating operations never raise on database errors. Each item is committed
on its own; a failing item is rolled back, logged and reported in the
returned BatchResult while the remaining items are still processed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.parent_manager.role_sync import RoleSynchronizer
from src.infrastructure.database.models import ParentChildRelation, ParentMarker, User
from src.models.parent_manager import ChildSummary, ParentSummary, UserSummary
from src.utils.datetime import ensure_utc

logger = logging.getLogger(__name__)

DEFAULT_SORT = "lastname"
DEFAULT_PER_PAGE = 30


@dataclass
class ItemResult:
    """Outcome of one item of a batch operation.

    Attributes:
        item_id: User or relation the step applied to.
        ok: Whether the step succeeded.
        action: Name of the step.
        detail: Short description, or the error message on failure.
        role_synced: Outcome of the role synchronization, if one ran.
    """

    item_id: int
    ok: bool
    action: str = ""
    detail: str = ""
    role_synced: bool | None = None


@dataclass
class BatchResult:
    """Per-item outcomes of a batch operation."""

    items: list[ItemResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(item.ok for item in self.items)

    @property
    def failed_ids(self) -> list[int]:
        return [item.item_id for item in self.items if not item.ok]

    def add(
        self,
        item_id: int,
        ok: bool,
        action: str,
        detail: str = "",
        role_synced: bool | None = None,
    ) -> ItemResult:
        item = ItemResult(
            item_id=item_id,
            ok=ok,
            action=action,
            detail=detail,
            role_synced=role_synced,
        )
        self.items.append(item)
        return item


class ParentManagerService:
    """Service for managing parents and their children.

    Attributes:
        db: Async database session.
        role_sync: Synchronizer notified on relationship changes.
        excluded_candidate_ids: User ids never offered as parent candidates.
    """

    def __init__(
        self,
        db: AsyncSession,
        role_sync: RoleSynchronizer,
        excluded_candidate_ids: Sequence[int] = (),
    ) -> None:
        """Initialize parent manager service.

        Args:
            db: Async database session.
            role_sync: Role synchronizer for relationship changes.
            excluded_candidate_ids: Reserved accounts (guest, primary admin).
        """
        self.db = db
        self.role_sync = role_sync
        self.excluded_candidate_ids = tuple(excluded_candidate_ids)

    # =========================================================================
    # Queries
    # =========================================================================

    async def list_parents(
        self,
        search: str | None = None,
        sort: str = DEFAULT_SORT,
        direction: str = "asc",
        page: int = 0,
        per_page: int = DEFAULT_PER_PAGE,
    ) -> tuple[list[ParentSummary], int]:
        """List active parents with their child counts.

        Args:
            search: Case-insensitive substring matched against first name,
                last name and email.
            sort: Sort column; unknown values fall back to last name.
            direction: "desc" for descending, anything else ascending.
            page: Zero-based page number.
            per_page: Page size.

        Returns:
            Tuple of (page of parents, total matching count).
        """
        child_count = (
            select(func.count(ParentChildRelation.id))
            .where(ParentChildRelation.parent_id == User.id)
            .correlate(User)
            .scalar_subquery()
            .label("child_count")
        )

        conditions = [User.deleted_at.is_(None)]
        if search:
            conditions.append(
                or_(
                    User.first_name.icontains(search, autoescape=True),
                    User.last_name.icontains(search, autoescape=True),
                    User.email.icontains(search, autoescape=True),
                )
            )

        count_query = (
            select(func.count(User.id))
            .join(ParentMarker, ParentMarker.user_id == User.id)
            .where(*conditions)
        )
        total = (await self.db.execute(count_query)).scalar() or 0

        sort_columns = {
            "firstname": User.first_name,
            "lastname": User.last_name,
            "email": User.email,
            "childcount": child_count,
            "lastaccess": User.last_access_at,
        }
        column = sort_columns.get(sort, sort_columns[DEFAULT_SORT])
        order = column.desc() if direction == "desc" else column.asc()

        query = (
            select(User, child_count)
            .join(ParentMarker, ParentMarker.user_id == User.id)
            .where(*conditions)
            .order_by(order, User.id.asc())
            .offset(page * per_page)
            .limit(per_page)
        )
        result = await self.db.execute(query)

        parents = [
            ParentSummary(
                id=user.id,
                fullname=user.full_name,
                email=user.email,
                last_access=ensure_utc(user.last_access_at),
                child_count=count or 0,
            )
            for user, count in result.all()
        ]
        return parents, total

    async def list_children(self, parent_id: int) -> list[ChildSummary]:
        """List the active children of a parent.

        Args:
            parent_id: Parent user ID.

        Returns:
            Children with their relation ids, empty for unknown parents.
        """
        query = (
            select(User, ParentChildRelation.id)
            .join(ParentChildRelation, ParentChildRelation.child_id == User.id)
            .where(
                ParentChildRelation.parent_id == parent_id,
                User.deleted_at.is_(None),
            )
            .order_by(User.last_name, User.first_name, User.id)
        )
        result = await self.db.execute(query)

        return [
            ChildSummary(
                id=user.id,
                relation_id=relation_id,
                fullname=user.full_name,
                email=user.email,
            )
            for user, relation_id in result.all()
        ]

    async def list_unassigned_candidates(
        self,
        exclude_parent_id: int | None = None,
    ) -> list[UserSummary]:
        """List users that can still be assigned as a child.

        A user is a candidate when active, not a parent and not the child
        of any parent.

        Args:
            exclude_parent_id: Additional user to leave out.
        """
        conditions = [
            User.deleted_at.is_(None),
            User.id.not_in(select(ParentChildRelation.child_id)),
            User.id.not_in(select(ParentMarker.user_id)),
        ]
        if exclude_parent_id is not None:
            conditions.append(User.id != exclude_parent_id)

        return await self._list_users(conditions)

    async def list_parent_candidates(self) -> list[UserSummary]:
        """List active users that can be marked as parents."""
        conditions = [
            User.deleted_at.is_(None),
            User.id.not_in(select(ParentMarker.user_id)),
        ]
        if self.excluded_candidate_ids:
            conditions.append(User.id.not_in(self.excluded_candidate_ids))

        return await self._list_users(conditions)

    # =========================================================================
    # Relations
    # =========================================================================

    async def assign_children(self, parent_id: int, child_ids: Iterable[int]) -> BatchResult:
        """Assign children to a parent.

        Existing pairs are skipped. Every new pair is committed on its own
        and followed by a role grant.

        Args:
            parent_id: Parent user ID.
            child_ids: Child user IDs; duplicates are ignored.

        Returns:
            BatchResult with one item per distinct child id.
        """
        result = BatchResult()

        for child_id in dict.fromkeys(child_ids):
            try:
                if await self._relation_exists(parent_id, child_id):
                    result.add(child_id, True, "assign", "already assigned")
                    continue
                self.db.add(ParentChildRelation(parent_id=parent_id, child_id=child_id))
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.warning(
                    "Failed to assign child %s to parent %s: %s", child_id, parent_id, e
                )
                result.add(child_id, False, "assign", str(e))
                continue

            synced = await self.role_sync.on_relationship_created(parent_id, child_id)
            result.add(child_id, True, "assign", "created", role_synced=synced)

        logger.info(
            "Assigned children to parent %s: requested=%s, failed=%s",
            parent_id,
            len(result.items),
            result.failed_ids,
        )
        return result

    async def remove_child(self, relation_id: int) -> bool:
        """Remove a parent-child relation.

        The parent's role grant is revoked before the row is deleted.
        Removing a relation that does not exist succeeds.

        Args:
            relation_id: Relation ID.

        Returns:
            False on a database error.
        """
        try:
            relation = await self.db.get(ParentChildRelation, relation_id)
            if relation is not None:
                await self.role_sync.on_relationship_removed(
                    relation.parent_id, relation.child_id
                )
            await self.db.execute(
                delete(ParentChildRelation).where(ParentChildRelation.id == relation_id)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning("Failed to remove relation %s: %s", relation_id, e)
            return False

        logger.info("Removed relation %s", relation_id)
        return True

    # =========================================================================
    # Parents
    # =========================================================================

    async def set_parent_status(self, user_id: int, is_parent: bool) -> bool:
        """Mark or unmark a user as parent.

        Args:
            user_id: User ID.
            is_parent: Desired status.

        Returns:
            True when the user ends up in the desired state. Marking an
            unknown or deleted user returns False.
        """
        try:
            marker = await self._get_marker(user_id)
            if is_parent:
                if marker is not None:
                    return True
                user = await self.db.get(User, user_id)
                if user is None or not user.is_active:
                    logger.warning("Cannot mark user %s as parent: user not found", user_id)
                    return False
                self.db.add(ParentMarker(user_id=user_id))
            else:
                if marker is None:
                    return True
                await self.db.delete(marker)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning("Failed to set parent status for user %s: %s", user_id, e)
            return False

        logger.info("Set parent status: user=%s, is_parent=%s", user_id, is_parent)
        return True

    async def remove_parent(self, parent_id: int) -> BatchResult:
        """Remove a parent together with all of their relations.

        Role grants are revoked for every child first, then the relations
        are deleted and finally the parent marker is cleared. Every step is
        attempted even if an earlier one failed. Revocation failures are
        recorded on their items but do not fail the batch.

        Args:
            parent_id: Parent user ID.

        Returns:
            BatchResult of the individual steps.
        """
        result = BatchResult()

        try:
            child_ids = await self._get_child_ids(parent_id)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning("Failed to load relations of parent %s: %s", parent_id, e)
            result.add(parent_id, False, "load_relations", str(e))
            child_ids = []

        for child_id in child_ids:
            synced = await self.role_sync.on_relationship_removed(parent_id, child_id)
            result.add(child_id, True, "revoke_role", role_synced=synced)

        try:
            await self.db.execute(
                delete(ParentChildRelation).where(ParentChildRelation.parent_id == parent_id)
            )
            await self.db.commit()
            result.add(parent_id, True, "delete_relations", f"{len(child_ids)} relations")
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning("Failed to delete relations of parent %s: %s", parent_id, e)
            result.add(parent_id, False, "delete_relations", str(e))

        cleared = await self.set_parent_status(parent_id, False)
        result.add(parent_id, cleared, "clear_marker")

        logger.info("Removed parent %s: success=%s", parent_id, result.success)
        return result

    async def mark_as_parents(self, user_ids: Iterable[int]) -> BatchResult:
        """Mark users as parents.

        Args:
            user_ids: User IDs; duplicates are ignored.

        Returns:
            BatchResult with one item per distinct user id.
        """
        result = BatchResult()
        for user_id in dict.fromkeys(user_ids):
            ok = await self.set_parent_status(user_id, True)
            result.add(user_id, ok, "mark_parent")

        logger.info(
            "Marked users as parents: requested=%s, failed=%s",
            len(result.items),
            result.failed_ids,
        )
        return result

    # =========================================================================
    # Private helpers
    # =========================================================================

    async def _list_users(self, conditions: list) -> list[UserSummary]:
        query = select(User).where(*conditions).order_by(User.last_name, User.first_name, User.id)
        result = await self.db.execute(query)
        return [self._to_user_summary(user) for user in result.scalars().all()]

    async def _relation_exists(self, parent_id: int, child_id: int) -> bool:
        query = select(ParentChildRelation.id).where(
            ParentChildRelation.parent_id == parent_id,
            ParentChildRelation.child_id == child_id,
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none() is not None

    async def _get_child_ids(self, parent_id: int) -> list[int]:
        query = select(ParentChildRelation.child_id).where(ParentChildRelation.parent_id == parent_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _get_marker(self, user_id: int) -> ParentMarker | None:
        query = select(ParentMarker).where(ParentMarker.user_id == user_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    def _to_user_summary(self, user: User) -> UserSummary:
        return UserSummary(id=user.id, fullname=user.full_name, email=user.email)
