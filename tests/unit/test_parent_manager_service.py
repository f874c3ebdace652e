# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for ParentManagerService against an in-memory database."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from src.domains.parent_manager.role_sync import (
    RoleSyncConfig,
    RoleSynchronizer,
    SqlRoleGrantGateway,
)
from src.domains.parent_manager.service import ParentManagerService
from src.infrastructure.database.models import (
    CONTEXT_LEVEL_USER,
    ParentChildRelation,
    ParentMarker,
    RoleAssignment,
)
from src.utils.datetime import utc_now

PARENT_ROLE = 7


@pytest.fixture
def service(db) -> ParentManagerService:
    """Service with role synchronization enabled."""
    role_sync = RoleSynchronizer(
        SqlRoleGrantGateway(db),
        RoleSyncConfig(auto_assign_enabled=True, parent_role_id=PARENT_ROLE),
    )
    return ParentManagerService(db=db, role_sync=role_sync, excluded_candidate_ids=(1, 2))


async def _relations(db) -> set[tuple[int, int]]:
    result = await db.execute(select(ParentChildRelation.parent_id, ParentChildRelation.child_id))
    return {tuple(row) for row in result.all()}


async def _grants(db) -> set[tuple[int, int, str]]:
    result = await db.execute(
        select(
            RoleAssignment.user_id,
            RoleAssignment.context_instance_id,
            RoleAssignment.component,
        ).where(RoleAssignment.context_level == CONTEXT_LEVEL_USER)
    )
    return {tuple(row) for row in result.all()}


async def _marked(db) -> set[int]:
    result = await db.execute(select(ParentMarker.user_id))
    return set(result.scalars().all())


class TestAssignChildren:
    """Tests for assign_children."""

    @pytest.mark.asyncio
    async def test_assign_creates_relations_and_grants(self, db, make_user, service) -> None:
        parent = await make_user("Pat", "Parent")
        child_a = await make_user("Ann", "Alpha")
        child_b = await make_user("Ben", "Beta")

        result = await service.assign_children(parent.id, [child_a.id, child_b.id])

        assert result.success is True
        assert [item.item_id for item in result.items] == [child_a.id, child_b.id]
        assert all(item.role_synced for item in result.items)
        assert await _relations(db) == {(parent.id, child_a.id), (parent.id, child_b.id)}
        assert await _grants(db) == {
            (parent.id, child_a.id, "parent_manager"),
            (parent.id, child_b.id, "parent_manager"),
        }

    @pytest.mark.asyncio
    async def test_assign_is_idempotent(self, db, make_user, service) -> None:
        parent = await make_user("Pat", "Parent")
        child = await make_user("Ann", "Alpha")

        await service.assign_children(parent.id, [child.id])
        result = await service.assign_children(parent.id, [child.id])

        assert result.success is True
        assert result.items[0].detail == "already assigned"
        assert result.items[0].role_synced is None
        assert await _relations(db) == {(parent.id, child.id)}

    @pytest.mark.asyncio
    async def test_assign_merges_with_existing_children(self, make_user, service) -> None:
        parent = await make_user("Pat", "Parent")
        a = await make_user("Ann", "Alpha")
        b = await make_user("Ben", "Beta")
        c = await make_user("Cid", "Gamma")

        await service.assign_children(parent.id, [a.id, b.id])
        result = await service.assign_children(parent.id, [b.id, c.id])

        assert result.success is True
        children = await service.list_children(parent.id)
        assert [child.id for child in children] == [a.id, b.id, c.id]

    @pytest.mark.asyncio
    async def test_duplicate_ids_are_processed_once(self, db, make_user, service) -> None:
        parent = await make_user("Pat", "Parent")
        child = await make_user("Ann", "Alpha")

        result = await service.assign_children(parent.id, [child.id, child.id])

        assert len(result.items) == 1
        assert await _relations(db) == {(parent.id, child.id)}

    @pytest.mark.asyncio
    async def test_child_may_have_several_parents(self, db, make_user, service) -> None:
        mother = await make_user("Mia", "Mother")
        father = await make_user("Finn", "Father")
        child = await make_user("Ann", "Alpha")

        await service.assign_children(mother.id, [child.id])
        await service.assign_children(father.id, [child.id])

        assert await _relations(db) == {(mother.id, child.id), (father.id, child.id)}

    @pytest.mark.asyncio
    async def test_existing_manual_grant_is_not_duplicated(self, db, make_user, service) -> None:
        parent = await make_user("Pat", "Parent")
        child = await make_user("Ann", "Alpha")
        db.add(
            RoleAssignment(
                role_id=PARENT_ROLE,
                user_id=parent.id,
                context_level=CONTEXT_LEVEL_USER,
                context_instance_id=child.id,
                component="",
            )
        )
        await db.commit()

        await service.assign_children(parent.id, [child.id])

        assert await _grants(db) == {(parent.id, child.id, "")}

    @pytest.mark.asyncio
    async def test_disabled_role_sync_creates_no_grants(self, db, make_user) -> None:
        parent = await make_user("Pat", "Parent")
        child = await make_user("Ann", "Alpha")
        role_sync = RoleSynchronizer(
            SqlRoleGrantGateway(db),
            RoleSyncConfig(auto_assign_enabled=False, parent_role_id=PARENT_ROLE),
        )
        service = ParentManagerService(db=db, role_sync=role_sync)

        result = await service.assign_children(parent.id, [child.id])

        assert result.success is True
        assert await _relations(db) == {(parent.id, child.id)}
        assert await _grants(db) == set()


class TestRemoveChild:
    """Tests for remove_child."""

    @pytest.mark.asyncio
    async def test_remove_deletes_relation_and_grant(self, db, make_user, service) -> None:
        parent = await make_user("Pat", "Parent")
        child = await make_user("Ann", "Alpha")
        await service.assign_children(parent.id, [child.id])
        [summary] = await service.list_children(parent.id)

        ok = await service.remove_child(summary.relation_id)

        assert ok is True
        assert await _relations(db) == set()
        assert await _grants(db) == set()

    @pytest.mark.asyncio
    async def test_remove_unknown_relation_succeeds(self, service) -> None:
        assert await service.remove_child(12345) is True


class TestParentStatus:
    """Tests for set_parent_status and mark_as_parents."""

    @pytest.mark.asyncio
    async def test_mark_is_idempotent(self, db, make_user, service) -> None:
        user = await make_user("Pat", "Parent")

        assert await service.set_parent_status(user.id, True) is True
        assert await service.set_parent_status(user.id, True) is True

        assert await _marked(db) == {user.id}

    @pytest.mark.asyncio
    async def test_unmark_missing_marker_succeeds(self, db, make_user, service) -> None:
        user = await make_user("Pat", "Parent")

        assert await service.set_parent_status(user.id, False) is True
        assert await _marked(db) == set()

    @pytest.mark.asyncio
    async def test_unmark_removes_marker(self, db, make_user, service) -> None:
        user = await make_user("Pat", "Parent")
        await service.set_parent_status(user.id, True)

        assert await service.set_parent_status(user.id, False) is True
        assert await _marked(db) == set()

    @pytest.mark.asyncio
    async def test_mark_unknown_user_fails(self, db, service) -> None:
        assert await service.set_parent_status(999, True) is False
        assert await _marked(db) == set()

    @pytest.mark.asyncio
    async def test_mark_deleted_user_fails(self, make_user, service) -> None:
        user = await make_user("Del", "Eted", deleted=True)

        assert await service.set_parent_status(user.id, True) is False

    @pytest.mark.asyncio
    async def test_mark_as_parents_attempts_every_user(self, db, make_user, service) -> None:
        first = await make_user("Pat", "Parent")
        second = await make_user("Mia", "Mother")

        result = await service.mark_as_parents([first.id, 999, second.id])

        assert result.success is False
        assert result.failed_ids == [999]
        assert await _marked(db) == {first.id, second.id}


class TestRemoveParent:
    """Tests for remove_parent."""

    @pytest.mark.asyncio
    async def test_remove_parent_cascades(self, db, make_user, service) -> None:
        parent = await make_user("Pat", "Parent")
        other = await make_user("Mia", "Mother")
        a = await make_user("Ann", "Alpha")
        b = await make_user("Ben", "Beta")
        await service.mark_as_parents([parent.id, other.id])
        await service.assign_children(parent.id, [a.id, b.id])
        await service.assign_children(other.id, [a.id])

        result = await service.remove_parent(parent.id)

        assert result.success is True
        assert await _relations(db) == {(other.id, a.id)}
        assert await _grants(db) == {(other.id, a.id, "parent_manager")}
        assert await _marked(db) == {other.id}
        parents, _ = await service.list_parents()
        assert parent.id not in [p.id for p in parents]
        assert await service.list_children(parent.id) == []

    @pytest.mark.asyncio
    async def test_remove_parent_without_children(self, db, make_user, service) -> None:
        parent = await make_user("Pat", "Parent")
        await service.set_parent_status(parent.id, True)

        result = await service.remove_parent(parent.id)

        assert result.success is True
        assert await _marked(db) == set()


class TestCandidates:
    """Tests for the candidate listings."""

    @pytest.mark.asyncio
    async def test_unassigned_excludes_parents_children_and_deleted(self, make_user, service) -> None:
        parent = await make_user("Pat", "Parent")
        child = await make_user("Ann", "Alpha")
        free = await make_user("Fay", "Free")
        await make_user("Del", "Eted", deleted=True)
        await service.set_parent_status(parent.id, True)
        await service.assign_children(parent.id, [child.id])

        users = await service.list_unassigned_candidates()

        assert [user.id for user in users] == [free.id]

    @pytest.mark.asyncio
    async def test_child_of_another_parent_is_not_offered(self, make_user, service) -> None:
        mother = await make_user("Mia", "Mother")
        father = await make_user("Finn", "Father")
        child = await make_user("Ann", "Alpha")
        await service.mark_as_parents([mother.id, father.id])
        await service.assign_children(mother.id, [child.id])

        users = await service.list_unassigned_candidates(exclude_parent_id=father.id)

        assert child.id not in [user.id for user in users]

    @pytest.mark.asyncio
    async def test_unassigned_excludes_given_parent(self, make_user, service) -> None:
        unmarked = await make_user("Una", "Marked")
        other = await make_user("Oli", "Other")

        users = await service.list_unassigned_candidates(exclude_parent_id=unmarked.id)

        assert [user.id for user in users] == [other.id]

    @pytest.mark.asyncio
    async def test_parent_candidates_skip_reserved_and_parents(self, make_user, service) -> None:
        await make_user("Guest", "User", user_id=1)
        await make_user("Admin", "User", user_id=2)
        parent = await make_user("Pat", "Parent")
        zoe = await make_user("Zoe", "Zulu")
        amy = await make_user("Amy", "Able")
        await make_user("Del", "Eted", deleted=True)
        await service.set_parent_status(parent.id, True)

        users = await service.list_parent_candidates()

        assert [user.id for user in users] == [amy.id, zoe.id]
        assert users[0].fullname == "Amy Able"


class TestListing:
    """Tests for list_parents and list_children."""

    async def _seed(self, make_user, service) -> dict[str, int]:
        now = datetime(2025, 1, 10, tzinfo=timezone.utc)
        ids = {}
        for i, (first, last, email) in enumerate(
            [
                ("Carl", "Brown", "carl@example.com"),
                ("Alice", "Smith", "alice@family.org"),
                ("Bob", "Adams", "bob@example.com"),
            ]
        ):
            user = await make_user(first, last, email, last_access_at=now - timedelta(days=i))
            ids[first] = user.id
        for i in range(3):
            child = await make_user(f"Kid{i}", "Child")
            ids[f"kid{i}"] = child.id

        await service.mark_as_parents([ids["Carl"], ids["Alice"], ids["Bob"]])
        await service.assign_children(ids["Alice"], [ids["kid0"], ids["kid1"], ids["kid2"]])
        await service.assign_children(ids["Carl"], [ids["kid0"]])
        return ids

    @pytest.mark.asyncio
    async def test_default_sort_is_last_name(self, make_user, service) -> None:
        ids = await self._seed(make_user, service)

        parents, total = await service.list_parents()

        assert total == 3
        assert [p.id for p in parents] == [ids["Bob"], ids["Carl"], ids["Alice"]]
        assert {p.id: p.child_count for p in parents} == {
            ids["Bob"]: 0,
            ids["Carl"]: 1,
            ids["Alice"]: 3,
        }

    @pytest.mark.asyncio
    async def test_sort_by_child_count_desc(self, make_user, service) -> None:
        ids = await self._seed(make_user, service)

        parents, _ = await service.list_parents(sort="childcount", direction="desc")

        assert [p.id for p in parents] == [ids["Alice"], ids["Carl"], ids["Bob"]]

    @pytest.mark.asyncio
    async def test_sort_by_last_access(self, make_user, service) -> None:
        ids = await self._seed(make_user, service)

        parents, _ = await service.list_parents(sort="lastaccess")

        assert [p.id for p in parents] == [ids["Bob"], ids["Alice"], ids["Carl"]]
        assert parents[0].last_access.tzinfo is not None

    @pytest.mark.asyncio
    async def test_unknown_sort_falls_back_to_last_name(self, make_user, service) -> None:
        ids = await self._seed(make_user, service)

        parents, _ = await service.list_parents(sort="password; DROP TABLE users", direction="sideways")

        assert [p.id for p in parents] == [ids["Bob"], ids["Carl"], ids["Alice"]]

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive(self, make_user, service) -> None:
        ids = await self._seed(make_user, service)

        by_name, total = await service.list_parents(search="SMI")
        by_email, _ = await service.list_parents(search="family.org")

        assert total == 1
        assert [p.id for p in by_name] == [ids["Alice"]]
        assert [p.id for p in by_email] == [ids["Alice"]]

    @pytest.mark.asyncio
    async def test_pagination_reports_total(self, make_user, service) -> None:
        ids = await self._seed(make_user, service)

        page0, total0 = await service.list_parents(page=0, per_page=2)
        page1, total1 = await service.list_parents(page=1, per_page=2)
        page5, _ = await service.list_parents(page=5, per_page=2)

        assert total0 == total1 == 3
        assert [p.id for p in page0] == [ids["Bob"], ids["Carl"]]
        assert [p.id for p in page1] == [ids["Alice"]]
        assert page5 == []

    @pytest.mark.asyncio
    async def test_deleted_parent_is_not_listed(self, db, make_user, service) -> None:
        active = await make_user("Pat", "Parent")
        gone = await make_user("Del", "Eted")
        await service.mark_as_parents([active.id, gone.id])
        gone.deleted_at = utc_now()
        await db.commit()

        parents, total = await service.list_parents()

        assert total == 1
        assert [p.id for p in parents] == [active.id]

    @pytest.mark.asyncio
    async def test_list_children_orders_by_name(self, make_user, service) -> None:
        parent = await make_user("Pat", "Parent")
        zed = await make_user("Zed", "Young")
        amy = await make_user("Amy", "Young")
        old = await make_user("Oscar", "Elder")

        await service.assign_children(parent.id, [zed.id, amy.id, old.id])
        children = await service.list_children(parent.id)

        assert [c.id for c in children] == [old.id, amy.id, zed.id]
        assert children[0].fullname == "Oscar Elder"
        assert children[0].email == "oscar.elder@example.com"

    @pytest.mark.asyncio
    async def test_list_children_of_unknown_parent_is_empty(self, service) -> None:
        assert await service.list_children(4242) == []
