# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial parent manager schema.

Creates the parent marker and relationship tables, plus minimal versions of
the host-owned users and role_assignments tables for standalone deployments.
Host-owned tables are only created when missing.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-01-12
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _has_table(name: str) -> bool:
    return sa.inspect(op.get_bind()).has_table(name)


def upgrade() -> None:
    """Create parent manager tables."""

    # =========================================================================
    # HOST TABLES
    # =========================================================================

    if not _has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
            sa.Column("email", sa.String(255), nullable=False),
            sa.Column("first_name", sa.String(100), nullable=False, server_default=""),
            sa.Column("last_name", sa.String(100), nullable=False, server_default=""),
            sa.Column("last_access_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
            sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index("ix_users_email", "users", ["email"])

    if not _has_table("role_assignments"):
        op.create_table(
            "role_assignments",
            sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
            sa.Column("role_id", sa.Integer, nullable=False),
            sa.Column(
                "user_id",
                sa.Integer,
                sa.ForeignKey("users.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("context_level", sa.String(20), nullable=False),
            sa.Column("context_instance_id", sa.Integer, nullable=False),
            sa.Column("component", sa.String(100), nullable=False, server_default=""),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
            sa.UniqueConstraint(
                "role_id",
                "user_id",
                "context_level",
                "context_instance_id",
                "component",
                name="uq_role_assignment",
            ),
        )
        op.create_index("ix_role_assignments_role_id", "role_assignments", ["role_id"])
        op.create_index("ix_role_assignments_user_id", "role_assignments", ["user_id"])

    # =========================================================================
    # PARENT MANAGER TABLES
    # =========================================================================

    op.create_table(
        "parent_markers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("user_id", name="uq_parent_markers_user_id"),
    )

    op.create_table(
        "parent_child_relations",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "parent_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "child_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("parent_id", "child_id", name="uq_parent_child_relation"),
    )
    op.create_index(
        "ix_parent_child_relations_parent_id", "parent_child_relations", ["parent_id"]
    )
    op.create_index(
        "ix_parent_child_relations_child_id", "parent_child_relations", ["child_id"]
    )


def downgrade() -> None:
    """Drop parent manager tables. Host tables are left in place."""

    op.drop_index("ix_parent_child_relations_child_id", table_name="parent_child_relations")
    op.drop_index("ix_parent_child_relations_parent_id", table_name="parent_child_relations")
    op.drop_table("parent_child_relations")
    op.drop_table("parent_markers")
