# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Role assignments owned by the host access-control layer.

A row grants ``role_id`` to ``user_id`` inside one context. The ``component``
column records which subsystem created the grant ("" for manual grants), so
each subsystem only removes what it created.
"""

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, CreatedAtMixin

CONTEXT_LEVEL_USER = "user"


class RoleAssignment(Base, CreatedAtMixin):
    """A role granted to a user in a context.

    Attributes:
        id: Assignment identifier.
        role_id: Host role identifier.
        user_id: User receiving the role.
        context_level: Kind of context ("user", "system", ...).
        context_instance_id: Identifier of the context instance.
        component: Subsystem that created the assignment.
    """

    __tablename__ = "role_assignments"
    __table_args__ = (
        UniqueConstraint(
            "role_id",
            "user_id",
            "context_level",
            "context_instance_id",
            "component",
            name="uq_role_assignment",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    role_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    context_level: Mapped[str] = mapped_column(String(20), nullable=False)
    context_instance_id: Mapped[int] = mapped_column(Integer, nullable=False)
    component: Mapped[str] = mapped_column(String(100), nullable=False, default="")
