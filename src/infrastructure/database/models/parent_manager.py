# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Parent marker and parent-child relationship tables."""

from sqlalchemy import ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, CreatedAtMixin, TimestampMixin


class ParentMarker(Base, TimestampMixin):
    """Marks a user as eligible to act as a parent.

    A user is a parent iff a row exists for them.
    """

    __tablename__ = "parent_markers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )


class ParentChildRelation(Base, CreatedAtMixin):
    """Associates a child account with a parent account.

    A child may have several parents; each (parent, child) pair exists once.
    """

    __tablename__ = "parent_child_relations"
    __table_args__ = (
        UniqueConstraint("parent_id", "child_id", name="uq_parent_child_relation"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    parent_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    child_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
