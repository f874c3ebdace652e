# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models.

Host-owned tables (users, role_assignments) are mapped so the service can
query and join them; parent_markers and parent_child_relations belong to
this service.
"""

from src.infrastructure.database.models.base import Base, CreatedAtMixin, TimestampMixin
from src.infrastructure.database.models.parent_manager import ParentChildRelation, ParentMarker
from src.infrastructure.database.models.role import CONTEXT_LEVEL_USER, RoleAssignment
from src.infrastructure.database.models.user import User

__all__ = [
    "Base",
    "CreatedAtMixin",
    "TimestampMixin",
    "User",
    "RoleAssignment",
    "CONTEXT_LEVEL_USER",
    "ParentMarker",
    "ParentChildRelation",
]
