# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Parent manager domain.

Parents are users carrying a parent marker. A parent is linked to any
number of child users; each link can grant the parent a role in the
child's personal context.
"""

from src.domains.parent_manager.role_sync import (
    RoleGrantGateway,
    RoleScope,
    RoleSyncConfig,
    RoleSynchronizer,
    SqlRoleGrantGateway,
)
from src.domains.parent_manager.service import (
    BatchResult,
    ItemResult,
    ParentManagerService,
)

__all__ = [
    "ParentManagerService",
    "BatchResult",
    "ItemResult",
    "RoleSynchronizer",
    "RoleSyncConfig",
    "RoleScope",
    "RoleGrantGateway",
    "SqlRoleGrantGateway",
]
