# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.

Modules:
    parent_manager: Parent marking and parent-child relation endpoints.
"""

from fastapi import APIRouter

from src.api.v1 import parent_manager

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(parent_manager.router, prefix="/parent-manager", tags=["Parent Manager"])

__all__ = ["router"]
