# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for the Parent Manager service.

Domains:
    auth: Access token validation.
    parent_manager: Parent markers, parent-child relations and role sync.
"""
