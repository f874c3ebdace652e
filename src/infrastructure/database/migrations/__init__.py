# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database migrations package.

Migrations are plain alembic revision modules under ``versions`` and are
applied programmatically by ``runner.run_migrations``.
"""
