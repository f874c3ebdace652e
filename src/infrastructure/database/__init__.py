# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure.

This package provides the SQLAlchemy async engine and sessions, the ORM
models, and the programmatic migration runner.

Example:
    from src.infrastructure.database import get_session

    async with get_session() as session:
        result = await session.execute(select(ParentMarker))
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    get_session,
    get_sessionmaker,
    init_database,
)

__all__ = [
    "DatabaseError",
    "check_database_connection",
    "close_database",
    "get_session",
    "get_sessionmaker",
    "init_database",
]
