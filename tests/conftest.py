# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- An in-memory SQLite database with the full schema
- A session bound to it
- A factory for host user rows
"""

from collections.abc import AsyncGenerator, Awaitable, Callable, Iterator
from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.core.config import clear_settings_cache
from src.infrastructure.database.models import Base, User
from src.utils.datetime import utc_now

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

UserFactory = Callable[..., Awaitable[User]]


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def fresh_settings() -> Iterator[None]:
    """Reload settings for every test so environment patches apply."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory database with all tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the application's."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Database session for one test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db: AsyncSession) -> UserFactory:
    """Factory creating committed host users."""

    async def _make_user(
        first_name: str,
        last_name: str,
        email: str | None = None,
        deleted: bool = False,
        last_access_at: datetime | None = None,
        user_id: int | None = None,
    ) -> User:
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email or f"{first_name.lower()}.{last_name.lower()}@example.com",
            last_access_at=last_access_at,
            deleted_at=utc_now() if deleted else None,
        )
        if user_id is not None:
            user.id = user_id
        db.add(user)
        await db.commit()
        return user

    return _make_user


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
