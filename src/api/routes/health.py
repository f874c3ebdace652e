# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

This module provides health and readiness endpoints for the API.
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel, Field

from src.core.config import get_settings
from src.infrastructure.database.connection import check_database_connection

logger = logging.getLogger(__name__)

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")


class ReadinessResponse(BaseModel):
    """Readiness check response model."""
    ready: bool = Field(description="Whether the service is ready")
    checks: dict[str, str] = Field(description="Individual check results")


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check if the API process is up."""
    settings = get_settings()

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version="1.0.0",
        environment=settings.environment,
        uptime_seconds=int(time.time() - _server_start_time),
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    """Check if the API is ready to accept traffic.

    Returns:
        ReadinessResponse with individual check results.
    """
    database_ok = await check_database_connection()
    if not database_ok:
        logger.error("Database readiness check failed")

    return ReadinessResponse(
        ready=database_ok,
        checks={"database": "healthy" if database_ok else "unhealthy"},
    )
