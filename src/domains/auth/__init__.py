# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain.

Users authenticate against the host platform, which issues JWT access
tokens. This package validates those tokens.

Exports:
    JWTManager: JWT token creation and validation.
"""

from src.domains.auth.jwt import (
    InvalidTokenError,
    JWTError,
    JWTManager,
    TokenExpiredError,
    TokenPayload,
)

__all__ = [
    "JWTManager",
    "TokenPayload",
    "JWTError",
    "TokenExpiredError",
    "InvalidTokenError",
]
