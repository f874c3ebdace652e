# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""JWT token management utilities.

Access tokens are issued by the host platform and validated here with
python-jose. create_access_token mints tokens with the same shape, which is
what local tooling and the test suite use.

Example:
    >>> from src.core.config import get_settings
    >>> jwt_manager = JWTManager(get_settings().jwt)
    >>> token = jwt_manager.create_access_token(user_id=2, permissions=["parentmanager.manage"])
    >>> claims = jwt_manager.decode_token(token)
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Literal

from jose import ExpiredSignatureError, jwt
from pydantic import BaseModel

from src.core.config.settings import JWTSettings

logger = logging.getLogger(__name__)


class TokenPayload(BaseModel):
    """JWT token payload structure.

    Attributes:
        sub: Subject (host user ID).
        type: Token type.
        roles: List of role codes.
        permissions: List of permission codes.
        exp: Expiration timestamp.
        iat: Issued at timestamp.
        jti: JWT ID for token tracking.
    """

    sub: str
    type: Literal["access"]
    roles: list[str] = []
    permissions: list[str] = []
    exp: int
    iat: int
    jti: str


class JWTError(Exception):
    """Base exception for JWT operations."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid."""

    pass


class JWTManager:
    """JWT token creation and validation manager.

    Attributes:
        _settings: JWT configuration settings.
    """

    def __init__(self, settings: JWTSettings) -> None:
        """Initialize the JWT manager.

        Args:
            settings: JWT configuration settings.
        """
        self._settings = settings

    def create_access_token(
        self,
        user_id: int | str,
        roles: list[str] | None = None,
        permissions: list[str] | None = None,
    ) -> str:
        """Create an access token.

        Args:
            user_id: Host user identifier.
            roles: List of role codes.
            permissions: List of permission codes.

        Returns:
            JWT access token string.
        """
        now = datetime.now(timezone.utc)
        exp = now + timedelta(minutes=self._settings.access_token_expire_minutes)

        payload = {
            "sub": str(user_id),
            "type": "access",
            "roles": roles or [],
            "permissions": permissions or [],
            "exp": int(exp.timestamp()),
            "iat": int(now.timestamp()),
            "jti": secrets.token_urlsafe(16),
        }

        return jwt.encode(
            payload,
            self._settings.secret_key.get_secret_value(),
            algorithm=self._settings.algorithm,
        )

    def decode_token(self, token: str) -> TokenPayload:
        """Decode and validate an access token.

        Args:
            token: JWT token string.

        Returns:
            TokenPayload with decoded claims.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid or not an access token.
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key.get_secret_value(),
                algorithms=[self._settings.algorithm],
            )

            if payload.get("type") != "access":
                raise InvalidTokenError(f"Expected access token, got {payload.get('type')}")

            return TokenPayload(
                sub=str(payload["sub"]),
                type=payload["type"],
                roles=payload.get("roles", []),
                permissions=payload.get("permissions", []),
                exp=payload["exp"],
                iat=payload["iat"],
                jti=payload["jti"],
            )

        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except InvalidTokenError:
            raise
        except Exception as e:
            logger.warning("Token decode failed: %s", str(e))
            raise InvalidTokenError(f"Invalid token: {str(e)}")
