# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the Parent
Manager service. Settings are loaded from environment variables with
sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.parent_manager.parent_role_id
    0
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database configuration.

    The database holds the host platform's users and role assignments
    alongside the parent marker and relationship tables.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        url_override: Full connection URL, used instead of the components when set.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        auto_migrate: Apply pending migrations at application startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
    )

    user: str = "parentmanager"
    password: SecretStr = SecretStr("parentmanager_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "parentmanager"
    url_override: str | None = Field(
        default=None,
        validation_alias="DB_URL",
    )
    pool_size: int = 10
    max_overflow: int = 20
    auto_migrate: bool = False

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        if self.url_override:
            return self.url_override
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class JWTSettings(BaseSettings):
    """JWT authentication configuration.

    Tokens are issued by the host platform; this service only validates them.

    Attributes:
        secret_key: Secret key shared with the token issuer.
        algorithm: JWT signing algorithm.
        access_token_expire_minutes: Access token lifetime for locally minted tokens.
    """

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        extra="ignore",
    )

    secret_key: SecretStr = SecretStr("change-this-in-production")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(
        default=30,
        validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )


class CORSSettings(BaseSettings):
    """CORS configuration for API.

    Attributes:
        origins: Comma-separated list of allowed origins.
        allow_credentials: Whether to allow credentials.
        allow_methods: Allowed HTTP methods.
        allow_headers: Allowed HTTP headers.
    """

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        extra="ignore",
    )

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True
    allow_methods: list[str] = ["*"]
    allow_headers: list[str] = ["*"]

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into a list."""
        return [origin.strip() for origin in self.origins.split(",") if origin.strip()]


class ParentManagerSettings(BaseSettings):
    """Parent manager behaviour.

    Attributes:
        auto_role_assign: Grant the parent role automatically when a child is assigned.
        parent_role_id: Role granted to a parent in each child's user scope (0 disables).
        manage_permission: Capability required by every endpoint.
        role_component: Component tag written on role grants created by this service.
        profile_url_template: Host profile page URL, formatted with ``user_id``.
        default_per_page: Default page size for the parent listing.
        reserved_user_ids: Comma-separated ids never offered as parent candidates.
    """

    model_config = SettingsConfigDict(
        env_prefix="PARENT_MANAGER_",
        extra="ignore",
    )

    auto_role_assign: bool = True
    parent_role_id: int = Field(default=0, ge=0)
    manage_permission: str = "parentmanager.manage"
    role_component: str = "parent_manager"
    profile_url_template: str = "http://localhost:3000/user/profile?id={user_id}"
    default_per_page: int = Field(default=30, ge=1, le=100)
    reserved_user_ids: str = "1,2"

    @property
    def reserved_user_id_list(self) -> list[int]:
        """Parse reserved user ids into a list of integers."""
        return [int(x.strip()) for x in self.reserved_user_ids.split(",") if x.strip()]

    def profile_url(self, user_id: int) -> str:
        """Render the host profile URL for a user."""
        return self.profile_url_template.format(user_id=user_id)


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        database: Database settings.
        jwt: JWT authentication settings.
        cors: CORS settings.
        parent_manager: Parent manager behaviour settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    parent_manager: ParentManagerSettings = Field(default_factory=ParentManagerSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            default_jwt_secret = "change-this-in-production"
            if self.jwt.secret_key.get_secret_value() == default_jwt_secret:
                raise ValueError(
                    "JWT secret key must be changed from default in production. "
                    "Set JWT_SECRET_KEY environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
