"""
Centralized configuration management for the scoped token core.

This module provides a unified configuration system with support for:
- Environment variables
- Per-scope token policy (default TTL and TTL ceiling)
- Storage retry/timeout bounds
- Validation using Pydantic
"""

import os
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .constants import EnvironmentVariable, Limits, LogLevel, Timeouts, TokenScope


def _env_int(name: EnvironmentVariable, default: int) -> int:
    return int(os.getenv(name.value, str(default)))


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: Optional[str] = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.DATABASE_URL.value) or None,
        description="SQLAlchemy database URL; DB_* variables are used when unset",
    )
    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum overflow connections")
    pool_timeout: int = Field(default=Timeouts.POOL_CHECKOUT, description="Pool timeout in seconds")
    statement_timeout: int = Field(
        default_factory=lambda: _env_int(
            EnvironmentVariable.STORAGE_TIMEOUT_SECONDS, Timeouts.STORAGE_CALL
        ),
        gt=0,
        description="Upper bound for a single storage call in seconds",
    )
    echo: bool = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.DB_ECHO.value, "false").lower()
        == "true",
        description="Echo SQL statements",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.LOG_LEVEL.value, LogLevel.INFO.value),
        description="Logging level",
    )

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class ScopePolicy(BaseModel):
    """TTL policy for a single token scope."""

    default_ttl_seconds: int = Field(gt=0, description="TTL used when the caller gives none")
    max_ttl_seconds: int = Field(gt=0, description="Largest TTL an owner may request")

    @model_validator(mode="after")
    def check_default_within_ceiling(self) -> "ScopePolicy":
        if self.default_ttl_seconds > self.max_ttl_seconds:
            raise ValueError("default_ttl_seconds must not exceed max_ttl_seconds")
        return self


def _default_scope_policies() -> Dict[TokenScope, ScopePolicy]:
    return {
        TokenScope.READ_HEALTH_RECORD: ScopePolicy(
            default_ttl_seconds=Timeouts.ONE_DAY,
            max_ttl_seconds=_env_int(
                EnvironmentVariable.HEALTH_RECORD_MAX_TTL_SECONDS, Timeouts.ONE_YEAR
            ),
        ),
        TokenScope.BOOKING_WITH_DOCTOR: ScopePolicy(
            default_ttl_seconds=Timeouts.ONE_WEEK,
            max_ttl_seconds=_env_int(
                EnvironmentVariable.BOOKING_MAX_TTL_SECONDS, Timeouts.NEVER_EXPIRES
            ),
        ),
    }


class TokenPolicyConfig(BaseModel):
    """Issuance policy: per-scope TTL ceilings and identifier retry bound."""

    scopes: Dict[TokenScope, ScopePolicy] = Field(default_factory=_default_scope_policies)
    max_issue_attempts: int = Field(
        default=Limits.MAX_ISSUE_ATTEMPTS, ge=1, description="Identifier collision retries"
    )

    def for_scope(self, scope: TokenScope) -> ScopePolicy:
        """Get the policy for a scope, falling back to the built-in default."""
        policy = self.scopes.get(scope)
        if policy is None:
            policy = _default_scope_policies()[scope]
        return policy


class RetryConfig(BaseModel):
    """Retry behaviour for transient storage failures."""

    max_attempts: int = Field(
        default_factory=lambda: _env_int(
            EnvironmentVariable.RETRY_MAX_ATTEMPTS, Limits.MAX_RETRY_ATTEMPTS
        ),
        ge=1,
        description="Total attempts including the first one",
    )
    base_delay: float = Field(default=0.05, gt=0, description="Base backoff delay in seconds")
    max_delay: float = Field(default=1.0, gt=0, description="Maximum backoff delay in seconds")
    multiplier: float = Field(default=2.0, ge=1.0, description="Exponential multiplier")
    jitter: bool = Field(default=True, description="Randomize delays by +/-25%")


class GatewayConfig(BaseModel):
    """Bounded-view settings for the resource gateway."""

    record_limit: int = Field(
        default_factory=lambda: _env_int(
            EnvironmentVariable.GATEWAY_RECORD_LIMIT, Limits.RECORD_VIEW_LIMIT
        ),
        ge=1,
        le=Limits.RECORD_VIEW_LIMIT,
        description="Rows returned per record list in a view",
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    token_policy: TokenPolicyConfig = Field(
        default_factory=TokenPolicyConfig, description="Token issuance policy"
    )
    retry: RetryConfig = Field(default_factory=RetryConfig, description="Storage retry policy")
    gateway: GatewayConfig = Field(default_factory=GatewayConfig, description="Gateway settings")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
