"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with validation.
"""
from typing import List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


MESSAGE_REQUEST_POLICIES = ("enforce", "permissive")
LOG_FORMATS = ("text", "json")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    environment: str = Field(default="development", description="Environment: development, staging, production")
    debug: bool = Field(default=False, description="Debug mode")

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./sortmyai.db",
        description="Async SQLAlchemy connection URL (postgresql+asyncpg://... in production)"
    )
    database_url_sync: str = Field(
        default="sqlite:///./sortmyai.db",
        description="Sync connection URL for Alembic"
    )

    # Redis
    redis_url: str = Field(default="", description="Redis connection URL (empty disables caching)")
    redis_password: str = Field(default="", description="Redis password")

    # Identity tokens
    jwt_secret: str = Field(
        default="sortmyai-development-secret-change-me",
        min_length=32,
        description="JWT secret key (min 32 chars)"
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT algorithm")
    jwt_expiration_hours: int = Field(default=24, description="JWT expiration time in hours")

    # CORS
    allowed_origins: str = Field(
        default="http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    # Rate Limiting
    rate_limit_enabled: bool = Field(default=True, description="Enable the slowapi rate limiter")
    rate_limit_messages_per_minute: int = Field(default=30, description="Messages a client may send per minute")

    # WebSocket
    ws_heartbeat_interval: int = Field(default=30, description="WebSocket heartbeat interval in seconds")

    # Cache TTL (in seconds)
    cache_user_ttl: int = Field(default=600, description="User profile cache TTL in seconds")
    cache_notification_ttl: int = Field(default=60, description="Notification summary cache TTL in seconds")

    # Messaging
    message_request_policy: str = Field(
        default="enforce",
        description="'enforce' blocks sends into pending/rejected conversations, 'permissive' allows them"
    )

    # Follow graph maintenance
    follow_reconcile_interval_seconds: int = Field(
        default=0,
        ge=0,
        description="Interval for the background follow counter reconciliation (0 disables)"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="text", description="Log format: json or text")

    @field_validator("message_request_policy")
    @classmethod
    def validate_message_request_policy(cls, v: str) -> str:
        """Only the known gating policies are accepted."""
        v = v.strip().lower()
        if v not in MESSAGE_REQUEST_POLICIES:
            raise ValueError(f"message_request_policy must be one of {MESSAGE_REQUEST_POLICIES}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}")
        return v

    def get_allowed_origins_list(self) -> List[str]:
        """Parse comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"

    @property
    def enforce_message_requests(self) -> bool:
        """Whether sends are gated on the conversation request status."""
        return self.message_request_policy == "enforce"


# Global settings instance
settings = Settings()
