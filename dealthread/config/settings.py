"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="dealthread", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Record store (backend-as-a-service table API)
    store_base_url: str | None = Field(
        default=None, description="Base URL of the record store REST API"
    )
    store_project_id: str | None = Field(
        default=None, description="Record store project ID"
    )
    store_public_key: str | None = Field(
        default=None, description="Record store public key"
    )
    store_timeout: float = Field(default=10.0, description="Request timeout (seconds)")
    store_max_connections: int = Field(
        default=20, description="Max pooled connections to the record store"
    )

    # Table names
    comment_table: str = Field(default="comment_c", description="Comment table")
    reply_table: str = Field(default="reply_c", description="Reply table")
    reaction_table: str = Field(default="reaction_c", description="Reaction table")
    mention_table: str = Field(
        default="user_mention_c", description="User mention table"
    )
    notification_table: str = Field(
        default="notification_c", description="Notification table"
    )

    # Mention resolution
    user_directory_table: str | None = Field(
        default=None,
        description="Table used to resolve @username to a user ID (unset: no lookup)",
    )
    user_directory_username_field: str = Field(
        default="username_c", description="Username field in the directory table"
    )
    mention_fallback_to_actor: bool = Field(
        default=True,
        description="Attribute unresolved mentions to the acting user",
    )

    # Notifications
    notifications_enabled: bool = Field(
        default=True, description="Create notifications for mentions and replies"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="DEBUG", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format"
    )
    log_include_caller_info: bool = Field(
        default=True, description="Include caller info"
    )
    log_dir: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Max size per log file (10MB default)"
    )
    log_file_backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log HTTP request start/finish"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Paths to exclude from request logging",
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="CORS origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials")
    cors_allow_methods: list[str] = Field(default=["*"], description="Allowed methods")
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing"

    @property
    def store_configured(self) -> bool:
        """Check if the remote record store is configured."""
        return bool(self.store_base_url and self.store_project_id)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
