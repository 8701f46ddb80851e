"""Configuration settings for GitHub Sync DB."""

import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GitHubApiConfig(BaseModel):
    """Configuration for GitHub REST API access.

    Controls the API version header, page sizes and the cooldown
    applied when GitHub rejects a request with a rate limit (403).
    """

    api_version: str = Field(
        default="2022-11-28",
        description="Value sent in the X-GitHub-Api-Version header",
    )
    per_page: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Items requested per page on listing endpoints",
    )
    rate_limit_cooldown_seconds: float = Field(
        default=60.0,
        ge=0.0,
        description="Seconds to wait before retrying a rate-limited (403) request",
    )


class SyncConfig(BaseModel):
    """Configuration for sync behavior.

    Controls which execution strategy is used for per-repository fetch work
    and how the worker pool is sized.
    """

    strategy: Literal["sequential", "worker_pool"] = Field(
        default="sequential",
        description="Per-repository fetch strategy",
    )
    worker_pool_size: int | None = Field(
        default=None,
        ge=1,
        le=32,
        description="Workers in the offload pool (None = based on CPU count, 2-4)",
    )
    worker_mode: Literal["thread", "process"] = Field(
        default="thread",
        description="Isolation primitive backing each pool worker",
    )

    @property
    def effective_pool_size(self) -> int:
        """Pool size, falling back to available parallelism bounded to 2-4."""
        if self.worker_pool_size is not None:
            return self.worker_pool_size
        return default_pool_size()


class QueryConfig(BaseModel):
    """Configuration for the collection read layer."""

    default_page_size: int = Field(default=100, ge=1)
    max_page_size: int = Field(
        default=1000,
        ge=1,
        description="Upper bound applied to requested page sizes",
    )
    list_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Execution cap for a paginated collection query",
    )
    search_timeout_seconds: float = Field(
        default=3.0,
        gt=0.0,
        description="Execution cap for each per-collection global search",
    )
    search_limit: int = Field(
        default=10,
        ge=1,
        description="Rows returned per collection by global search",
    )


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


def default_pool_size() -> int:
    """Worker count bounded by available parallelism (2-4)."""
    return max(2, min(os.cpu_count() or 1, 4))


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Database
    # --------------------------------------------------------------------------
    database_url: str = Field(
        default="sqlite+aiosqlite:///./github_sync.db",
        description="Async SQLite database connection string",
    )

    # --------------------------------------------------------------------------
    # GitHub OAuth App
    # --------------------------------------------------------------------------
    github_client_id: str = Field(
        default="",
        description="OAuth app client ID",
    )
    github_client_secret: str = Field(
        default="",
        description="OAuth app client secret",
    )
    github_callback_url: str = Field(
        default="http://localhost:4200/auth/github/callback",
        description="Redirect URI registered with the OAuth app",
    )
    github_oauth_scope: str = Field(
        default="repo,user,read:org",
        description="Scopes requested during authorization",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # GitHub API
    # --------------------------------------------------------------------------
    github: GitHubApiConfig = Field(
        default_factory=GitHubApiConfig,
        description="GitHub REST API configuration",
    )

    # --------------------------------------------------------------------------
    # Sync Configuration
    # --------------------------------------------------------------------------
    sync: SyncConfig = Field(
        default_factory=SyncConfig,
        description="Sync strategy configuration",
    )

    # --------------------------------------------------------------------------
    # Query Configuration
    # --------------------------------------------------------------------------
    query: QueryConfig = Field(
        default_factory=QueryConfig,
        description="Collection read layer limits",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
