"""
Centralized settings management using pydantic-settings.

All environment variables and configuration values are defined here.
Use get_settings() to access the singleton settings instance.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Optional environment variables:
        - HOST: Server host (default: 0.0.0.0)
        - PORT: Server port (default: 8080)
        - ENVIRONMENT: Environment name (development, staging, production)
        - CATALOG_BACKEND: "memory" or "supabase"
        - SUPABASE_URL / SUPABASE_SERVICE_KEY: required for the supabase catalog
        - SUPABASE_JWT_SECRET: required by authenticated routes
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    # ==========================================================================
    # Server Configuration
    # ==========================================================================
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    workers: int = Field(
        default=1,
        description="Number of uvicorn workers (tracking state is per process)"
    )

    # CORS Configuration
    cors_origins: List[str] = Field(
        default=[
            "http://localhost:4200",
            "http://localhost:3000",
            "http://127.0.0.1:4200",
            "http://127.0.0.1:3000",
        ],
        description="Allowed CORS origins"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    # ==========================================================================
    # Supabase Configuration
    # ==========================================================================
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_service_key: str = Field(default="", description="Supabase service role key")
    supabase_jwt_secret: str = Field(default="", description="JWT secret for token verification")

    # ==========================================================================
    # Catalog
    # ==========================================================================
    catalog_backend: Literal["memory", "supabase"] = Field(
        default="memory",
        description="Where searchable items are read from"
    )
    catalog_seed_path: Optional[Path] = Field(
        default=None,
        description="JSON file with seed items for the in-memory catalog"
    )
    catalog_table: str = Field(default="products", description="Supabase table holding products")

    @field_validator("catalog_seed_path", mode="before")
    @classmethod
    def parse_seed_path(cls, v):
        if isinstance(v, str):
            return Path(v) if v.strip() else None
        return v

    # ==========================================================================
    # Search
    # ==========================================================================
    search_default_page_size: int = Field(default=12, description="Default results per page")
    search_max_page_size: int = Field(default=100, description="Upper bound for results per page")
    suggestion_limit_in_results: int = Field(
        default=5,
        description="Suggestions attached to every search response"
    )

    # ==========================================================================
    # Tracking
    # ==========================================================================
    history_capacity: int = Field(default=100, description="Searches kept per user (newest first)")
    popular_query_cap: int = Field(default=20, description="Popular queries kept per user")
    correlation_window_seconds: int = Field(
        default=3600,
        description="Window in which clicks/purchases are attributed to a search"
    )
    trending_windowing: Literal["monotonic", "bucketed"] = Field(
        default="monotonic",
        description="monotonic: counters never decay; bucketed: hourly buckets with eviction"
    )
    tracking_workers: int = Field(
        default=2,
        description="Worker threads for detached tracking updates (0 = inline)"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Uses lru_cache to ensure only one instance is created.
    Settings are loaded from environment variables and .env file.

    Returns:
        Settings: The application settings instance
    """
    # Try to find .env file in project root
    env_file = Path(__file__).parent.parent.parent / ".env"
    if env_file.exists():
        os.environ.setdefault("ENV_FILE", str(env_file))

    return Settings(_env_file=env_file if env_file.exists() else None)


def get_settings_for_testing(**overrides) -> Settings:
    """
    Create a settings instance for testing with optional overrides.

    This bypasses the cache to allow different settings in tests.

    Args:
        **overrides: Setting values to override

    Returns:
        Settings: A new settings instance with overrides applied
    """
    test_defaults = {
        "environment": "testing",
        "debug": True,
        "supabase_jwt_secret": "test-jwt-secret-with-at-least-32-bytes!",
        "tracking_workers": 0,
    }
    test_defaults.update(overrides)

    return Settings(_env_file=None, **test_defaults)
