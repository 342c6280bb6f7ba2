"""
Configuration management for Coexpression Data API.

Uses Pydantic settings for type-safe configuration with environment variable support.
All settings can be overridden via environment variables.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types import BinarizationStrategy, CombineStrategy, DuplicateReducer


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    All settings can be overridden via environment variables.
    For nested settings, use double underscore: CORS__ALLOW_ORIGINS="http://localhost:3000"
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # ==========================================================================
    # Application Metadata
    # ==========================================================================
    app_name: str = "Coexpression Data API"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = Field(default="development", description="development, staging, production")

    # ==========================================================================
    # Database Configuration
    # ==========================================================================
    database_url: Optional[str] = Field(
        default=None,
        description="PostgreSQL connection string",
    )
    database_pool_size: int = Field(default=10, ge=1, le=50)
    database_min_pool_size: int = Field(default=2, ge=1, le=50)

    @computed_field
    @property
    def db_url(self) -> str:
        """Get the effective database URL."""
        return self.database_url or ""

    # ==========================================================================
    # API Configuration
    # ==========================================================================
    api_prefix: str = "/api/v1"
    api_docs_url: str = "/docs"
    api_redoc_url: str = "/redoc"

    # ==========================================================================
    # CORS Configuration
    # ==========================================================================
    cors_allow_origins: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        description="Allowed CORS origins. Set to ['*'] for development.",
    )
    cors_allow_methods: list[str] = ["GET", "HEAD", "OPTIONS"]
    cors_allow_headers: list[str] = ["Accept", "Accept-Encoding", "Content-Type", "Cache-Control"]
    cors_allow_credentials: bool = False
    cors_expose_headers: list[str] = ["X-Process-Time"]

    # ==========================================================================
    # Human Protein Atlas (profile fetch)
    # ==========================================================================
    hpa_base_url: str = "https://www.proteinatlas.org"
    hpa_requests_per_minute: int = Field(default=120, ge=1, le=6000)
    hpa_timeout: float = Field(default=30.0, gt=0)
    hpa_max_retries: int = Field(default=3, ge=1, le=10)

    # ==========================================================================
    # Pair Ranking
    # ==========================================================================
    default_page_size: int = Field(default=50, ge=1, description="Pairs processed per request")
    max_page_size: int = Field(default=200, ge=1)

    # ==========================================================================
    # Similarity Engine Defaults
    # ==========================================================================
    top_k: int = Field(default=10, ge=1, description="Positions compared for top-k agreement")
    binarization: BinarizationStrategy = BinarizationStrategy.median
    combine_strategy: CombineStrategy = CombineStrategy.concatenate
    duplicate_reducer: DuplicateReducer = DuplicateReducer.mean


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
