"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - batch_size stays small: one processBatch call must finish inside a single
      request/response cycle of sequential Shopify calls
    - shopify_max_retry_wait_ms stays well below claim_ttl_seconds: a claim
      must not expire while its holder is still backing off

Design Decisions:
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
    - Shopify credentials are per-deployment (one store per process)
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://bulkcode:bulkcode@db:5432/bulkcode"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Shopify Admin GraphQL
    shopify_store_domain: str = "example.myshopify.com"
    shopify_access_token: str = "shpat-placeholder"
    shopify_api_version: str = "2025-01"
    shopify_max_retries: int = 3
    shopify_timeout_seconds: int = 30
    shopify_base_delay_ms: int = 1000
    shopify_max_delay_ms: int = 10_000
    shopify_max_retry_wait_ms: int = 30_000

    # Batch processing
    batch_size: int = 5
    poll_interval_ms: int = 500
    claim_ttl_seconds: int = 300
    max_codes_per_submission: int = 10_000
    template_list_limit: int = 50

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
