"""
Configuration management for the GitHub Profile Card service.
Uses pydantic-settings to load from environment variables and .env file.
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Required at fetch time - GitHub token for the GraphQL API
    github_token: str | None = None
    github_graphql_url: str = "https://api.github.com/graphql"

    # Optional - Upstash Redis REST credentials (Vercel KV names also accepted)
    upstash_redis_rest_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("UPSTASH_REDIS_REST_URL", "KV_REST_API_URL"),
    )
    upstash_redis_rest_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("UPSTASH_REDIS_REST_TOKEN", "KV_REST_API_TOKEN"),
    )

    # Cache behaviour
    cache_ttl_seconds: int = Field(default=1800, ge=1)  # 30 minutes, matches the CDN s-maxage
    cache_max_size: int = Field(default=500, ge=1)  # Entries, not bytes
    cache_sweep_interval_seconds: float = Field(default=300.0, gt=0)

    # Upstream load control
    max_in_flight_requests: int = Field(default=100, ge=1)
    max_pages: int = Field(default=10, ge=1)  # 100 repositories per page
    top_languages: int = Field(default=5, ge=1)

    # Timeouts (seconds)
    graphql_timeout_seconds: float = 10.0
    avatar_timeout_seconds: float = 5.0

    log_level: str = "INFO"

    @property
    def remote_cache_enabled(self) -> bool:
        """True when both Upstash credentials are configured."""
        return bool(self.upstash_redis_rest_url and self.upstash_redis_rest_token)


# Global settings instance - imported by other modules
settings = Settings()
