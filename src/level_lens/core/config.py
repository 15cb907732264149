"""Application configuration settings."""

from functools import lru_cache
from typing import Optional

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
    debug: bool = Field(default=False, description="Enable debug mode")
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    # Generation provider
    generation_provider: str = Field(
        default="local", description="Text generation backend: 'openai' or 'local'"
    )
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI model to use")
    openai_max_tokens: int = Field(default=1000, description="Maximum tokens for OpenAI API")
    provider_requests_per_minute: int = Field(
        default=50, description="Maximum provider calls per minute"
    )

    # Result cache
    cache_ttl_seconds: float = Field(default=24 * 60 * 60, description="Cache entry lifetime")
    cache_max_entries: int = Field(default=1000, ge=1, description="Maximum cached results")
    cache_eviction_fraction: float = Field(
        default=0.2, gt=0.0, le=1.0, description="Share of oldest entries purged at capacity"
    )
    cache_fingerprint_max_chars: int = Field(
        default=2000, ge=1, description="Characters of normalized text hashed into a cache key"
    )

    # Session pool
    pool_max_size: int = Field(default=3, ge=0, description="Idle sessions retained per kind")
    pool_idle_timeout_seconds: float = Field(
        default=30.0, gt=0.0, description="Idle time before a pooled session is destroyed"
    )

    # Batch scheduling
    batch_chunk_size: int = Field(default=5, ge=1, description="Requests processed concurrently")
    batch_chunk_delay_ms: int = Field(default=100, ge=0, description="Pause between chunks")

    # Leveling test
    test_max_questions: int = Field(default=6, ge=1, description="Questions per leveling test")
    test_initial_level: str = Field(default="B1", description="Level of the first question")
    test_stabilization_window: int = Field(
        default=3, ge=2, description="Consecutive identical levels that end a test early"
    )

    # Text adaptation
    default_level: str = Field(default="B1", description="Level used when none is stored")
    min_text_length: int = Field(default=1, description="Minimum input text length")
    max_text_length: int = Field(default=10000, description="Maximum input text length")
    summaries_enabled: bool = Field(default=True, description="Generate summaries on simplify")

    @property
    def batch_chunk_delay_seconds(self) -> float:
        """Convert the inter-chunk pause from milliseconds to seconds."""
        return self.batch_chunk_delay_ms / 1000

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


# Global settings instance
settings = get_settings()
