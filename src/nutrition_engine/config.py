"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from nutrition_engine.policy import (
    RECIPE_CACHE_TTL_SECONDS,
    RECIPE_MAX_ATTEMPTS,
    RECIPE_RETRY_DELAY_SECONDS,
    RECIPE_SIMILARITY_THRESHOLD,
)

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = "low"
    openai_store: bool = False
    openai_timeout_seconds: float = 60.0
    fdc_api_key: str
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    off_base_url: str = "https://world.openfoodfacts.org"
    resolver_timeout_seconds: float = 4.0
    resolver_cache_ttl_seconds: int = 86400
    recipe_cache_ttl_seconds: int = RECIPE_CACHE_TTL_SECONDS
    recipe_max_attempts: int = RECIPE_MAX_ATTEMPTS
    recipe_similarity_threshold: int = RECIPE_SIMILARITY_THRESHOLD
    recipe_retry_delay_seconds: float = RECIPE_RETRY_DELAY_SECONDS
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
