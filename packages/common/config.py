"""
Application configuration using Pydantic Settings
Reads from environment variables and .env file
"""
from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from packages.common.language import Language, normalize_language


class ItineraryBasis(str, Enum):
    """
    Which number drives the itinerary decision for a resolved category.

    RECOVERY_MAX: always the category's maximum recovery days.
    RECOMMENDED_STAY: the recommended stay days when positive, else recovery max.
    """
    RECOVERY_MAX = "recovery_max"
    RECOMMENDED_STAY = "recommended_stay"


class Settings(BaseSettings):
    """Application settings from environment"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Database (read-only catalog)
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    sql_echo: bool = Field(default=False, alias="SQL_ECHO")

    # Application
    environment: str = Field(default="production", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=True, alias="LOG_JSON")

    # Catalog feed (JSON procedure export)
    catalog_feed_url: Optional[str] = Field(default=None, alias="CATALOG_FEED_URL")
    catalog_feed_timeout: float = Field(default=10.0, alias="CATALOG_FEED_TIMEOUT")

    # Taxonomy
    base_language: Language = Field(default=Language.KR, alias="BASE_LANGUAGE")

    # Recovery resolver
    resolver_concurrency: int = Field(default=8, ge=1, alias="RESOLVER_CONCURRENCY")
    resolver_timeout_seconds: float = Field(default=2.0, gt=0, alias="RESOLVER_TIMEOUT_SECONDS")
    resolver_cache_max_entries: int = Field(default=5000, ge=1, alias="RESOLVER_CACHE_MAX_ENTRIES")

    # Itinerary + scoring
    itinerary_basis: ItineraryBasis = Field(default=ItineraryBasis.RECOVERY_MAX, alias="ITINERARY_BASIS")
    reasonable_price_threshold: int = Field(default=1_000_000, gt=0, alias="REASONABLE_PRICE_THRESHOLD")
    legacy_top_n: int = Field(default=10, ge=1, alias="LEGACY_TOP_N")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment"""
        valid_envs = ["development", "staging", "production", "test"]
        if v.lower() not in valid_envs:
            raise ValueError(f"ENVIRONMENT must be one of {valid_envs}")
        return v.lower()

    @field_validator("base_language", mode="before")
    @classmethod
    def validate_base_language(cls, v):
        """Accept lower-case or alias spellings (e.g. 'ko')"""
        return normalize_language(v)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
