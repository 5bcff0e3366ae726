"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Providers
    finnhub_api_key: SecretStr | None = None
    finnhub_base_url: str = "https://finnhub.io/api/v1"
    coincap_base_url: str = "https://api.coincap.io/v2"
    nws_base_url: str = "https://api.weather.gov"
    nws_user_agent: str = "feedcore/1.0 (situation dashboard)"

    # Outbound timeouts (seconds)
    quote_timeout: float = 10.0
    crypto_timeout: float = 10.0
    alerts_timeout: float = 15.0

    # Cache TTL (seconds)
    cache_ttl_quote: int = 60  # 1 minute
    cache_ttl_crypto: int = 120  # 2 minutes
    cache_ttl_markets: int = 120  # 2 minutes
    cache_ttl_alerts: int = 300  # 5 minutes
    cache_max_entries: int = 500

    # Rate Limits (requests per minute)
    rate_limit_finnhub: int = 60  # free tier

    # Multi-source aggregation
    aggregator_batch_size: int | None = 5
    aggregator_batch_pause: float = 0.2
    default_alert_states: list[str] = ["TX", "CA", "FL", "NY", "OK"]

    @field_validator(
        "cache_ttl_quote",
        "cache_ttl_crypto",
        "cache_ttl_markets",
        "cache_ttl_alerts",
        "cache_max_entries",
        "rate_limit_finnhub",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Must be a positive integer")
        return v

    @field_validator("aggregator_batch_size")
    @classmethod
    def validate_batch_size(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("Batch size must be at least 1 (or unset for no batching)")
        return v

    @property
    def has_finnhub_key(self) -> bool:
        return bool(self.finnhub_api_key and self.finnhub_api_key.get_secret_value())


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
