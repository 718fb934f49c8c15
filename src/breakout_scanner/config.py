"""Application configuration powered by Pydantic settings."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Literal, cast

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_SYMBOLS = (
    "BTC-USD,ETH-USD,SOL-USD,XRP-USD,DOGE-USD,ADA-USD,AVAX-USD,MATIC-USD,DOT-USD,LINK-USD"
)


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    # A permissive default token keeps import-time configuration working in CI
    # smoke tests. Real deployments override it through API_TOKEN.
    api_token: str = Field(
        "dev-token",
        alias="API_TOKEN",
        min_length=8,
        description="Shared bearer token required to access protected endpoints.",
    )
    allowed_origins_raw: str = Field(
        "",
        alias="ALLOWED_ORIGINS",
        description="Comma-separated list of origins allowed to access the API.",
    )
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    rate_limit_per_minute: int = Field(60, alias="RATE_LIMIT_PER_MINUTE", ge=1)
    playwright_mode: bool = Field(False, alias="PLAYWRIGHT")

    data_source: Literal["coinbase", "ccxt"] = Field("coinbase", alias="DATA_SOURCE")
    exchange: str = Field(
        "coinbaseexchange",
        alias="EXCHANGE",
        description="CCXT exchange identifier used when DATA_SOURCE=ccxt.",
    )
    market_data_base_url: str = Field(
        "https://api.exchange.coinbase.com",
        alias="MARKET_DATA_BASE_URL",
        description="Base URL of the Coinbase Exchange compatible REST API.",
    )
    market_data_timeout: float = Field(
        10.0,
        alias="MARKET_DATA_TIMEOUT",
        ge=1.0,
        le=60.0,
        description="Timeout in seconds for market data HTTP calls.",
    )
    candle_limit: int = Field(300, alias="CANDLE_LIMIT", ge=30, le=300)
    inter_call_delay_ms: int = Field(
        300,
        alias="INTER_CALL_DELAY_MS",
        ge=0,
        le=10_000,
        description="Minimum spacing between two outbound market data requests.",
    )
    rate_limit_retry_delay_ms: int = Field(
        1000,
        alias="RATE_LIMIT_RETRY_DELAY_MS",
        ge=0,
        le=60_000,
        description="Delay awaited after the first HTTP 429 before retrying.",
    )
    rate_limit_backoff_factor: float = Field(2.0, alias="RATE_LIMIT_BACKOFF_FACTOR", ge=1.0, le=10.0)
    rate_limit_max_retries: int = Field(5, alias="RATE_LIMIT_MAX_RETRIES", ge=0, le=50)
    circuit_breaker_threshold: int = Field(5, alias="CIRCUIT_BREAKER_THRESHOLD", ge=1)
    circuit_breaker_reset_seconds: float = Field(
        30.0, alias="CIRCUIT_BREAKER_RESET_SECONDS", ge=0.0
    )

    top_n: int = Field(10, alias="TOP_N", ge=1, le=100)
    signal_source: Literal["simulated", "candles"] = Field("simulated", alias="SIGNAL_SOURCE")
    signal_seed: int | None = Field(
        None,
        alias="SIGNAL_SEED",
        description="Seed for the simulated signal generators (random when unset).",
    )
    default_symbols_raw: str = Field(
        _DEFAULT_SYMBOLS,
        alias="DEFAULT_SYMBOLS",
        description="Comma-separated universe used when the product listing is unavailable.",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        validate_by_name=True,
    )

    @field_validator("api_token", mode="before")
    @classmethod
    def ensure_token_has_value(cls, value: str | None) -> str:
        """Fallback to the default token when an empty string is provided.

        Docker forwards ``-e NAME=$NAME`` as an empty string when ``$NAME`` is
        undefined, which would otherwise trip the ``min_length`` constraint.
        """
        default_token = cast(str, cls.model_fields["api_token"].default)
        if value is None or value == "":
            return default_token
        return value

    @field_validator("signal_seed", mode="before")
    @classmethod
    def blank_seed_is_unset(cls, value: object) -> object:
        """Treat an empty ``SIGNAL_SEED`` as no seed at all."""
        if value == "":
            return None
        return value

    @property
    def allowed_origins(self) -> List[str]:
        """Return the sanitized CORS origins as a list."""
        return [origin.strip() for origin in self.allowed_origins_raw.split(",") if origin.strip()]

    @property
    def default_symbols(self) -> List[str]:
        """Return the fallback universe as upper-cased product identifiers."""
        return [
            symbol.strip().upper() for symbol in self.default_symbols_raw.split(",") if symbol.strip()
        ]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()  # type: ignore[call-arg]


settings = get_settings()

__all__ = ["Settings", "get_settings", "settings"]
