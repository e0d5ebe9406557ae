"""Configuration system using pydantic-settings with environment variable loading."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class ExchangeSettings(BaseSettings):
    """Binance USD-M futures public market-data connection settings."""

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    request_timeout_ms: int = 10_000
    testnet: bool = False


class IngestionSettings(BaseSettings):
    """Ingestion cycle cadence and retention.

    The fetch timeout must stay comfortably below the cycle interval so a
    single unresponsive symbol cannot delay the next cycle indefinitely.
    """

    model_config = SettingsConfigDict(env_prefix="INGESTION_")

    enabled: bool = True
    interval_seconds: float = 60.0  # measured from cycle completion
    startup_delay_seconds: float = 5.0
    fetch_timeout_seconds: float = 10.0
    retention_days: int = 7


class StorageSettings(BaseSettings):
    """Time-series database location."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    db_path: str = "data/market_data.db"


class QuerySettings(BaseSettings):
    """Query boundary limits."""

    model_config = SettingsConfigDict(env_prefix="QUERY_")

    default_limit: int = 100
    max_limit: int = 500
    max_range_days: int = 7


class ApiSettings(BaseSettings):
    """HTTP API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 4000
    enabled: bool = True
    cors_origins: list[str] = ["*"]


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    exchange: ExchangeSettings = ExchangeSettings()
    ingestion: IngestionSettings = IngestionSettings()
    storage: StorageSettings = StorageSettings()
    query: QuerySettings = QuerySettings()
    api: ApiSettings = ApiSettings()
