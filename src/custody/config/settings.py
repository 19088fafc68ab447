"""Application settings and configuration."""

from decimal import Decimal
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_default_data_dir() -> Path:
    """Return the default data directory."""
    return Path.cwd() / "data"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CUSTODY_",
    )

    app_name: str = "Custody Ledger"
    app_version: str = "0.1.0"

    # Data directory (SQLite file lives here unless database_url is set)
    data_dir: Optional[Path] = None
    database_url: Optional[str] = None

    log_level: str = "INFO"
    # Watcher and notification loggers fire every few seconds
    worker_log_level: str = "INFO"

    # 32-byte AES key as 64 hex chars; the all-zero default is for local use only
    master_key_hex: str = "0" * 64

    # Blockchain gateway
    gateway_mode: Literal["http", "stub"] = "http"
    gateway_url: str = "https://tron-api.onrender.com"
    gateway_api_key: Optional[str] = None
    gateway_timeout_seconds: float = 30.0

    # Price oracle
    oracle_url: str = "https://p2p.binance.com/bapi/c2c/v2/friendly/c2c/adv/search"
    oracle_timeout_seconds: float = 10.0
    quote_asset: str = "USDT"
    quote_fiat: str = "BOB"
    quote_sample_size: int = 10
    fallback_price: Decimal = Decimal("36.50")
    purchase_markup: Decimal = Decimal("0.13")
    withdrawal_discount: Decimal = Decimal("0.10")

    # Caching / idempotency
    balance_cache_ttl_seconds: int = 30
    idempotency_ttl_seconds: int = 600

    # Background workers
    watcher_interval_seconds: float = 8.0
    watcher_batch_size: int = 25
    watcher_max_tick_seconds: float = 60.0
    stale_pending_minutes: int = 30
    notification_interval_seconds: float = 5.0
    workers_enabled: bool = True

    # Staking
    staking_daily_rate_bp: int = 10  # 0.10% per day
    staking_min_amount: Decimal = Decimal("10")
    staking_max_amount: Decimal = Decimal("10000")
    stake_principal_cap: Decimal = Decimal("1000000")
    settlement_cap: Decimal = Decimal("1000000")

    # Treasury
    treasury_owner_id: str = "treasury"
    treasury_private_key: Optional[str] = None

    def get_data_dir(self) -> Path:
        """Get the data directory, creating it if needed."""
        data_dir = self.data_dir or get_default_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def get_database_url(self) -> str:
        """Get database URL, deriving from data_dir if not set."""
        if self.database_url:
            return self.database_url
        db_path = self.get_data_dir() / "custody.db"
        return f"sqlite:///{db_path}"


# Global settings instance (can be replaced at runtime)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the current settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Set the global settings instance."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Reset settings to force reload."""
    global _settings
    _settings = None
