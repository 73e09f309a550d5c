"""Configuration loading - reads settings from environment variables and the .env file."""

from enum import Enum
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from lnm_trader.errors import ConfigurationError


class Network(str, Enum):
    """LN Markets deployment to talk to."""

    MAINNET = "mainnet"
    TESTNET = "testnet"


class LogFormat(str, Enum):
    """Log output format."""

    JSON = "json"
    CONSOLE = "console"


_REQUIRED_ENV = {
    "lnm_api_key": "LNM_API_KEY",
    "lnm_api_secret": "LNM_API_SECRET",
    "lnm_passphrase": "LNM_PASSPHRASE",
    "taapi_api_key": "TAAPI_API_KEY",
}


class Settings(BaseSettings):
    """Trader settings.

    Loaded from environment variables and the .env file. Every strategy
    constant has a default matching the live configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==================== LN Markets API ====================
    lnm_api_key: str = Field(default="", description="LN Markets API key")
    lnm_api_secret: str = Field(default="", description="LN Markets API secret")
    lnm_passphrase: str = Field(default="", description="LN Markets API passphrase")
    lnm_network: Network = Field(default=Network.MAINNET, description="mainnet or testnet")
    request_timeout: float = Field(default=10.0, gt=0, description="HTTP timeout (seconds)")

    # ==================== taapi.io ====================
    taapi_api_key: str = Field(default="", description="taapi.io secret")
    taapi_exchange: str = Field(default="binance", description="Exchange used for indicators")
    indicator_symbol: str = Field(default="BTC/USDT", description="Indicator instrument")
    indicator_timeframe: str = Field(default="15m", description="Indicator candle interval")

    # ==================== Telegram ====================
    telegram_bot_token: str = Field(default="", description="Telegram bot token (optional)")
    telegram_chat_id: str = Field(default="", description="Telegram chat id (optional)")

    # ==================== Cooldowns ====================
    indicator_cooldown_sec: float = Field(
        default=15.0,
        gt=0,
        description="Shared cooldown between indicator fetches",
    )
    fetch_spacing_sec: float = Field(
        default=15.0,
        ge=0,
        description="Delay between the oscillator and band fetches",
    )
    cycle_cooldown_sec: float = Field(
        default=60.0,
        gt=0,
        description="Minimum time between decision cycles",
    )
    trade_cooldown_sec: float = Field(
        default=1.0,
        ge=0,
        description="Minimum time between trade submissions",
    )
    settle_delay_sec: float = Field(
        default=1.0,
        ge=0,
        description="Wait after closing positions before re-reading them",
    )

    # ==================== Indicator history ====================
    history_capacity: int = Field(default=16, ge=1, le=1000, description="RSI samples kept")
    rsi_period: int = Field(default=15, ge=1, le=1000, description="Moving average period")

    # ==================== Signal parameters ====================
    default_sell_rsi: float = Field(default=75.0, description="Sell threshold before warm-up")
    default_buy_rsi: float = Field(default=45.0, description="Buy threshold before warm-up")
    sell_rsi_offset: float = Field(default=10.0, description="Added to the RSI average")
    buy_rsi_offset: float = Field(default=2.0, description="Subtracted from the RSI average")
    sell_band_factor: float = Field(default=1.03, gt=0, description="Lower band multiplier")
    buy_band_factor: float = Field(default=0.996, gt=0, description="Upper band multiplier")

    # ==================== Risk parameters ====================
    take_profit_pl: float = Field(default=20.0, description="Close when pl is above (sats)")
    stop_loss_pl: float = Field(default=-19.0, description="Close when pl is below (sats)")
    max_side_exposure: float = Field(
        default=20.0,
        gt=0,
        description="Per-side quantity at which new entries stop",
    )
    order_leverage: float = Field(default=1.0, ge=1.0, le=100.0, description="Order leverage")
    order_quantity: float = Field(default=2.0, gt=0, description="Order quantity (USD)")

    # ==================== Reconnect ====================
    max_reconnect_retries: int = Field(default=5, ge=0, le=100, description="Reconnect attempts")
    reconnect_base_ms: int = Field(default=1000, gt=0, description="Backoff base delay")
    reconnect_max_ms: int = Field(default=30000, gt=0, description="Backoff delay cap")

    # ==================== Logging ====================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: LogFormat = Field(
        default=LogFormat.CONSOLE,
        description="Log output format",
    )

    @property
    def is_testnet(self) -> bool:
        return self.lnm_network == Network.TESTNET

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    def validate_required(self) -> list[str]:
        """Return the names of required environment variables that are missing."""
        return [env for field, env in _REQUIRED_ENV.items() if not getattr(self, field)]

    def require_credentials(self) -> None:
        """Raise ConfigurationError naming every missing credential."""
        missing = self.validate_required()
        if missing:
            raise ConfigurationError(missing)


# Global settings instance (lazy)
_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from the environment."""
    global _settings
    _settings = Settings()
    return _settings
