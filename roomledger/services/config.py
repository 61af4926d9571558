"""Application configuration from environment variables and .env file."""

import logging
from typing import Optional

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Receipt and ledger settings.

    Pydantic loads values from:
    1. OS environment variables (at instantiation time)
    2. .env file in the working directory
    3. Field defaults
    """

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Fonts (paths or http(s) URLs to outline-font binaries)
    font_regular_path: str = Field(
        default="fonts/NotoSans-Regular.ttf", description="Regular-weight receipt font"
    )
    font_bold_path: str = Field(
        default="fonts/NotoSans-Bold.ttf", description="Bold-weight receipt font"
    )
    font_fetch_timeout: float = Field(
        default=10.0, gt=0, description="Timeout in seconds for fetching fonts over HTTP"
    )

    # Formatting
    locale: str = Field(default="vi_VN", description="Locale for thousands separators")

    # Default unit prices for a room's first recorded month
    default_elec_price: int = Field(default=3500, ge=0, description="Currency per kWh")
    default_water_price: int = Field(default=14000, ge=0, description="Currency per water unit")

    # Payment instructions printed on the receipt
    bank_account_number: str = Field(default="0000000000", description="Transfer account number")
    bank_account_name: str = Field(default="ACCOUNT HOLDER", description="Transfer account name")
    bank_name: str = Field(default="BANK", description="Bank of the transfer account")

    # Ledger storage
    ledger_file: str = Field(default="data/readings.json", description="JSON ledger file")
    database_url: Optional[str] = Field(
        default=None, description="SQLAlchemy URL; overrides ledger_file when set"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/receipts.log", description="Log file path")


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the settings instance.

    Lazy-loaded so environment variables set after import are honoured.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
        logger.debug(
            "Loaded settings: locale=%s fonts=%s, %s",
            _settings_instance.locale,
            _settings_instance.font_regular_path,
            _settings_instance.font_bold_path,
        )
    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _settings_instance
    _settings_instance = None


__all__ = ["Settings", "get_settings", "reset_settings"]
