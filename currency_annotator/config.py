"""
Configuration management for the currency annotator service.
"""

import os
import tempfile
from pydantic_settings import BaseSettings


DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data")


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Registry data
    symbols_path: str = os.path.join(DATA_DIR, "currency_symbols.json")
    card_fees_path: str = os.path.join(DATA_DIR, "card_fees.json")
    pivot_currency: str = "USD"
    pivot_symbol: str = "$"

    # Exchange rates
    rates_url: str = "https://open.er-api.com/v6/latest/{base}"
    rates_timeout: float = 10.0
    rates_refresh_interval_minutes: int = 1440  # once per day
    rates_cache_path: str = os.path.join(tempfile.gettempdir(), "currency_annotator", "rates.json")

    # Display
    display_locale: str = "en_US"

    # Defaults applied on a fresh install
    default_active: bool = False
    default_from_currency: str = "auto"
    default_to_currency: str = "JPY"
    default_card_issuer: str = "none"
    default_custom_fee: float = 0.0

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # Health check configuration
    health_check_timeout: float = 1.0
    readiness_check_timeout: float = 5.0
    max_rate_age_hours: float = 48.0

    class Config:
        env_prefix = "ANNOTATOR_"
        case_sensitive = False


# Global settings instance
settings = Settings()
