"""
Currency conversion: configuration, rate tables, fetching and the converter
"""

from .models import ConversionConfig, SettingsUpdate
from .rates import ExchangeRateTable
from .rate_converter import convert, resolve_fee_percent
from .rate_fetcher import RateFetcher

__all__ = [
    "ConversionConfig",
    "SettingsUpdate",
    "ExchangeRateTable",
    "convert",
    "resolve_fee_percent",
    "RateFetcher"
]
