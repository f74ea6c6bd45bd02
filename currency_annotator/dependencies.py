"""
Dependency injection for the FastAPI application
"""

import logging
from typing import Optional

from .annotation.engine import ConversionEngine
from .conversion.rate_fetcher import RateFetcher
from .health import HealthChecker


def get_logger() -> logging.Logger:
    """Get configured logger instance"""
    return logging.getLogger(__name__)


# Process-wide instances; scans are serialized on the event loop
_engine: Optional[ConversionEngine] = None
_rate_fetcher: Optional[RateFetcher] = None


def get_engine() -> ConversionEngine:
    """Get the singleton conversion engine, loading the registry on first use"""
    global _engine
    if _engine is None:
        _engine = ConversionEngine.from_settings()
    return _engine


def get_rate_fetcher() -> RateFetcher:
    """Get the singleton rate fetcher"""
    global _rate_fetcher
    if _rate_fetcher is None:
        _rate_fetcher = RateFetcher()
    return _rate_fetcher


def get_health_checker() -> HealthChecker:
    """Get health checker instance bound to the current engine"""
    return HealthChecker(get_engine())
