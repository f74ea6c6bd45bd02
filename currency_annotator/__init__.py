"""
Currency Annotator - detects prices in page text and annotates them with converted amounts
"""

__version__ = "0.1.0"
__author__ = "Currency Annotator"
__description__ = "Detection-and-conversion engine for currency amounts embedded in page text"

from .main import app
from .config import settings
from .health import HealthChecker

__all__ = ["app", "settings", "HealthChecker"]
