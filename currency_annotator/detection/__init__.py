"""
Currency detection: registry, identifier pattern, amount parsing and source resolution
"""

from .registry import CurrencyRegistry, load, load_from_files
from .pattern_builder import build
from .number_normalizer import parse
from .currency_resolver import resolve

__all__ = [
    "CurrencyRegistry",
    "load",
    "load_from_files",
    "build",
    "parse",
    "resolve"
]
