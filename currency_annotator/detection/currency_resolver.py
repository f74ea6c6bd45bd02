"""
Resolution of the source currency denoted by a matched span
"""

import logging
import re
from typing import Optional

from ..conversion.models import ConversionConfig
from .registry import CurrencyRegistry

logger = logging.getLogger(__name__)


def _contains_code(text: str, code: str) -> bool:
    return re.search(rf'(?<![A-Z]){re.escape(code)}(?![A-Z])', text) is not None


def resolve(match_text: str, config: ConversionConfig, registry: CurrencyRegistry) -> Optional[str]:
    """
    Determine the source currency code for a matched span

    An explicit ``source_mode`` wins unconditionally. In auto mode the
    upper-cased match is tested for, in order: a known symbol (registry
    order, first hit wins), a known code, then the pivot code. Symbols go
    first because a bare three-letter substring is the weaker signal.

    Returns:
        Currency code, or None when nothing in the match is recognised
    """
    if not config.auto_detect:
        return config.source_mode

    normalized = match_text.upper()

    for symbol, code in registry.symbols.items():
        if symbol.upper() in normalized:
            return code

    for code in dict.fromkeys(registry.symbols.values()):
        if _contains_code(normalized, code):
            return code

    if _contains_code(normalized, registry.pivot_code):
        return registry.pivot_code

    logger.debug(f"No currency identifier recognised in {match_text!r}")
    return None
