"""
Compiles the currency registry into one identifier/amount matching pattern
"""

import logging
import re
from typing import List

from .registry import CurrencyRegistry

logger = logging.getLogger(__name__)

# One or more digit groups joined by a single space, comma or period. Deliberately
# permissive: "1,234", "1.234,56" and "1 234" are all one token.
NUMBER_PATTERN = r'\d+(?:[ \u00a0\u202f.,]\d+)*'

# A number token never starts inside another one, including right after a
# digit and one separator space. Keeps long numeric runs linear to scan.
NUMBER_START = r'(?<![\d.,])(?<!\d[ \u00a0\u202f])'

GROUP_IDENT_BEFORE = 'ident_before'
GROUP_AMOUNT_AFTER = 'amount_after'
GROUP_AMOUNT_BEFORE = 'amount_before'
GROUP_IDENT_AFTER = 'ident_after'


def _identifier_alternative(identifier: str) -> str:
    """Escape an identifier and keep it from matching inside a longer word"""
    escaped = re.escape(identifier)
    if identifier[0].isalpha():
        escaped = r'(?<![^\W\d_])' + escaped
    if identifier[-1].isalpha():
        escaped = escaped + r'(?![^\W\d_])'
    return escaped


def _is_code(identifier: str) -> bool:
    return identifier.isalpha()


def identifiers(registry: CurrencyRegistry) -> List[str]:
    """All symbols, codes and the pivot code, longest first"""
    unique = dict.fromkeys(list(registry.symbols) + registry.codes + [registry.pivot_code])
    return sorted(unique, key=len, reverse=True)


def build(registry: CurrencyRegistry) -> re.Pattern:
    """
    Build the composite pattern for a registry

    The result matches an identifier immediately before an amount or an amount
    immediately before an identifier. Named groups tell the two shapes apart.
    Matching is case-sensitive, so letter codes only match in upper case.
    """
    all_identifiers = identifiers(registry)
    alternation = '|'.join(_identifier_alternative(ident) for ident in all_identifiers)
    codes = '|'.join(_identifier_alternative(ident) for ident in all_identifiers if _is_code(ident))
    symbols = '|'.join(_identifier_alternative(ident) for ident in all_identifiers if not _is_code(ident))

    # A trailing symbol directly followed by digits belongs to those digits
    trailing = [f'(?:{symbols})(?!\\s*\\d)'] if symbols else []
    if codes:
        trailing.insert(0, codes)

    pattern = re.compile(
        rf'(?P<{GROUP_IDENT_BEFORE}>{alternation})\s*'
        rf'(?P<{GROUP_AMOUNT_AFTER}>{NUMBER_START}{NUMBER_PATTERN})'
        rf'|(?P<{GROUP_AMOUNT_BEFORE}>{NUMBER_START}{NUMBER_PATTERN})\s*'
        rf'(?P<{GROUP_IDENT_AFTER}>{"|".join(trailing)})'
    )

    logger.debug(f"Built identifier pattern over {len(all_identifiers)} identifiers")
    return pattern


def amount_text(match: re.Match) -> str:
    """Raw numeric token of a match produced by :func:`build`"""
    return match.group(GROUP_AMOUNT_AFTER) or match.group(GROUP_AMOUNT_BEFORE)


def identifier_text(match: re.Match) -> str:
    """Identifier of a match produced by :func:`build`"""
    return match.group(GROUP_IDENT_BEFORE) or match.group(GROUP_IDENT_AFTER)
