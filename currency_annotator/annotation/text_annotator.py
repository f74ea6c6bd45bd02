"""
Annotates currency amounts in text fragments with their converted value
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Hashable, List, Optional, Tuple

from ..conversion.models import ConversionConfig
from ..conversion.rate_converter import convert
from ..conversion.rates import ExchangeRateTable
from ..detection import pattern_builder
from ..detection.currency_resolver import resolve
from ..detection.number_normalizer import parse
from ..detection.registry import CurrencyRegistry
from ..exceptions import ParseError
from .fragment_store import FragmentStore


@dataclass
class MatchSpan:
    """One identifier/amount occurrence found in a fragment"""
    matched_text: str
    raw_amount_text: str
    code: Optional[str]
    start: int
    end: int


@dataclass
class ReplacementSpan:
    """Replacement to apply at a span of the original text"""
    original: str
    replacement: str
    start: int
    end: int


class TextAnnotator:
    """Rewrites fragments and keeps what is needed to restore them"""

    def __init__(self, store: Optional[FragmentStore] = None):
        self.logger = logging.getLogger(__name__)
        self.store = store if store is not None else FragmentStore()
        self._cached_registry: Optional[CurrencyRegistry] = None
        self._cached_pattern: Optional[re.Pattern] = None

    def pattern_for(self, registry: CurrencyRegistry) -> re.Pattern:
        """Pattern for a registry, rebuilt only when the registry object changes"""
        if self._cached_registry is not registry:
            self._cached_pattern = pattern_builder.build(registry)
            self._cached_registry = registry
        return self._cached_pattern

    def find_spans(
        self,
        text: str,
        config: ConversionConfig,
        registry: CurrencyRegistry,
        pattern: Optional[re.Pattern] = None
    ) -> List[MatchSpan]:
        pattern = pattern or self.pattern_for(registry)
        return [
            MatchSpan(
                matched_text=match.group(0),
                raw_amount_text=pattern_builder.amount_text(match),
                code=resolve(match.group(0), config, registry),
                start=match.start(),
                end=match.end()
            )
            for match in pattern.finditer(text)
        ]

    def plan(
        self,
        text: str,
        config: ConversionConfig,
        registry: CurrencyRegistry,
        rates: Optional[ExchangeRateTable],
        pattern: Optional[re.Pattern] = None
    ) -> List[ReplacementSpan]:
        """Compute replacements for a text without touching the store"""
        replacements = []

        for span in self.find_spans(text, config, registry, pattern):
            if span.code is None or span.code == config.target_code:
                continue

            try:
                amount = parse(span.raw_amount_text)
            except ParseError as e:
                self.logger.debug(f"Skipping span {span.matched_text!r}: {e}")
                continue

            display = convert(amount, span.code, config.target_code, rates, config, registry)
            replacements.append(ReplacementSpan(
                original=span.matched_text,
                replacement=f"{span.matched_text} ({display})",
                start=span.start,
                end=span.end
            ))

        return replacements

    def annotate(
        self,
        fragment_id: Hashable,
        text: str,
        config: ConversionConfig,
        registry: CurrencyRegistry,
        rates: Optional[ExchangeRateTable],
        pattern: Optional[re.Pattern] = None
    ) -> Tuple[str, bool]:
        """
        Annotate a fragment once

        A fragment that already has a record is returned unchanged; it must be
        restored before it can be annotated again. Replacements are spliced
        into the original text in a single pass.

        Returns:
            (new_text, changed)
        """
        if fragment_id in self.store:
            return text, False

        replacements = self.plan(text, config, registry, rates, pattern)
        if not replacements:
            return text, False

        pieces = []
        cursor = 0
        for span in replacements:
            pieces.append(text[cursor:span.start])
            pieces.append(span.replacement)
            cursor = span.end
        pieces.append(text[cursor:])
        new_text = "".join(pieces)

        self.store.record(fragment_id, text)
        self.logger.debug(f"Annotated fragment {fragment_id!r} with {len(replacements)} conversions")
        return new_text, True

    def restore(self, fragment_id: Hashable) -> Optional[str]:
        """Original text of a fragment, removing its record; None if not annotated"""
        return self.store.pop(fragment_id)

    def restore_all(self) -> Dict[Hashable, str]:
        """Original text of every annotated fragment; clears the store"""
        restored = self.store.drain()
        if restored:
            self.logger.info(f"Restored {len(restored)} annotated fragments")
        return restored
