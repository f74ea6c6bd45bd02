"""
Conversion engine: holds the current context and runs scans over fragments
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import Dict, Hashable, Iterable, List, Optional, Tuple, Union

from ..config import settings
from ..conversion.models import ConversionConfig, SettingsUpdate, default_config
from ..conversion.rates import ExchangeRateTable
from ..detection import pattern_builder
from ..detection.registry import CurrencyRegistry, load_from_files
from ..exceptions import DataLoadError, EngineUnavailableError
from .text_annotator import TextAnnotator


@dataclass(frozen=True)
class EngineContext:
    """Everything a scan depends on; swapped whole, never edited in place"""
    config: ConversionConfig
    registry: CurrencyRegistry
    pattern: re.Pattern
    rates: Optional[ExchangeRateTable] = None


@dataclass
class FragmentResult:
    fragment_id: Hashable
    text: str
    changed: bool


class ConversionEngine:
    """
    Single-threaded engine over an explicit, atomically swapped context

    Scans must be serialized by the caller. Settings and registry changes
    first restore all annotated fragments, so a fragment is only ever
    annotated from its original text.
    """

    def __init__(
        self,
        registry: Optional[CurrencyRegistry],
        config: Optional[ConversionConfig] = None,
        rates: Optional[ExchangeRateTable] = None,
        annotator: Optional[TextAnnotator] = None,
        load_error: Optional[DataLoadError] = None
    ):
        self.logger = logging.getLogger(__name__)
        self.annotator = annotator or TextAnnotator()
        self.load_error = load_error
        self._config = config or default_config()
        self._rates = rates
        self._context: Optional[EngineContext] = None

        if registry is not None:
            self._context = EngineContext(
                config=self._config,
                registry=registry,
                pattern=pattern_builder.build(registry),
                rates=rates
            )

    @classmethod
    def from_settings(cls, config: Optional[ConversionConfig] = None) -> "ConversionEngine":
        """Load the registry named in settings; an unusable registry leaves the engine inert"""
        try:
            registry = load_from_files(
                settings.symbols_path,
                settings.card_fees_path,
                pivot_code=settings.pivot_currency,
                pivot_symbol=settings.pivot_symbol
            )
        except DataLoadError as e:
            logging.getLogger(__name__).error(f"Currency registry unavailable, engine is inert: {e}", extra={
                "source": e.source
            })
            return cls(registry=None, config=config, load_error=e)

        return cls(registry=registry, config=config)

    @property
    def context(self) -> Optional[EngineContext]:
        return self._context

    @property
    def config(self) -> ConversionConfig:
        return self._context.config if self._context else self._config

    @property
    def rates(self) -> Optional[ExchangeRateTable]:
        return self._context.rates if self._context else self._rates

    @property
    def inert(self) -> bool:
        return self._context is None

    def _require_context(self) -> EngineContext:
        if self._context is None:
            raise EngineUnavailableError(
                f"Currency registry is not loaded: {self.load_error}",
                cause=self.load_error
            )
        return self._context

    def scan(self, fragments: Iterable[Tuple[Hashable, str]]) -> List[FragmentResult]:
        """
        Annotate every supplied (fragment_id, text) pair

        Raises:
            EngineUnavailableError: If the registry failed to load
        """
        context = self._require_context()
        results = []

        for fragment_id, text in fragments:
            # Drop results once conversion has been switched off mid-scan
            if not self._context.config.active:
                results.append(FragmentResult(fragment_id, text, False))
                continue

            new_text, changed = self.annotator.annotate(
                fragment_id,
                text,
                context.config,
                context.registry,
                context.rates,
                pattern=context.pattern
            )
            results.append(FragmentResult(fragment_id, new_text, changed))

        changed_count = sum(1 for result in results if result.changed)
        if changed_count:
            self.logger.info(f"Scan annotated {changed_count} of {len(results)} fragments")
        return results

    def restore(self, fragment_id: Hashable) -> Optional[str]:
        return self.annotator.restore(fragment_id)

    def restore_all(self) -> Dict[Hashable, str]:
        return self.annotator.restore_all()

    def apply_settings(self, update: Union[SettingsUpdate, ConversionConfig]) -> Dict[Hashable, str]:
        """
        Replace the whole conversion config

        All annotated fragments are restored first; the returned originals let
        the host re-supply them for a fresh scan when conversion stays active.
        """
        if isinstance(update, SettingsUpdate):
            config = update.to_config()
            presets = update.fee_presets
        else:
            config = update
            presets = None

        restored = self.restore_all()
        self._config = config

        if self._context is not None:
            registry = self._context.registry
            if presets is not None:
                registry = registry.with_presets(presets)
            self._context = replace(self._context, config=config, registry=registry)

        self.logger.info("Conversion settings updated", extra={
            "active": config.active,
            "source_mode": config.source_mode,
            "target_code": config.target_code,
            "fee_selector": config.fee_selector,
            "restored": len(restored)
        })
        return restored

    def update_rates(self, rates: Optional[ExchangeRateTable]) -> bool:
        """
        Swap in a new rate table; a missing or identical table is a no-op

        Annotated fragments keep their records and amounts. Only fragments
        annotated after the swap use the new table.
        """
        if rates is None or rates is self.rates:
            return False

        self._rates = rates
        if self._context is not None:
            self._context = replace(self._context, rates=rates)

        self.logger.info("Exchange rates swapped", extra={
            "base": rates.base,
            "fetched_at": rates.fetched_at
        })
        return True

    def update_registry(self, registry: CurrencyRegistry) -> Dict[Hashable, str]:
        """Swap in a new registry, rebuilding the pattern; clears any load error"""
        restored = self.restore_all()
        if self._context is not None and self._context.registry.presets:
            registry = registry.with_presets(self._context.registry.presets)
        self._context = EngineContext(
            config=self.config,
            registry=registry,
            pattern=pattern_builder.build(registry),
            rates=self.rates
        )
        self.load_error = None

        self.logger.info("Currency registry swapped", extra={
            "symbols": len(registry.symbols),
            "restored": len(restored)
        })
        return restored
