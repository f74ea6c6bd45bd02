"""
Currency registry: symbol/code tables and card-fee tables
"""

import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional

from ..exceptions import DataLoadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrencyRegistry:
    """Immutable currency vocabulary used by detection and conversion.

    ``symbols`` keeps the source insertion order, which is the priority order
    used when a match contains more than one known symbol.
    """
    symbols: Dict[str, str]
    code_symbols: Dict[str, str]
    fees: Dict[str, float]
    pivot_code: str = "USD"
    fee_overrides: Dict[str, Dict[str, float]] = field(default_factory=dict)
    presets: Dict[str, float] = field(default_factory=dict)

    @property
    def codes(self) -> List[str]:
        """Known currency codes in first-seen order, pivot last if not already present"""
        codes = list(dict.fromkeys(self.symbols.values()))
        if self.pivot_code not in codes:
            codes.append(self.pivot_code)
        return codes

    def display_symbol(self, code: str) -> str:
        """Symbol shown in front of a converted amount, falling back to the code"""
        return self.code_symbols.get(code) or code

    def with_presets(self, presets: Optional[Mapping[str, Any]]) -> "CurrencyRegistry":
        """Return a copy carrying the given user-defined fee presets"""
        return replace(self, presets=_validate_presets(presets or {}))


def load(
    symbol_table: Any,
    fee_table: Any,
    pivot_code: str = "USD",
    pivot_symbol: str = "$",
    presets: Optional[Mapping[str, Any]] = None
) -> CurrencyRegistry:
    """
    Build a registry from the two source documents

    Args:
        symbol_table: Mapping of symbol to currency code
        fee_table: Mapping of issuer to fee percent; mapping values are
            per-target-currency override tables keyed by currency code
        pivot_code: Code every exchange rate is expressed against
        pivot_symbol: Display symbol guaranteed for the pivot currency
        presets: User-defined fee presets (name to percent)

    Returns:
        Fully validated CurrencyRegistry

    Raises:
        DataLoadError: If either document is malformed
    """
    symbols = _validate_symbols(symbol_table)
    fees, overrides = _validate_fees(fee_table)

    pivot_code = (pivot_code or "").strip().upper()
    if not pivot_code:
        raise DataLoadError("Pivot currency code must not be empty")

    code_symbols: Dict[str, str] = {}
    for symbol, code in symbols.items():
        code_symbols.setdefault(code, symbol)
    if not code_symbols.get(pivot_code):
        code_symbols[pivot_code] = pivot_symbol or pivot_code

    registry = CurrencyRegistry(
        symbols=symbols,
        code_symbols=code_symbols,
        fees=fees,
        pivot_code=pivot_code,
        fee_overrides=overrides,
        presets=_validate_presets(presets or {})
    )

    logger.info(
        f"Loaded currency registry with {len(symbols)} symbols and {len(fees)} issuers",
        extra={"pivot_currency": pivot_code, "fee_overrides": sorted(overrides)}
    )
    return registry


def load_from_files(
    symbols_path: str,
    card_fees_path: str,
    pivot_code: str = "USD",
    pivot_symbol: str = "$"
) -> CurrencyRegistry:
    """Read both JSON documents from disk and build the registry"""
    return load(
        _read_json(symbols_path),
        _read_json(card_fees_path),
        pivot_code=pivot_code,
        pivot_symbol=pivot_symbol
    )


def _read_json(path: str) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)
    except OSError as e:
        raise DataLoadError(f"Could not read {path}: {e}", source=path) from e
    except json.JSONDecodeError as e:
        raise DataLoadError(f"Invalid JSON in {path}: {e}", source=path) from e


def _validate_symbols(symbol_table: Any) -> Dict[str, str]:
    if not isinstance(symbol_table, Mapping):
        raise DataLoadError("Symbol table must be a mapping of symbol to currency code")
    if not symbol_table:
        raise DataLoadError("Symbol table is empty")

    symbols: Dict[str, str] = {}
    for symbol, code in symbol_table.items():
        if not isinstance(symbol, str) or not symbol.strip():
            raise DataLoadError(f"Invalid currency symbol: {symbol!r}")
        if not isinstance(code, str) or not code.strip():
            raise DataLoadError(f"Invalid currency code for symbol {symbol!r}: {code!r}")
        symbols[symbol.strip()] = code.strip().upper()

    return symbols


def _is_percent(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0


def _validate_fees(fee_table: Any) -> tuple[Dict[str, float], Dict[str, Dict[str, float]]]:
    if not isinstance(fee_table, Mapping):
        raise DataLoadError("Fee table must be a mapping of issuer to fee percent")

    fees: Dict[str, float] = {}
    overrides: Dict[str, Dict[str, float]] = {}

    for key, value in fee_table.items():
        if not isinstance(key, str) or not key:
            raise DataLoadError(f"Invalid fee table key: {key!r}")

        if isinstance(value, Mapping):
            per_target: Dict[str, float] = {}
            for issuer, percent in value.items():
                if not isinstance(issuer, str) or not _is_percent(percent):
                    raise DataLoadError(f"Invalid fee override {key}/{issuer!r}: {percent!r}")
                per_target[issuer] = float(percent)
            overrides[key.upper()] = per_target
        elif _is_percent(value):
            fees[key] = float(value)
        else:
            raise DataLoadError(f"Invalid fee percent for issuer {key!r}: {value!r}")

    return fees, overrides


def _validate_presets(presets: Mapping[str, Any]) -> Dict[str, float]:
    valid: Dict[str, float] = {}
    for name, percent in presets.items():
        if not isinstance(name, str) or not name.strip():
            logger.warning(f"Ignoring fee preset with invalid name: {name!r}")
            continue
        if not _is_percent(percent):
            logger.warning(f"Ignoring fee preset {name!r} with invalid value: {percent!r}")
            continue
        valid[name.strip()] = float(percent)
    return valid
