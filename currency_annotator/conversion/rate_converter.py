"""
Currency conversion through the pivot currency, with card-fee surcharge
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from babel.numbers import format_decimal

from ..config import settings
from ..detection.registry import CurrencyRegistry
from .models import CUSTOM_FEE, ConversionConfig
from .rates import ExchangeRateTable

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


def resolve_fee_percent(config: ConversionConfig, registry: CurrencyRegistry) -> float:
    """
    Surcharge percent for the selected issuer

    ``custom`` uses the configured custom percent. Otherwise the first hit of:
    the per-target override for the issuer, the issuer's global fee, a user
    preset of that name; zero when none applies.
    """
    selector = config.fee_selector

    if selector == CUSTOM_FEE:
        return config.custom_fee_percent

    overrides = registry.fee_overrides.get(config.target_code, {})
    if selector in overrides:
        return overrides[selector]

    if selector in registry.fees:
        return registry.fees[selector]

    if selector in registry.presets:
        return registry.presets[selector]

    return 0.0


def format_amount(amount: Decimal, locale: Optional[str] = None) -> str:
    """Round half-up to whole units and group thousands for display"""
    rounded = amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return format_decimal(rounded, format="#,##0", locale=locale or settings.display_locale)


def convert(
    amount: Decimal,
    source_code: str,
    target_code: str,
    rates: Optional[ExchangeRateTable],
    config: ConversionConfig,
    registry: CurrencyRegistry
) -> str:
    """
    Convert an amount and format it for display

    Args:
        amount: Parsed source amount
        source_code: Currency the amount is in
        target_code: Currency to display
        rates: Current rate table (may be None before the first fetch)
        config: Conversion config carrying the fee selection
        registry: Registry supplying fee tables and display symbols

    Returns:
        Display string such as "¥1,500", or "N/A" when a rate is missing
    """
    source_rate = rates.rate(source_code) if rates else None
    target_rate = rates.rate(target_code) if rates else None

    if source_rate is None or target_rate is None:
        logger.debug(f"Missing rate for {source_code} -> {target_code}")
        return NOT_AVAILABLE

    converted = amount / source_rate * target_rate

    fee_percent = resolve_fee_percent(config, registry)
    if fee_percent > 0:
        converted *= 1 + Decimal(str(fee_percent)) / 100

    return f"{registry.display_symbol(target_code)}{format_amount(converted)}"
