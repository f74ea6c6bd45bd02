"""
Parsing of raw matched amount tokens
"""

import re
from decimal import Decimal, InvalidOperation

from ..exceptions import ParseError

_PLAIN_DECIMAL = re.compile(r'^\d+(?:\.\d+)?$')


def parse(raw_amount_text: str) -> Decimal:
    """
    Parse a matched amount token into a Decimal

    Every comma is treated as a thousands separator and removed; a comma used
    as decimal separator is therefore mis-read ("1.234,56" -> 1.23456).

    Raises:
        ParseError: If the residual text is not a non-negative decimal
    """
    if raw_amount_text is None:
        raise ParseError("No amount text", raw_text="")

    cleaned = raw_amount_text.strip().replace(',', '')

    # Decimal() alone would also accept "NaN", "1e5" and signs
    if not _PLAIN_DECIMAL.match(cleaned):
        raise ParseError(f"Not a plain decimal amount: {raw_amount_text!r}", raw_text=raw_amount_text)

    try:
        return Decimal(cleaned)
    except InvalidOperation as e:
        raise ParseError(f"Failed to parse amount {raw_amount_text!r}: {e}", raw_text=raw_amount_text) from e
