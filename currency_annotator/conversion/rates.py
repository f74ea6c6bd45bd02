"""
Exchange-rate table
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from ..exceptions import RateFetchError


@dataclass(frozen=True)
class ExchangeRateTable:
    """Rates of each currency against one pivot currency, with fetch time"""
    base: str
    rates: Mapping[str, float]
    fetched_at: float = field(default_factory=time.time)

    def __post_init__(self):
        base = self.base.upper()
        rates: Dict[str, float] = {}
        for code, rate in self.rates.items():
            if isinstance(rate, bool) or not isinstance(rate, (int, float)) or rate <= 0:
                raise RateFetchError(f"Invalid rate for {code}: {rate!r}")
            rates[code.upper()] = float(rate)
        rates.setdefault(base, 1.0)

        object.__setattr__(self, "base", base)
        object.__setattr__(self, "rates", MappingProxyType(rates))

    def rate(self, code: str) -> Optional[Decimal]:
        """Rate as a Decimal, or None when the code is unknown"""
        value = self.rates.get(code)
        if value is None:
            return None
        return Decimal(str(value))

    def age_seconds(self, now: Optional[float] = None) -> float:
        return (now if now is not None else time.time()) - self.fetched_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base": self.base,
            "rates": dict(self.rates),
            "fetched_at": self.fetched_at
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExchangeRateTable":
        try:
            return cls(
                base=data["base"],
                rates=data["rates"],
                fetched_at=float(data["fetched_at"])
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise RateFetchError(f"Malformed rate table: {e}") from e
