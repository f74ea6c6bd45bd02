"""
Periodic exchange-rate fetching with a stale-but-available fallback
"""

import json
import logging
import os
import time
from typing import Optional

import httpx

from ..config import settings
from ..exceptions import RateFetchError
from .rates import ExchangeRateTable


class RateFetcher:
    """Fetches rate tables against the pivot currency and keeps the last good one"""

    def __init__(
        self,
        base: str = None,
        url_template: str = None,
        cache_path: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.logger = logging.getLogger(__name__)
        self.base = (base or settings.pivot_currency).upper()
        self.url_template = url_template or settings.rates_url
        self.cache_path = cache_path or settings.rates_cache_path
        self.timeout = timeout if timeout is not None else settings.rates_timeout
        self._transport = transport
        self.current: Optional[ExchangeRateTable] = None
        self.last_error: Optional[str] = None

    async def refresh(self) -> Optional[ExchangeRateTable]:
        """
        Fetch a fresh table, falling back to the previous one on failure

        Never raises. On failure the previous table and its timestamp are
        kept; if there is none yet the cache file is tried.
        """
        try:
            table = await self.fetch()
        except RateFetchError as e:
            self.last_error = str(e)
            if self.current is not None:
                self.logger.warning(f"Rate refresh failed, keeping rates from {self.current.fetched_at}: {e}")
                return self.current

            cached = self.load_cache()
            if cached is not None:
                self.logger.warning(f"Rate refresh failed, using cached rates from {cached.fetched_at}: {e}")
                self.current = cached
            else:
                self.logger.error(f"Rate refresh failed and no cached rates are available: {e}")
            return self.current

        self.current = table
        self.last_error = None
        self.save_cache(table)
        self.logger.info("Exchange rates updated", extra={
            "base": table.base,
            "rate_count": len(table.rates),
            "fetched_at": table.fetched_at
        })
        return table

    async def fetch(self) -> ExchangeRateTable:
        """Fetch and validate one table; raises RateFetchError on any failure"""
        url = self.url_template.format(base=self.base)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            raise RateFetchError(f"Request to {url} failed: {e}") from e
        except ValueError as e:
            raise RateFetchError(f"Invalid JSON from {url}: {e}") from e

        if not isinstance(payload, dict) or not isinstance(payload.get("rates"), dict):
            raise RateFetchError(f"Unexpected payload from {url}")
        if payload.get("result", "success") != "success":
            raise RateFetchError(f"Rate provider reported {payload.get('result')!r}")

        base = str(payload.get("base_code") or payload.get("base") or self.base)
        if base.upper() != self.base:
            raise RateFetchError(f"Rates are based on {base}, expected {self.base}")

        return ExchangeRateTable(base=self.base, rates=payload["rates"], fetched_at=time.time())

    def load_cache(self) -> Optional[ExchangeRateTable]:
        try:
            with open(self.cache_path, "r", encoding="utf-8") as fh:
                table = ExchangeRateTable.from_dict(json.load(fh))
        except FileNotFoundError:
            return None
        except (OSError, ValueError, RateFetchError) as e:
            self.logger.warning(f"Ignoring unreadable rate cache {self.cache_path}: {e}")
            return None

        if table.base != self.base:
            self.logger.warning(f"Ignoring cached rates based on {table.base}")
            return None
        return table

    def save_cache(self, table: ExchangeRateTable):
        try:
            os.makedirs(os.path.dirname(self.cache_path) or ".", exist_ok=True)
            tmp_path = f"{self.cache_path}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as fh:
                json.dump(table.to_dict(), fh)
            os.replace(tmp_path, self.cache_path)
        except OSError as e:
            self.logger.warning(f"Could not write rate cache {self.cache_path}: {e}")
