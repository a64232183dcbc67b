from __future__ import annotations

import logging
import time
from decimal import Decimal

from ...constants import PRICE_SYMBOL_ALIASES
from .base import BasePriceAdapter

logger = logging.getLogger(__name__)


def normalize_price_symbol(symbol: str) -> str:
    """Map wrapped and bridged symbols to the asset they track."""
    upper = symbol.strip().upper()
    return PRICE_SYMBOL_ALIASES.get(upper, upper)


class PriceFeed:
    """Walks price adapters in order and returns the first USD price found.

    Successful lookups are cached for ``cache_ttl`` seconds.
    """

    def __init__(self, adapters: list[BasePriceAdapter], cache_ttl: float = 300.0):
        self.adapters = adapters
        self.cache_ttl = cache_ttl
        self._cache: dict[str, tuple[float, Decimal]] = {}

    async def get_price_by_token_symbol(self, symbol: str) -> Decimal | None:
        key = normalize_price_symbol(symbol)

        cached = self._cache.get(key)
        if cached is not None and time.monotonic() - cached[0] < self.cache_ttl:
            return cached[1]

        for adapter in self.adapters:
            try:
                price = await adapter.fetch_usd_price(key)
            except Exception as e:
                logger.warning(
                    "Price adapter '%s' failed for %s: %s", adapter.adapter_name, key, e
                )
                continue
            if price is not None:
                logger.debug("Price for %s from %s: %s", key, adapter.adapter_name, price)
                self._cache[key] = (time.monotonic(), price)
                return price

        logger.warning("No price source returned a USD price for %s", key)
        return None
