from __future__ import annotations

from .coinbase import CoinbaseAdapter
from .coingecko import CoinGeckoAdapter
from .feed import PriceFeed, normalize_price_symbol

PRICE_ADAPTERS = [
    CoinGeckoAdapter,
    CoinbaseAdapter,
]

__all__ = [
    "PRICE_ADAPTERS",
    "CoinGeckoAdapter",
    "CoinbaseAdapter",
    "PriceFeed",
    "normalize_price_symbol",
]
