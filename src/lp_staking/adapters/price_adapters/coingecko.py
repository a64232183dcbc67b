from __future__ import annotations

import logging
from decimal import Decimal

from ...constants import COINGECKO_IDS
from ...settings import StakingSettings
from .base import BasePriceAdapter
from .http import get_json_with_retry

logger = logging.getLogger(__name__)


class CoinGeckoAdapter(BasePriceAdapter):
    """USD prices from the CoinGecko simple price endpoint."""

    def __init__(self, config: StakingSettings):
        super().__init__(config)
        self.endpoint = config.coingecko_endpoint.rstrip("/")
        self.timeout = config.http_timeout_seconds
        self.api_key = (
            config.coingecko_api_key.get_secret_value()
            if config.coingecko_api_key
            else None
        )

    @property
    def adapter_name(self) -> str:
        return "coingecko"

    async def fetch_usd_price(self, symbol: str) -> Decimal | None:
        coin_id = COINGECKO_IDS.get(symbol.upper())
        if coin_id is None:
            logger.debug("No CoinGecko id for %s", symbol)
            return None

        headers = {"x-cg-demo-api-key": self.api_key} if self.api_key else None
        data = await get_json_with_retry(
            f"{self.endpoint}/simple/price",
            params={"ids": coin_id, "vs_currencies": "usd"},
            headers=headers,
            timeout=self.timeout,
        )
        usd = data.get(coin_id, {}).get("usd") if isinstance(data, dict) else None
        if usd is None:
            logger.warning("CoinGecko returned no USD price for %s", symbol)
            return None
        # str() keeps the JSON float's shortest repr instead of its binary expansion
        return self.validate_price(symbol, Decimal(str(usd)))
