from __future__ import annotations

import logging
from decimal import Decimal

from ...settings import StakingSettings
from .base import BasePriceAdapter
from .http import get_json_with_retry

logger = logging.getLogger(__name__)


class CoinbaseAdapter(BasePriceAdapter):
    """USD spot prices from the Coinbase public API."""

    def __init__(self, config: StakingSettings):
        super().__init__(config)
        self.endpoint = config.coinbase_endpoint.rstrip("/")
        self.timeout = config.http_timeout_seconds

    @property
    def adapter_name(self) -> str:
        return "coinbase"

    async def fetch_usd_price(self, symbol: str) -> Decimal | None:
        data = await get_json_with_retry(
            f"{self.endpoint}/prices/{symbol.upper()}-USD/spot",
            timeout=self.timeout,
        )
        amount = (data.get("data") or {}).get("amount") if isinstance(data, dict) else None
        if amount is None:
            logger.warning("Coinbase returned no spot price for %s", symbol)
            return None
        return self.validate_price(symbol, Decimal(amount))
