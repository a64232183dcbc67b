from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal

from ...settings import StakingSettings


class BasePriceAdapter(ABC):
    """Abstract base class for USD price sources."""

    def __init__(self, config: StakingSettings):
        """Initialize the adapter with configuration."""
        self.config = config

    @property
    @abstractmethod
    def adapter_name(self) -> str:
        """Return the name of this adapter."""
        ...

    @abstractmethod
    async def fetch_usd_price(self, symbol: str) -> Decimal | None:
        """Return the USD price of ``symbol``, or None if this source has none."""
        ...

    def validate_price(self, symbol: str, price: Decimal) -> Decimal:
        """Raise if a source returned a non-positive price."""
        if not price.is_finite() or price <= 0:
            raise ValueError(
                f"{self.adapter_name} returned non-positive price for {symbol}: {price}"
            )
        return price
