from __future__ import annotations

from abc import ABC, abstractmethod

from .contracts import ContractReader

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class AmmValuator(ABC):
    """Values LP tokens in terms of the pool's underlying assets."""

    @abstractmethod
    async def calculate_total_amount_for_lp_token(self, lp_amount: int) -> int:
        """Underlying amount (canonical token decimals) redeemable for ``lp_amount``."""
        ...

    @abstractmethod
    async def canonical_token_address(self) -> str:
        """Address of the pool asset valuations are expressed in."""
        ...


class SwapValuator(AmmValuator):
    """Two-asset stable-swap pool valuation.

    Both pool assets share the canonical token's decimals, so the amounts
    returned by ``calculateRemoveLiquidity`` can be summed directly.
    """

    def __init__(self, swap: ContractReader):
        self.swap = swap

    async def calculate_total_amount_for_lp_token(self, lp_amount: int) -> int:
        if lp_amount <= 0:
            return 0
        amounts = await self.swap.read("calculateRemoveLiquidity", ZERO_ADDRESS, lp_amount)
        return sum(int(amount) for amount in amounts)

    async def canonical_token_address(self) -> str:
        return await self.swap.read("getToken", 0)
