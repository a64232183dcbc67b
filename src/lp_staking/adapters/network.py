from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from web3 import AsyncWeb3

logger = logging.getLogger(__name__)


class NetworkConnector(ABC):
    @abstractmethod
    async def check_connected_network_id(self, chain_id: int) -> bool:
        """Return True when the active connection is on ``chain_id``."""
        ...


class Web3NetworkConnector(NetworkConnector):
    """Compares the RPC endpoint's chain id with the expected one.

    A console session cannot switch networks, so a mismatch is only reported.
    """

    def __init__(self, w3: AsyncWeb3):
        self.w3 = w3

    async def check_connected_network_id(self, chain_id: int) -> bool:
        connected = await self.w3.eth.chain_id
        if connected != chain_id:
            logger.warning(
                "Connected to chain %d but chain %d is required; switch the RPC endpoint",
                connected,
                chain_id,
            )
            return False
        return True
