from __future__ import annotations

from .amm import AmmValuator, SwapValuator
from .contracts import (
    BoundContract,
    ContractReader,
    ContractWriter,
    Web3ContractReader,
    Web3ContractWriter,
)
from .network import NetworkConnector, Web3NetworkConnector
from .price_adapters import PRICE_ADAPTERS, PriceFeed
from .prompt import (
    AutoConfirmPrompt,
    ConfirmationPrompt,
    ConfirmationRequest,
    ConsolePrompt,
)
from .tracking import TransactionTracker, Web3TransactionTracker

__all__ = [
    "PRICE_ADAPTERS",
    "AmmValuator",
    "AutoConfirmPrompt",
    "BoundContract",
    "ConfirmationPrompt",
    "ConfirmationRequest",
    "ConsolePrompt",
    "ContractReader",
    "ContractWriter",
    "NetworkConnector",
    "PriceFeed",
    "SwapValuator",
    "TransactionTracker",
    "Web3ContractReader",
    "Web3ContractWriter",
    "Web3NetworkConnector",
    "Web3TransactionTracker",
]
