"""Contract read and write access."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3, Web3

from ..domain import TxHandle
from ..errors import TransportError

logger = logging.getLogger(__name__)


class ContractReader(ABC):
    """Read-only view calls against one contract."""

    address: str

    @abstractmethod
    async def read(self, fn_name: str, *args: Any) -> Any:
        """Call a view function.

        Raises:
            TransportError: If the call could not be completed.
        """
        ...


class BoundContract(ABC):
    """A contract bound to a signer."""

    @abstractmethod
    async def call(self, fn_name: str, *args: Any) -> TxHandle:
        """Sign and broadcast a state-changing call."""
        ...


class ContractWriter(ABC):
    """Write access to one contract, once connected to a signer."""

    address: str

    @abstractmethod
    def connect(self, signer: Any) -> BoundContract:
        ...


class Web3ContractReader(ContractReader):
    def __init__(self, w3: AsyncWeb3, address: str, abi: list[dict], label: str = ""):
        self.w3 = w3
        self.address = Web3.to_checksum_address(address)
        self.label = label or self.address
        self.contract = w3.eth.contract(address=self.address, abi=abi)

    async def read(self, fn_name: str, *args: Any) -> Any:
        fn = getattr(self.contract.functions, fn_name)
        try:
            return await fn(*args).call()
        except Exception as e:
            raise TransportError(
                f"{self.label}.{fn_name}() failed: {e}", source=self.label
            ) from e


class Web3SignedContract(BoundContract):
    def __init__(self, w3: AsyncWeb3, contract: Any, signer: LocalAccount):
        self.w3 = w3
        self.contract = contract
        self.signer = signer

    async def call(self, fn_name: str, *args: Any) -> TxHandle:
        fn = getattr(self.contract.functions, fn_name)(*args)
        sender = self.signer.address
        nonce = await self.w3.eth.get_transaction_count(sender, "pending")
        chain_id = await self.w3.eth.chain_id
        tx = await fn.build_transaction(
            {"from": sender, "nonce": nonce, "chainId": chain_id}
        )
        signed = self.signer.sign_transaction(tx)
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        hash_hex = Web3.to_hex(tx_hash)
        logger.info("Sent %s() to %s: %s", fn_name, self.contract.address, hash_hex)
        return TxHandle(hash=hash_hex)


class Web3ContractWriter(ContractWriter):
    def __init__(self, w3: AsyncWeb3, address: str, abi: list[dict]):
        self.w3 = w3
        self.address = Web3.to_checksum_address(address)
        self.contract = w3.eth.contract(address=self.address, abi=abi)

    def connect(self, signer: LocalAccount) -> BoundContract:
        return Web3SignedContract(self.w3, self.contract, signer)
