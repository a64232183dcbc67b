from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from web3 import AsyncWeb3
from web3.exceptions import TimeExhausted

from ..domain import TransactionRecord, TxHandle
from ..errors import ExecutionReverted, TransportError

logger = logging.getLogger(__name__)


class TransactionTracker(ABC):
    @abstractmethod
    def add_transaction(self, record: TransactionRecord) -> None:
        ...

    @abstractmethod
    async def wait_for_transaction(self, tx: TxHandle, meta: dict[str, Any]) -> Any:
        """Wait for ``tx`` to be mined and return its receipt.

        Raises:
            ExecutionReverted: If the receipt reports a failed status.
            TransportError: If the receipt did not arrive in time.
        """
        ...


class Web3TransactionTracker(TransactionTracker):
    """Keeps registered transactions in memory and waits for receipts."""

    def __init__(
        self, w3: AsyncWeb3, timeout: float = 300.0, poll_latency: float = 2.0
    ):
        self.w3 = w3
        self.timeout = timeout
        self.poll_latency = poll_latency
        self.transactions: dict[str, TransactionRecord] = {}

    def add_transaction(self, record: TransactionRecord) -> None:
        self.transactions[record.hash.lower()] = record
        logger.info("Tracking transaction %s on %s", record.hash, record.network_name)

    async def wait_for_transaction(self, tx: TxHandle, meta: dict[str, Any]) -> Any:
        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx.hash, timeout=self.timeout, poll_latency=self.poll_latency
            )
        except TimeExhausted as e:
            raise TransportError(
                f"No receipt for {tx.hash} after {self.timeout}s",
                source=meta.get("network_name"),
            ) from e

        status = int(receipt["status"])
        record = self.transactions.get(tx.hash.lower())
        if record is not None:
            record.pending = False
            record.status = status

        if status == 0:
            raise ExecutionReverted(tx.hash)

        logger.info(
            "Transaction %s confirmed in block %s", tx.hash, receipt["blockNumber"]
        )
        return receipt
