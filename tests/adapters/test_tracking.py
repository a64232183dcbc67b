from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from web3.exceptions import TimeExhausted

from lp_staking.adapters.tracking import Web3TransactionTracker
from lp_staking.domain import TransactionRecord, TxHandle
from lp_staking.errors import ExecutionReverted, TransportError

TX_HASH = "0x" + "CD" * 32


@pytest.fixture
def w3():
    w3 = MagicMock()
    w3.eth.wait_for_transaction_receipt = AsyncMock()
    return w3


@pytest.mark.asyncio
async def test_confirmed_receipt_updates_record(w3):
    w3.eth.wait_for_transaction_receipt.return_value = {"status": 1, "blockNumber": 42}
    tracker = Web3TransactionTracker(w3, timeout=5, poll_latency=0.1)
    tracker.add_transaction(TransactionRecord(hash=TX_HASH, network_name="polygon"))

    receipt = await tracker.wait_for_transaction(TxHandle(TX_HASH), {})

    assert receipt["blockNumber"] == 42
    record = tracker.transactions[TX_HASH.lower()]
    assert record.pending is False
    assert record.status == 1
    w3.eth.wait_for_transaction_receipt.assert_awaited_once_with(
        TX_HASH, timeout=5, poll_latency=0.1
    )


@pytest.mark.asyncio
async def test_reverted_receipt_raises(w3):
    w3.eth.wait_for_transaction_receipt.return_value = {"status": 0, "blockNumber": 42}
    tracker = Web3TransactionTracker(w3)
    tracker.add_transaction(TransactionRecord(hash=TX_HASH, network_name="polygon"))

    with pytest.raises(ExecutionReverted):
        await tracker.wait_for_transaction(TxHandle(TX_HASH), {})
    assert tracker.transactions[TX_HASH.lower()].status == 0


@pytest.mark.asyncio
async def test_timeout_is_transport_error(w3):
    w3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted("slow")
    tracker = Web3TransactionTracker(w3, timeout=1)

    with pytest.raises(TransportError):
        await tracker.wait_for_transaction(TxHandle(TX_HASH), {"network_name": "polygon"})
