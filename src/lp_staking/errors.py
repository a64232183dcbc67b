"""Exceptions shared across the staking package.

Read-path errors (``TransportError``, ``UndefinedMetric``) are converted into
absent values before they reach presentation code. Write-path errors end the
single action that raised them.
"""

from __future__ import annotations


class StakingError(Exception):
    """Base class for every error raised by this package."""


class TransportError(StakingError):
    """An RPC or HTTP read failed. The previous value stays usable."""

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source


class UndefinedMetric(StakingError):
    """A metric cannot be computed from the data currently known."""


class DivisionByZero(UndefinedMetric):
    """A fixed-point ratio was asked for with a zero denominator."""


class UserCancelled(StakingError):
    """The user declined the confirmation step."""


class WrongNetwork(StakingError):
    """The connected network is not the one the action targets."""

    def __init__(self, expected_chain_id: int, actual_chain_id: int | None = None):
        super().__init__(
            f"Connected to chain {actual_chain_id}, expected {expected_chain_id}"
        )
        self.expected_chain_id = expected_chain_id
        self.actual_chain_id = actual_chain_id


class ExecutionReverted(StakingError):
    """A submitted transaction was mined with a failed status."""

    def __init__(self, tx_hash: str, message: str | None = None):
        super().__init__(message or f"Transaction {tx_hash} reverted")
        self.tx_hash = tx_hash


class ActionPreconditionError(StakingError):
    """An action was requested while its readiness checks do not pass."""
