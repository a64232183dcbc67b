"""Domain models for staking positions and actions."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Generic, TypeVar

from ..units import WORKING_DECIMALS, amount_to_units

T = TypeVar("T")


@dataclass(frozen=True)
class Known(Generic[T]):
    """A value that has been fetched or derived."""

    value: T


@dataclass(frozen=True)
class Unknown:
    """Not fetched yet, or not derivable from what is known."""


@dataclass(frozen=True)
class Failed:
    """The value could not be fetched or derived; ``reason`` says why."""

    reason: str


UNKNOWN = Unknown()

Result = Known[T] | Unknown | Failed


def is_known(result: Result[Any]) -> bool:
    return isinstance(result, Known)


def value_or_none(result: Result[T]) -> T | None:
    return result.value if isinstance(result, Known) else None


@dataclass(frozen=True)
class Token:
    """An ERC20 token resolved for one network."""

    address: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class PriceQuote:
    """USD price for a token symbol."""

    symbol: str
    price: Decimal

    @property
    def scaled(self) -> int:
        """The price as an 18-decimal fixed-point integer."""
        return amount_to_units(str(self.price), WORKING_DECIMALS)


@dataclass(frozen=True)
class StakingTokens:
    """Tokens involved in one staking program.

    ``canonical`` is the AMM asset the LP token is valued in.
    """

    staking: Token
    rewards: Token
    canonical: Token


@dataclass(frozen=True)
class StakingSnapshot:
    """Independently fetched values describing a staking position.

    Fields are never assumed to be consistent with one another.
    """

    user_stake_balance: Result[int] = UNKNOWN
    total_staked: Result[int] = UNKNOWN
    earned_rewards: Result[int] = UNKNOWN
    reward_rate_per_second: Result[int] = UNKNOWN
    period_finish_timestamp: Result[int] = UNKNOWN
    lp_balance: Result[int] = UNKNOWN
    allowance: Result[int] = UNKNOWN
    staking_token_price: Result[PriceQuote] = UNKNOWN
    reward_token_price: Result[PriceQuote] = UNKNOWN
    staked_total_valuation: Result[int] = UNKNOWN
    user_staked_valuation: Result[int] = UNKNOWN


@dataclass(frozen=True)
class DerivedMetrics:
    """Values derived from a snapshot; recomputed, never stored."""

    apr: Result[int] = UNKNOWN
    total_rewards_per_day: Result[int] = UNKNOWN
    user_rewards_per_day: Result[int] = UNKNOWN
    staked_position_usd_value: Result[int] = UNKNOWN
    is_rewards_expired: Result[bool] = UNKNOWN


class ActionKind(str, Enum):
    APPROVE = "approve"
    STAKE = "stake"
    WITHDRAW = "withdraw"
    CLAIM = "claim"


class ActionState(str, Enum):
    IDLE = "idle"
    NETWORK_CHECK_PENDING = "network_check_pending"
    AWAITING_USER_CONFIRMATION = "awaiting_user_confirmation"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ActionState.CONFIRMED, ActionState.FAILED)


@dataclass
class PendingAction:
    """One user-initiated action, owned by the orchestrator while in flight."""

    kind: ActionKind
    state: ActionState = ActionState.IDLE
    params: dict[str, Any] = field(default_factory=dict)
    tx_hash: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class TxHandle:
    """A broadcast transaction."""

    hash: str


@dataclass
class TransactionRecord:
    """A transaction registered with the tracker."""

    hash: str
    network_name: str
    token: Token | None = None
    pending: bool = True
    status: int | None = None
