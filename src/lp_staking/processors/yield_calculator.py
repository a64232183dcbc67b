"""Yield metrics derived from a staking snapshot.

Every function here is pure. Inputs and outputs are three-state results:
an output is ``Known`` only when every input it needs is known, so a
missing input never turns into a zero. Expired programs are the one place
where a true zero is established without the other inputs.
"""

from __future__ import annotations

from typing import Any

from ..constants import DAYS_PER_YEAR, SECONDS_PER_DAY, TOTAL_AMOUNTS_DECIMALS
from ..domain import (
    UNKNOWN,
    DerivedMetrics,
    Failed,
    Known,
    PriceQuote,
    Result,
    StakingSnapshot,
    StakingTokens,
    Unknown,
)
from ..errors import DivisionByZero
from ..units import ratio, rescale, scale_to_18


def _missing(*results: Result[Any]) -> Unknown | Failed | None:
    """First failure among ``results``, else UNKNOWN if any is unknown, else None."""
    failures = [r for r in results if isinstance(r, Failed)]
    if failures:
        return failures[0]
    if any(isinstance(r, Unknown) for r in results):
        return UNKNOWN
    return None


def is_rewards_expired(period_finish: Result[int], now: int) -> Result[bool]:
    """Whether the reward period has ended at unix time ``now``."""
    if isinstance(period_finish, Known):
        return Known(now > period_finish.value)
    return period_finish


def total_rewards_per_day(
    reward_rate_per_second: Result[int], expired: Result[bool]
) -> Result[int]:
    if isinstance(expired, Known) and expired.value:
        return Known(0)
    missing = _missing(expired, reward_rate_per_second)
    if missing is not None:
        return missing
    return Known(reward_rate_per_second.value * SECONDS_PER_DAY)


def user_rewards_per_day(
    total_per_day: Result[int],
    user_stake_balance: Result[int],
    total_staked: Result[int],
    expired: Result[bool],
) -> Result[int]:
    """The user's pro-rata share of the daily rewards.

    Absent (not zero) while the user has no stake or nothing is staked.
    """
    if isinstance(expired, Known) and expired.value:
        return Known(0)
    missing = _missing(expired, total_per_day, user_stake_balance, total_staked)
    if missing is not None:
        return missing

    stake = user_stake_balance.value
    total = total_staked.value
    if total == 0:
        return Failed("total staked is zero")
    if stake == 0:
        return Failed("no stake")
    return Known(total_per_day.value * stake // total)


def apr(
    total_per_day: Result[int],
    reward_token_price: Result[PriceQuote],
    staking_token_price: Result[PriceQuote],
    staked_total_valuation: Result[int],
    tokens: StakingTokens,
) -> Result[int]:
    """Annual percentage rate as an 18-decimal fraction (1e18 is 100%).

    ``staked_total_valuation`` is the underlying value of all staked LP
    tokens in canonical token decimals.
    """
    missing = _missing(
        total_per_day, reward_token_price, staking_token_price, staked_total_valuation
    )
    if missing is not None:
        return missing

    valuation = staked_total_valuation.value
    if valuation <= 0:
        return Known(0)

    rewards_18d = scale_to_18(total_per_day.value, tokens.rewards.decimals)
    staked_18d = scale_to_18(valuation, tokens.canonical.decimals)
    try:
        daily = ratio(
            rewards_18d * reward_token_price.value.scaled,
            staked_18d * staking_token_price.value.scaled,
        )
    except DivisionByZero as e:
        return Failed(str(e))
    return Known(daily * DAYS_PER_YEAR)


def staked_position_usd_value(
    user_stake_balance: Result[int],
    user_staked_valuation: Result[int],
    earned_rewards: Result[int],
    staking_token_price: Result[PriceQuote],
    reward_token_price: Result[PriceQuote],
    tokens: StakingTokens,
) -> Result[int]:
    """USD value (18 decimals) of the staked LP position plus unclaimed rewards."""
    missing = _missing(
        user_stake_balance,
        user_staked_valuation,
        earned_rewards,
        staking_token_price,
        reward_token_price,
    )
    if missing is not None:
        return missing
    if user_stake_balance.value <= 0:
        return Failed("no stake")

    staking_decimals = tokens.staking.decimals
    token_price = rescale(
        staking_token_price.value.scaled, TOTAL_AMOUNTS_DECIMALS, staking_decimals
    )
    reward_price = rescale(
        reward_token_price.value.scaled, TOTAL_AMOUNTS_DECIMALS, staking_decimals
    )
    staked_18d = scale_to_18(user_staked_valuation.value, tokens.canonical.decimals)
    earned_18d = scale_to_18(earned_rewards.value, tokens.rewards.decimals)
    total = staked_18d * token_price + earned_18d * reward_price
    return Known(total // 10**staking_decimals)


def derive_metrics(
    snapshot: StakingSnapshot, tokens: StakingTokens | None, now: int
) -> DerivedMetrics:
    """Recompute every derived metric from ``snapshot``."""
    expired = is_rewards_expired(snapshot.period_finish_timestamp, now)
    total_per_day = total_rewards_per_day(snapshot.reward_rate_per_second, expired)
    user_per_day = user_rewards_per_day(
        total_per_day, snapshot.user_stake_balance, snapshot.total_staked, expired
    )

    if tokens is None:
        return DerivedMetrics(
            total_rewards_per_day=total_per_day,
            user_rewards_per_day=user_per_day,
            is_rewards_expired=expired,
        )

    return DerivedMetrics(
        apr=apr(
            total_per_day,
            snapshot.reward_token_price,
            snapshot.staking_token_price,
            snapshot.staked_total_valuation,
            tokens,
        ),
        total_rewards_per_day=total_per_day,
        user_rewards_per_day=user_per_day,
        staked_position_usd_value=staked_position_usd_value(
            snapshot.user_stake_balance,
            snapshot.user_staked_valuation,
            snapshot.earned_rewards,
            snapshot.staking_token_price,
            snapshot.reward_token_price,
            tokens,
        ),
        is_rewards_expired=expired,
    )
