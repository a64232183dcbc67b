from __future__ import annotations

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from lp_staking.domain import UNKNOWN, Failed, Known, PriceQuote
from lp_staking.errors import TransportError
from lp_staking.position.reader import LivePositionReader, WatchContext
from lp_staking.processors.yield_calculator import derive_metrics

STAKING_REWARDS = "0x00000000000000000000000000000000000000a1"
LP_TOKEN = "0x00000000000000000000000000000000000000b2"
REWARD_TOKEN = "0x00000000000000000000000000000000000000c3"
CANONICAL = "0x00000000000000000000000000000000000000d4"
ALICE = "0x00000000000000000000000000000000000A11CE"
BOB = "0x0000000000000000000000000000000000000B0B"

TOKEN_INFO = {
    LP_TOKEN: ("HOP-LP-USDC", 18),
    REWARD_TOKEN: ("WMATIC", 18),
    CANONICAL: ("USDC", 6),
}


class FakeErc20:
    def __init__(self, address: str, balances: dict[str, int], allowance: int = 0):
        self.address = address
        self.balances = balances
        self.allowance = allowance

    async def read(self, fn_name, *args):
        symbol, decimals = TOKEN_INFO[self.address]
        if fn_name == "symbol":
            return symbol
        if fn_name == "decimals":
            return decimals
        if fn_name == "balanceOf":
            return self.balances.get(args[0], 0)
        if fn_name == "allowance":
            return self.allowance
        raise AssertionError(f"unexpected call {fn_name}")


class FakeStakingRewards:
    def __init__(self, stakes: dict[str, int]):
        self.address = STAKING_REWARDS
        self.stakes = stakes
        self.fail: set[str] = set()
        self.calls: list[str] = []

    async def read(self, fn_name, *args):
        self.calls.append(fn_name)
        if fn_name in self.fail:
            raise TransportError(f"{fn_name} failed", source="StakingRewards")
        return {
            "stakingToken": LP_TOKEN,
            "rewardsToken": REWARD_TOKEN,
            "earned": 5 * 10**18,
            "rewardRate": 10**18,
            "periodFinish": 2_000_000_000,
            "balanceOf": self.stakes.get(args[0], 0) if args else 0,
        }[fn_name]


@pytest.fixture
def staking_rewards():
    return FakeStakingRewards({ALICE: 1000 * 10**18, BOB: 10 * 10**18})


@pytest.fixture
def lp_token():
    return FakeErc20(
        LP_TOKEN,
        {STAKING_REWARDS: 4000 * 10**18, ALICE: 50 * 10**18},
        allowance=10**30,
    )


@pytest.fixture
def amm():
    amm = MagicMock()
    amm.canonical_token_address = AsyncMock(return_value=CANONICAL)
    amm.calculate_total_amount_for_lp_token = AsyncMock(
        side_effect=lambda amount: amount // 10**12
    )
    return amm


@pytest.fixture
def price_feed():
    feed = MagicMock()
    feed.get_price_by_token_symbol = AsyncMock(return_value=Decimal("1"))
    return feed


@pytest.fixture
def reader(staking_rewards, lp_token, amm, price_feed):
    tokens = {
        LP_TOKEN: lp_token,
        REWARD_TOKEN: FakeErc20(REWARD_TOKEN, {}),
        CANONICAL: FakeErc20(CANONICAL, {}),
    }
    return LivePositionReader(
        staking_rewards,
        amm,
        price_feed,
        tokens.__getitem__,
        reward_price_symbol="MATIC",
        poll_interval=0.01,
        clock=lambda: 1_900_000_000,
    )


FIELDS = (
    "user_stake_balance",
    "total_staked",
    "earned_rewards",
    "lp_balance",
    "allowance",
    "reward_rate_per_second",
    "period_finish_timestamp",
    "staking_token_price",
    "reward_token_price",
    "staked_total_valuation",
    "user_staked_valuation",
)


@pytest.mark.asyncio
async def test_resolves_tokens_once(reader, amm):
    tokens = await reader.resolve_tokens()
    again = await reader.resolve_tokens()

    assert tokens is again
    assert tokens.staking.symbol == "HOP-LP-USDC"
    assert tokens.rewards.decimals == 18
    assert tokens.canonical.decimals == 6
    amm.canonical_token_address.assert_awaited_once()


@pytest.mark.asyncio
async def test_watch_fills_every_field(reader, price_feed):
    async with reader:
        await reader.watch(ALICE)
        snapshot = await reader.wait_for(FIELDS, timeout=2)

    assert snapshot.user_stake_balance == Known(1000 * 10**18)
    assert snapshot.total_staked == Known(4000 * 10**18)
    assert snapshot.lp_balance == Known(50 * 10**18)
    assert snapshot.earned_rewards == Known(5 * 10**18)
    assert snapshot.user_staked_valuation == Known(1000 * 10**6)
    assert snapshot.staked_total_valuation == Known(4000 * 10**6)
    assert snapshot.reward_token_price == Known(PriceQuote("MATIC", Decimal("1")))
    # staking token priced as the pool's canonical asset
    assert snapshot.staking_token_price == Known(PriceQuote("USDC", Decimal("1")))
    assert reader.is_rewards_expired() == Known(False)


@pytest.mark.asyncio
async def test_polls_repeatedly_without_overlap(reader, staking_rewards):
    in_flight = 0
    max_in_flight = 0
    original = staking_rewards.read

    async def tracked(fn_name, *args):
        nonlocal in_flight, max_in_flight
        if fn_name != "earned":
            return await original(fn_name, *args)
        in_flight += 1
        max_in_flight = max(max_in_flight, in_flight)
        await asyncio.sleep(0.02)
        in_flight -= 1
        return await original(fn_name, *args)

    staking_rewards.read = tracked
    await reader.watch(ALICE)
    await asyncio.sleep(0.15)
    await reader.close()

    assert staking_rewards.calls.count("earned") >= 2
    assert max_in_flight == 1


@pytest.mark.asyncio
async def test_failed_poll_keeps_previous_value(reader, staking_rewards):
    await reader.watch(ALICE)
    await reader.wait_for(["earned_rewards"], timeout=2)

    staking_rewards.fail.add("earned")
    await asyncio.sleep(0.05)
    await reader.close()

    assert reader.snapshot.earned_rewards == Known(5 * 10**18)


@pytest.mark.asyncio
async def test_failed_first_read_is_reported_as_failed(reader, staking_rewards):
    staking_rewards.fail.add("rewardRate")
    await reader.watch(ALICE)
    snapshot = await reader.wait_for(["reward_rate_per_second"], timeout=2)
    await reader.close()

    assert isinstance(snapshot.reward_rate_per_second, Failed)


@pytest.mark.asyncio
async def test_missing_price_is_failed_not_zero(reader, price_feed):
    price_feed.get_price_by_token_symbol = AsyncMock(return_value=None)
    await reader.watch(ALICE)
    snapshot = await reader.wait_for(["reward_token_price"], timeout=2)
    await reader.close()

    assert isinstance(snapshot.reward_token_price, Failed)


@pytest.mark.asyncio
async def test_price_feed_error_leaves_apr_absent(reader, price_feed):
    price_feed.get_price_by_token_symbol = AsyncMock(
        side_effect=RuntimeError("feed down")
    )
    await reader.watch(ALICE)
    snapshot = await reader.wait_for(FIELDS, timeout=2)
    await reader.close()

    assert isinstance(snapshot.staking_token_price, Failed)
    assert isinstance(snapshot.reward_token_price, Failed)
    metrics = derive_metrics(snapshot, reader.tokens, 1_900_000_000)
    assert not isinstance(metrics.apr, Known)
    assert not isinstance(metrics.staked_position_usd_value, Known)


@pytest.mark.asyncio
async def test_token_resolution_failure_is_retried(reader, staking_rewards):
    staking_rewards.fail.add("stakingToken")
    await reader.watch(ALICE)

    assert reader.tokens is None
    assert reader.snapshot.user_stake_balance is UNKNOWN

    staking_rewards.fail.clear()
    snapshot = await reader.wait_for(["user_stake_balance"], timeout=2)
    await reader.close()

    assert reader.tokens is not None
    assert snapshot.user_stake_balance == Known(1000 * 10**18)


@pytest.mark.asyncio
async def test_hung_valuation_does_not_stall_balance(reader, staking_rewards, amm):
    never = asyncio.Event()

    async def hang(amount):
        await never.wait()

    amm.calculate_total_amount_for_lp_token = AsyncMock(side_effect=hang)
    await reader.watch(ALICE)
    await reader.wait_for(["user_stake_balance"], timeout=2)

    staking_rewards.stakes[ALICE] = 7
    await asyncio.sleep(0.1)
    snapshot = reader.snapshot
    await reader.close()

    assert snapshot.user_stake_balance == Known(7)
    assert snapshot.user_staked_valuation is UNKNOWN
    # one valuation per field while the first is still in flight
    assert amm.calculate_total_amount_for_lp_token.await_count == 2


@pytest.mark.asyncio
async def test_switching_account_cancels_old_polls(reader):
    await reader.watch(ALICE)
    await reader.wait_for(["user_stake_balance"], timeout=2)
    old_tasks = set(reader._tasks)

    await reader.watch(BOB)
    snapshot = await reader.wait_for(["user_stake_balance"], timeout=2)
    await reader.close()

    assert all(task.done() for task in old_tasks)
    assert snapshot.user_stake_balance == Known(10 * 10**18)
    assert reader.context is None


@pytest.mark.asyncio
async def test_watching_same_account_is_a_noop(reader):
    await reader.watch(ALICE)
    ctx = reader.context
    await reader.watch(ALICE.lower())
    assert reader.context is ctx
    await reader.close()


@pytest.mark.asyncio
async def test_stale_read_is_discarded(reader):
    await reader.resolve_tokens()
    stale = WatchContext(ALICE, STAKING_REWARDS, generation=0)
    reader._context = WatchContext(BOB, STAKING_REWARDS, generation=1)

    result = await reader._fetch_into(stale, "earned_rewards", AsyncMock(return_value=99))

    assert result is None
    assert reader.snapshot.earned_rewards is UNKNOWN


@pytest.mark.asyncio
async def test_stale_failure_is_discarded(reader):
    stale = WatchContext(ALICE, STAKING_REWARDS, generation=0)
    reader._context = WatchContext(BOB, STAKING_REWARDS, generation=1)

    await reader._fetch_into(
        stale, "earned_rewards", AsyncMock(side_effect=TransportError("late"))
    )

    assert reader.snapshot.earned_rewards is UNKNOWN


@pytest.mark.asyncio
async def test_wait_for_times_out(reader):
    with pytest.raises(TimeoutError):
        await reader.wait_for(["earned_rewards"], timeout=0.01)


@pytest.mark.asyncio
async def test_expiry_unknown_before_fetch(reader):
    assert reader.is_rewards_expired() is UNKNOWN
