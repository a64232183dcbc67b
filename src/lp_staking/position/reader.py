"""Live, best-effort view of one account's staking position.

Each balance-like field is refreshed by its own polling task. A task sleeps
only after its read finishes, so reads of the same field never overlap.
Slow-moving values (reward rate, period finish, prices) are fetched when a
watch starts and on ``refresh_static()``. LP valuations run in their own task,
started whenever the amount they value changes, so a slow AMM call never holds
up the balance poll.

Watching a different account cancels every task of the previous watch; a
read that completes after its watch was superseded is discarded.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable, Iterable, Protocol

from ..adapters.amm import AmmValuator
from ..adapters.contracts import ContractReader
from ..constants import DEFAULT_POLL_INTERVAL_SECONDS
from ..domain import (
    Failed,
    Known,
    PriceQuote,
    Result,
    StakingSnapshot,
    StakingTokens,
    Token,
    Unknown,
)
from ..errors import TransportError
from ..processors.yield_calculator import is_rewards_expired
from .state import PositionState

logger = logging.getLogger(__name__)

Fetch = Callable[[], Awaitable[Any]]


class SupportsUsdPrice(Protocol):
    async def get_price_by_token_symbol(self, symbol: str) -> Any: ...


@dataclass(frozen=True)
class WatchContext:
    """Identity of one watch; stale reads are matched against it."""

    account: str
    staking_rewards: str
    generation: int

    @property
    def key(self) -> tuple[str, str]:
        return (self.account.lower(), self.staking_rewards.lower())


class LivePositionReader:
    def __init__(
        self,
        staking_rewards: ContractReader,
        amm: AmmValuator,
        price_feed: SupportsUsdPrice,
        erc20: Callable[[str], ContractReader],
        *,
        reward_price_symbol: str,
        staking_price_symbol: str | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.staking_rewards = staking_rewards
        self.amm = amm
        self.price_feed = price_feed
        self.erc20 = erc20
        self.reward_price_symbol = reward_price_symbol
        self.staking_price_symbol = staking_price_symbol
        self.poll_interval = poll_interval
        self.clock = clock

        self.state = PositionState()
        self.tokens: StakingTokens | None = None
        self._staking_token: ContractReader | None = None
        self._context: WatchContext | None = None
        self._generation = 0
        self._tasks: set[asyncio.Task[Any]] = set()

    async def __aenter__(self) -> "LivePositionReader":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def context(self) -> WatchContext | None:
        return self._context

    @property
    def snapshot(self) -> StakingSnapshot:
        return self.state.snapshot

    def is_rewards_expired(self) -> Result[bool]:
        return is_rewards_expired(
            self.state.snapshot.period_finish_timestamp, int(self.clock())
        )

    async def resolve_tokens(self) -> StakingTokens:
        """Resolve the staking, rewards and canonical tokens once."""
        if self.tokens is not None:
            return self.tokens

        staking_address, rewards_address, canonical_address = await asyncio.gather(
            self.staking_rewards.read("stakingToken"),
            self.staking_rewards.read("rewardsToken"),
            self.amm.canonical_token_address(),
        )
        staking, rewards, canonical = await asyncio.gather(
            self._resolve_token(staking_address),
            self._resolve_token(rewards_address),
            self._resolve_token(canonical_address),
        )
        self._staking_token = self.erc20(staking_address)
        self.tokens = StakingTokens(staking=staking, rewards=rewards, canonical=canonical)
        logger.info(
            "Resolved tokens: staking=%s (%d) rewards=%s (%d) canonical=%s (%d)",
            staking.symbol,
            staking.decimals,
            rewards.symbol,
            rewards.decimals,
            canonical.symbol,
            canonical.decimals,
        )
        return self.tokens

    async def _resolve_token(self, address: str) -> Token:
        reader = self.erc20(address)
        symbol, decimals = await asyncio.gather(
            reader.read("symbol"), reader.read("decimals")
        )
        return Token(address=reader.address, symbol=str(symbol), decimals=int(decimals))

    async def watch(self, account: str) -> None:
        """Start polling ``account``'s position, replacing any previous watch.

        If the tokens cannot be resolved yet, resolution is retried every poll
        interval in the background and the fields stay unknown until it works.
        """
        key = (account.lower(), self.staking_rewards.address.lower())
        if self._context is not None and self._context.key == key:
            return

        await self.stop()
        self._generation += 1
        ctx = WatchContext(account, self.staking_rewards.address, self._generation)
        self._context = ctx
        self.state.reset()
        logger.info("Watching %s on %s", account, self.staking_rewards.address)

        try:
            tokens = await self.resolve_tokens()
        except TransportError as e:
            logger.warning("Resolving tokens failed, will retry: %s", e)
            self._spawn(self._resolve_then_poll(ctx))
            return
        if ctx == self._context:
            self._start_polls(ctx, tokens)

    async def _resolve_then_poll(self, ctx: WatchContext) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                tokens = await self.resolve_tokens()
            except TransportError as e:
                logger.warning("Resolving tokens failed, will retry: %s", e)
                continue
            if ctx == self._context:
                self._start_polls(ctx, tokens)
            return

    def _start_polls(self, ctx: WatchContext, tokens: StakingTokens) -> None:
        account = ctx.account
        staking_rewards = self.staking_rewards
        staking_token = self._staking_token
        if staking_token is None:
            raise RuntimeError("Staking token reader missing after token resolution")

        self._spawn(
            self._poll(
                ctx,
                "user_stake_balance",
                partial(staking_rewards.read, "balanceOf", account),
                valuation_field="user_staked_valuation",
            )
        )
        self._spawn(
            self._poll(
                ctx,
                "total_staked",
                partial(staking_token.read, "balanceOf", staking_rewards.address),
                valuation_field="staked_total_valuation",
            )
        )
        self._spawn(
            self._poll(ctx, "earned_rewards", partial(staking_rewards.read, "earned", account))
        )
        self._spawn(
            self._poll(ctx, "lp_balance", partial(staking_token.read, "balanceOf", account))
        )
        self._spawn(
            self._poll(
                ctx,
                "allowance",
                partial(
                    staking_token.read, "allowance", account, staking_rewards.address
                ),
            )
        )
        self._spawn(self._refresh_static(ctx, tokens))

    async def refresh_static(self) -> None:
        """Refetch reward rate, period finish and prices for the current watch."""
        ctx = self._context
        if ctx is None or self.tokens is None:
            return
        await self._refresh_static(ctx, self.tokens)

    async def stop(self) -> None:
        """Cancel every task of the current watch."""
        self._context = None
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def close(self) -> None:
        await self.stop()
        logger.debug("Position reader closed")

    async def wait_for(
        self, fields: Iterable[str], timeout: float | None = None
    ) -> StakingSnapshot:
        """Wait until none of ``fields`` is still unknown.

        Raises:
            TimeoutError: If ``timeout`` elapses first.
        """
        names = tuple(fields)

        def settled(snapshot: StakingSnapshot) -> bool:
            return not any(isinstance(getattr(snapshot, n), Unknown) for n in names)

        if settled(self.state.snapshot):
            return self.state.snapshot

        event = asyncio.Event()

        def on_change(snapshot: StakingSnapshot) -> None:
            if settled(snapshot):
                event.set()

        unsubscribe = self.state.subscribe(on_change)
        try:
            async with asyncio.timeout(timeout):
                await event.wait()
        finally:
            unsubscribe()
        return self.state.snapshot

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _poll(
        self,
        ctx: WatchContext,
        field: str,
        fetch: Fetch,
        valuation_field: str | None = None,
    ) -> None:
        valued: int | None = None
        # (amount, task) of the valuation in flight; at most one per field
        valuing: tuple[int, asyncio.Task[Any]] | None = None
        while True:
            amount = await self._fetch_into(ctx, field, fetch)
            if valuation_field is not None:
                if valuing is not None and valuing[1].done():
                    pending_amount, task = valuing
                    if not task.cancelled() and task.result() is not None:
                        valued = pending_amount
                    valuing = None
                if valuing is None and amount is not None and amount != valued:
                    valuing = (
                        amount,
                        self._spawn(
                            self._fetch_into(
                                ctx,
                                valuation_field,
                                partial(self.amm.calculate_total_amount_for_lp_token, amount),
                            )
                        ),
                    )
            await asyncio.sleep(self.poll_interval)

    async def _refresh_static(self, ctx: WatchContext, tokens: StakingTokens) -> None:
        staking_symbol = self.staking_price_symbol or tokens.canonical.symbol
        await asyncio.gather(
            self._fetch_into(ctx, "period_finish_timestamp", self._read_period_finish),
            self._fetch_into(
                ctx,
                "reward_rate_per_second",
                partial(self.staking_rewards.read, "rewardRate"),
            ),
            self._fetch_into(
                ctx, "staking_token_price", partial(self._fetch_price, staking_symbol)
            ),
            self._fetch_into(
                ctx,
                "reward_token_price",
                partial(self._fetch_price, self.reward_price_symbol),
            ),
        )

    async def _read_period_finish(self) -> int:
        return int(await self.staking_rewards.read("periodFinish"))

    async def _fetch_price(self, symbol: str) -> PriceQuote:
        price = await self.price_feed.get_price_by_token_symbol(symbol)
        if price is None:
            raise TransportError(f"No USD price for {symbol}", source="price_feed")
        return PriceQuote(symbol=symbol, price=price)

    async def _fetch_into(self, ctx: WatchContext, field: str, fetch: Fetch) -> Any:
        """Run one read and store it; returns the value, or None if not stored."""
        try:
            value = await fetch()
        except Exception as e:
            if ctx != self._context:
                return None
            if isinstance(self.state.get(field), Known):
                logger.warning("Reading %s failed, keeping last value: %s", field, e)
            else:
                logger.warning("Reading %s failed: %s", field, e)
                self.state.update(field, Failed(str(e)))
            return None

        if ctx != self._context:
            logger.debug("Discarding %s read for superseded watch of %s", field, ctx.account)
            return None

        self.state.update(field, Known(value))
        return value
