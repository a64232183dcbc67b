"""Wires settings into a live staking session.

A session owns the web3 connection, the position reader, the amount input
and, once a signing key is available, the transaction orchestrator. Every
view it hands out is recomputed from the latest snapshot; nothing derived
is cached.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from eth_account import Account
from eth_typing import URI
from web3 import AsyncWeb3, Web3

from .abi import load_erc20_abi, load_staking_rewards_abi, load_swap_abi
from .adapters import (
    PRICE_ADAPTERS,
    ConfirmationPrompt,
    ConsolePrompt,
    PriceFeed,
    SwapValuator,
    Web3ContractReader,
    Web3ContractWriter,
    Web3NetworkConnector,
    Web3TransactionTracker,
)
from .domain import DerivedMetrics, StakingSnapshot, StakingTokens, value_or_none
from .orchestrator import TransactionOrchestrator
from .position import AmountInput, LivePositionReader
from .processors import ActionGates, derive_metrics, evaluate_gates
from .settings import StakingSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StakingView:
    """Everything a front end needs to render the position once."""

    tokens: StakingTokens | None
    snapshot: StakingSnapshot
    metrics: DerivedMetrics
    gates: ActionGates


class StakingSession:
    def __init__(
        self,
        settings: StakingSettings,
        *,
        prompt: ConfirmationPrompt | None = None,
        w3: AsyncWeb3 | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.clock = clock
        self.prompt = prompt or ConsolePrompt()
        self.w3 = w3 or AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(URI(settings.effective_rpc_url))
        )

        self.staking_rewards_address = Web3.to_checksum_address(
            settings.staking_rewards_address_required
        )
        erc20_abi = load_erc20_abi()

        def erc20(address: str) -> Web3ContractReader:
            return Web3ContractReader(self.w3, address, erc20_abi, label="ERC20")

        self._erc20_abi = erc20_abi
        amm = SwapValuator(
            Web3ContractReader(
                self.w3, settings.amm_address_required, load_swap_abi(), label="Swap"
            )
        )
        self.price_feed = PriceFeed(
            [cls(settings) for cls in PRICE_ADAPTERS],
            cache_ttl=settings.price_cache_ttl_seconds,
        )
        self.reader = LivePositionReader(
            Web3ContractReader(
                self.w3,
                self.staking_rewards_address,
                load_staking_rewards_abi(),
                label="StakingRewards",
            ),
            amm,
            self.price_feed,
            erc20,
            reward_price_symbol=settings.effective_reward_token_symbol,
            staking_price_symbol=settings.staking_token_symbol,
            poll_interval=settings.poll_interval_seconds,
            clock=clock,
        )
        self.amount = AmountInput()
        self._orchestrator: TransactionOrchestrator | None = None

    async def __aenter__(self) -> "StakingSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def account_address(self) -> str:
        """Configured account, or the address of the configured key."""
        if self.settings.account_address:
            return Web3.to_checksum_address(self.settings.account_address)
        if self.settings.private_key is not None:
            return Account.from_key(self.settings.private_key_required).address
        raise ValueError("account_address or private_key must be configured")

    @property
    def tokens(self) -> StakingTokens | None:
        return self.reader.tokens

    async def start(self) -> StakingTokens | None:
        """Begin watching the account.

        Returns the resolved tokens, or None while resolution is still being
        retried in the background.
        """
        await self.reader.watch(self.account_address)
        return self.tokens

    def metrics(self) -> DerivedMetrics:
        return derive_metrics(self.reader.snapshot, self.tokens, int(self.clock()))

    def gates(self) -> ActionGates:
        snapshot = self.reader.snapshot
        decimals = self.tokens.staking.decimals if self.tokens else 18
        return evaluate_gates(
            self.amount.parsed(decimals),
            value_or_none(snapshot.lp_balance),
            value_or_none(snapshot.allowance),
        )

    def view(self) -> StakingView:
        return StakingView(
            tokens=self.tokens,
            snapshot=self.reader.snapshot,
            metrics=self.metrics(),
            gates=self.gates(),
        )

    def subscribe(self, listener: Callable[[StakingView], None]) -> Callable[[], None]:
        """Call ``listener`` with a fresh view whenever the position or amount changes."""
        unsubscribers = [
            self.reader.state.subscribe(lambda _: listener(self.view())),
            self.amount.subscribe(lambda _: listener(self.view())),
        ]

        def unsubscribe() -> None:
            for fn in unsubscribers:
                fn()

        return unsubscribe

    @property
    def orchestrator(self) -> TransactionOrchestrator:
        """Write path; requires resolved tokens and a private key."""
        if self._orchestrator is not None:
            return self._orchestrator
        if self.tokens is None:
            raise RuntimeError("Session not started; call start() first")

        signer = Account.from_key(self.settings.private_key_required)
        self._orchestrator = TransactionOrchestrator(
            chain_id=self.settings.chain_id,
            network_name=self.settings.network.value,
            tokens=self.tokens,
            staking_rewards=Web3ContractWriter(
                self.w3, self.staking_rewards_address, load_staking_rewards_abi()
            ),
            staking_token=Web3ContractWriter(
                self.w3, self.tokens.staking.address, self._erc20_abi
            ),
            network=Web3NetworkConnector(self.w3),
            prompt=self.prompt,
            tracker=Web3TransactionTracker(
                self.w3,
                timeout=self.settings.tx_timeout_seconds,
                poll_latency=self.settings.tx_poll_latency_seconds,
            ),
            signer=signer,
            amount=self.amount,
            snapshot=lambda: self.reader.snapshot,
        )
        logger.debug("Write path ready for %s", signer.address)
        return self._orchestrator

    async def close(self) -> None:
        await self.reader.close()
