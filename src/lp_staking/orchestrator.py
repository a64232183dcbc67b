"""Approve, stake, withdraw and claim.

Every action follows the same sequence:

1. Network check; a wrong network aborts before anything is shown
2. Readiness checks (amount, balance, allowance)
3. User confirmation; declining returns to idle silently
4. Submission, then tracking until the receipt arrives

Failures end the single action that raised them. Nothing is retried; the
user re-invokes the action.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from .adapters.contracts import ContractWriter
from .adapters.network import NetworkConnector
from .adapters.prompt import ConfirmationPrompt, ConfirmationRequest
from .adapters.tracking import TransactionTracker
from .constants import MAX_UINT256
from .domain import (
    ActionKind,
    ActionState,
    Known,
    PendingAction,
    StakingSnapshot,
    StakingTokens,
    Token,
    TransactionRecord,
    TxHandle,
    value_or_none,
)
from .errors import ActionPreconditionError, UserCancelled, WrongNetwork
from .position.state import AmountInput
from .processors.action_gate import can_claim, can_withdraw, evaluate_gates
from .units import format_units

logger = logging.getLogger(__name__)


def validate_withdraw_percent(percent: Any) -> int:
    if isinstance(percent, bool) or not isinstance(percent, int):
        raise ValueError(f"Withdrawal percentage must be an integer, got {percent!r}")
    if not 1 <= percent <= 100:
        raise ValueError(f"Withdrawal percentage must be between 1 and 100, got {percent}")
    return percent


class TransactionOrchestrator:
    def __init__(
        self,
        *,
        chain_id: int,
        network_name: str,
        tokens: StakingTokens,
        staking_rewards: ContractWriter,
        staking_token: ContractWriter,
        network: NetworkConnector,
        prompt: ConfirmationPrompt,
        tracker: TransactionTracker,
        signer: Any,
        amount: AmountInput,
        snapshot: Callable[[], StakingSnapshot],
    ):
        self.chain_id = chain_id
        self.network_name = network_name
        self.tokens = tokens
        self.staking_rewards = staking_rewards
        self.staking_token = staking_token
        self.network = network
        self.prompt = prompt
        self.tracker = tracker
        self.signer = signer
        self.amount = amount
        self.snapshot = snapshot
        self._active: dict[ActionKind, PendingAction] = {}

    def state(self, kind: ActionKind) -> ActionState:
        """State of the in-flight action of ``kind``, IDLE if there is none."""
        action = self._active.get(kind)
        return action.state if action else ActionState.IDLE

    def _parsed_amount(self) -> int | None:
        return self.amount.parsed(self.tokens.staking.decimals)

    async def approve(self, approve_all: bool = False) -> PendingAction:
        """Allow the staking contract to spend the typed LP amount."""
        amount = self._parsed_amount()
        snapshot = self.snapshot()

        def check() -> str | None:
            if not amount:
                return "Enter an amount to approve"
            gates = evaluate_gates(amount, None, value_or_none(snapshot.allowance))
            if gates.needs_approval == Known(False):
                return "Allowance already covers the amount"
            if not isinstance(gates.needs_approval, Known):
                return "Allowance not loaded"
            return None

        async def on_confirm(confirmed_all: Any) -> TxHandle | None:
            value = MAX_UINT256 if confirmed_all else amount
            return await self.staking_token.connect(self.signer).call(
                "approve", self.staking_rewards.address, value
            )

        return await self._run(
            ActionKind.APPROVE,
            params={"amount": amount, "approve_all": approve_all},
            check=check,
            request=ConfirmationRequest(
                kind=ActionKind.APPROVE,
                on_confirm=on_confirm,
                input_props={
                    "amount": self.amount.value,
                    "token": self.tokens.staking.symbol,
                    "spender": self.staking_rewards.address,
                    "approve_all": approve_all,
                },
            ),
            token=self.tokens.staking,
        )

    async def stake(self) -> PendingAction:
        amount = self._parsed_amount()
        snapshot = self.snapshot()

        def check() -> str | None:
            gates = evaluate_gates(
                amount,
                value_or_none(snapshot.lp_balance),
                value_or_none(snapshot.allowance),
            )
            if gates.is_stake_enabled:
                return None
            if gates.warning:
                return gates.warning
            if gates.needs_approval == Known(True):
                return "Approval required before staking"
            return "Stake amount or balances not available"

        async def on_confirm(_: Any) -> TxHandle | None:
            return await self.staking_rewards.connect(self.signer).call("stake", amount)

        return await self._run(
            ActionKind.STAKE,
            params={"amount": amount},
            check=check,
            request=ConfirmationRequest(
                kind=ActionKind.STAKE,
                on_confirm=on_confirm,
                input_props={
                    "amount": self.amount.value,
                    "token": self.tokens.staking.symbol,
                },
            ),
            token=self.tokens.staking,
            clear_input=True,
        )

    async def withdraw(self, percent: int | None = None) -> PendingAction:
        """Withdraw a percentage of the stake; 100 exits with rewards."""
        stake_balance = value_or_none(self.snapshot().user_stake_balance)
        params: dict[str, Any] = {"stake_balance": stake_balance}

        def check() -> str | None:
            if not can_withdraw(stake_balance):
                return "Nothing staked to withdraw"
            return None

        async def on_confirm(amount_percent: Any) -> TxHandle | None:
            if not amount_percent:
                return None
            pct = validate_withdraw_percent(amount_percent)
            params["amount_percent"] = pct
            bound = self.staking_rewards.connect(self.signer)
            if pct == 100:
                # exit() withdraws the whole stake and claims rewards in one call
                return await bound.call("exit")
            withdraw_amount = stake_balance * pct // 100
            params["amount"] = withdraw_amount
            return await bound.call("withdraw", withdraw_amount)

        input_props: dict[str, Any] = {
            "token": self.tokens.staking.symbol,
            "amount": format_units(stake_balance or 0, self.tokens.staking.decimals),
        }
        if percent is not None:
            input_props["amount_percent"] = percent

        return await self._run(
            ActionKind.WITHDRAW,
            params=params,
            check=check,
            request=ConfirmationRequest(
                kind=ActionKind.WITHDRAW, on_confirm=on_confirm, input_props=input_props
            ),
            token=self.tokens.staking,
        )

    async def claim(self) -> PendingAction:
        earned = value_or_none(self.snapshot().earned_rewards)

        def check() -> str | None:
            if not can_claim(earned):
                return "No rewards to claim"
            return None

        async def on_confirm(_: Any) -> TxHandle | None:
            return await self.staking_rewards.connect(self.signer).call("getReward")

        return await self._run(
            ActionKind.CLAIM,
            params={"earned": earned},
            check=check,
            request=ConfirmationRequest(
                kind=ActionKind.CLAIM,
                on_confirm=on_confirm,
                input_props={
                    "token": self.tokens.rewards.symbol,
                    "amount": format_units(earned or 0, self.tokens.rewards.decimals),
                },
            ),
            token=self.tokens.rewards,
        )

    async def _run(
        self,
        kind: ActionKind,
        *,
        params: dict[str, Any],
        check: Callable[[], str | None],
        request: ConfirmationRequest,
        token: Token,
        clear_input: bool = False,
    ) -> PendingAction:
        in_flight = self._active.get(kind)
        if in_flight is not None:
            logger.warning(
                "%s already in progress (%s); ignoring repeated request",
                kind.value,
                in_flight.state.value,
            )
            return in_flight

        action = PendingAction(kind=kind, params=params)
        self._active[kind] = action
        try:
            action.state = ActionState.NETWORK_CHECK_PENDING
            if not await self.network.check_connected_network_id(self.chain_id):
                raise WrongNetwork(self.chain_id)

            reason = check()
            if reason:
                raise ActionPreconditionError(reason)

            action.state = ActionState.AWAITING_USER_CONFIRMATION
            tx = await self.prompt.show(request)
            if tx is None:
                raise UserCancelled(f"{kind.value} cancelled")

            action.tx_hash = tx.hash
            action.state = ActionState.SUBMITTED
            logger.info("%s submitted: %s", kind.value, tx.hash)
            if clear_input:
                self.amount.clear()

            meta = {"network_name": self.network_name, "token": token}
            self.tracker.add_transaction(
                TransactionRecord(hash=tx.hash, network_name=self.network_name, token=token)
            )
            await self.tracker.wait_for_transaction(tx, meta)
            action.state = ActionState.CONFIRMED
            logger.info("%s confirmed: %s", kind.value, tx.hash)
        except UserCancelled:
            logger.debug("%s cancelled at confirmation", kind.value)
            action.state = ActionState.IDLE
        except WrongNetwork as e:
            logger.warning("%s aborted: %s", kind.value, e)
            action.state = ActionState.IDLE
            action.error = str(e)
        except Exception as e:
            logger.error("%s failed: %s", kind.value, e)
            action.state = ActionState.FAILED
            action.error = str(e)
        finally:
            self._active.pop(kind, None)
        return action
