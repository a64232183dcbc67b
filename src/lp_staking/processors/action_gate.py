"""Readiness checks for the stake form buttons."""

from __future__ import annotations

from dataclasses import dataclass

from ..domain import UNKNOWN, Known, Result

INSUFFICIENT_BALANCE = "Insufficient balance"


@dataclass(frozen=True)
class ActionGates:
    needs_approval: Result[bool]
    is_stake_enabled: bool
    warning: str | None


def needs_approval(allowance: int | None, input_amount: int | None) -> Result[bool]:
    """True when the allowance does not cover the amount; unknown if either is."""
    if allowance is None or input_amount is None:
        return UNKNOWN
    return Known(allowance < input_amount)


def is_stake_enabled(
    input_amount: int | None, balance: int | None, approval: Result[bool]
) -> bool:
    """Stake needs an amount within balance and an approval known to be sufficient."""
    if not input_amount or balance is None:
        return False
    if not (isinstance(approval, Known) and approval.value is False):
        return False
    return input_amount <= balance


def balance_warning(input_amount: int | None, balance: int | None) -> str | None:
    if input_amount is None or balance is None:
        return None
    if input_amount > balance:
        return INSUFFICIENT_BALANCE
    return None


def can_withdraw(stake_balance: int | None) -> bool:
    return stake_balance is not None and stake_balance > 0


def can_claim(earned: int | None) -> bool:
    return earned is not None and earned > 0


def evaluate_gates(
    input_amount: int | None, balance: int | None, allowance: int | None
) -> ActionGates:
    approval = needs_approval(allowance, input_amount)
    return ActionGates(
        needs_approval=approval,
        is_stake_enabled=is_stake_enabled(input_amount, balance, approval),
        warning=balance_warning(input_amount, balance),
    )
