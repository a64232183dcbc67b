"""Rich console formatter for staking positions."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal

from rich.columns import Columns
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..domain import DerivedMetrics, Known, Result, StakingSnapshot, StakingTokens, Token
from ..processors.action_gate import ActionGates
from ..units import WORKING_DECIMALS, units_to_decimal

PLACEHOLDER = "-"


@dataclass(frozen=True)
class FormattedStakingValues:
    stake_balance: str
    earned: str
    lp_balance: str
    total_staked: str
    total_rewards_per_day: str
    user_rewards_per_day: str
    apr: str
    staked_position: str


def _truncate(value: Decimal, places: int) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_DOWN)


def format_token_amount(result: Result[int], token: Token, places: int = 4) -> str:
    """Format a token amount result, e.g. ``1,234.5678 LP``."""
    if not isinstance(result, Known):
        return PLACEHOLDER
    amount = _truncate(units_to_decimal(result.value, token.decimals), places)
    return f"{amount:,} {token.symbol}"


def format_apr(result: Result[int]) -> str:
    """Format an 18-decimal APR fraction as a percentage."""
    if not isinstance(result, Known):
        return PLACEHOLDER
    percent = units_to_decimal(result.value, WORKING_DECIMALS) * 100
    return f"{_truncate(percent, 2):,}%"


def format_usd(result: Result[int]) -> str:
    """Format an 18-decimal USD amount."""
    if not isinstance(result, Known):
        return PLACEHOLDER
    return f"${_truncate(units_to_decimal(result.value, WORKING_DECIMALS), 2):,}"


def format_staking_values(
    tokens: StakingTokens, snapshot: StakingSnapshot, metrics: DerivedMetrics
) -> FormattedStakingValues:
    per_day = format_token_amount(metrics.total_rewards_per_day, tokens.rewards)
    user_per_day = format_token_amount(metrics.user_rewards_per_day, tokens.rewards)
    return FormattedStakingValues(
        stake_balance=format_token_amount(snapshot.user_stake_balance, tokens.staking),
        earned=format_token_amount(snapshot.earned_rewards, tokens.rewards),
        lp_balance=format_token_amount(snapshot.lp_balance, tokens.staking),
        total_staked=format_token_amount(snapshot.total_staked, tokens.staking),
        total_rewards_per_day=f"{per_day} / day" if per_day != PLACEHOLDER else per_day,
        user_rewards_per_day=(
            f"{user_per_day} / day" if user_per_day != PLACEHOLDER else user_per_day
        ),
        apr=format_apr(metrics.apr),
        staked_position=format_usd(metrics.staked_position_usd_value),
    )


def _truncate_address(address: str) -> str:
    return f"{address[:10]}...{address[-4:]}"


def build_position_view(
    tokens: StakingTokens,
    values: FormattedStakingValues,
    gates: ActionGates | None = None,
    expired: Result[bool] | None = None,
    staking_rewards_address: str | None = None,
) -> Group:
    """Two-panel dashboard: program on the left, the account on the right."""
    program_table = Table(show_header=False, box=None, padding=(0, 1))
    program_table.add_column("Key", style="dim")
    program_table.add_column("Value", style="cyan")
    if staking_rewards_address:
        program_table.add_row("Staking Rewards", _truncate_address(staking_rewards_address))
    program_table.add_row("Staking Token", _truncate_address(tokens.staking.address))
    program_table.add_row("Rewards Token", _truncate_address(tokens.rewards.address))
    program_table.add_row("APR", values.apr)
    program_table.add_row("Total Staked", values.total_staked)
    program_table.add_row("Total Rewards", values.total_rewards_per_day)
    if isinstance(expired, Known) and expired.value:
        program_table.add_row("Status", "[yellow]rewards period ended[/]")

    account_table = Table(show_header=False, box=None, padding=(0, 1))
    account_table.add_column("Key", style="dim")
    account_table.add_column("Value", style="green")
    account_table.add_row("Staked", values.stake_balance)
    account_table.add_row("Wallet", values.lp_balance)
    account_table.add_row("Earned", values.earned)
    account_table.add_row("Your Rewards", values.user_rewards_per_day)
    account_table.add_row("Your Total", values.staked_position)

    panels = Columns(
        [
            Panel(program_table, title="[bold]Program[/]", border_style="blue"),
            Panel(account_table, title="[bold]Your Position[/]", border_style="green"),
        ],
        equal=True,
        expand=True,
    )

    parts: list = [panels]
    if gates is not None and gates.warning:
        parts.append(Text(gates.warning, style="bold yellow"))
    return Group(*parts)


def print_position(
    tokens: StakingTokens,
    values: FormattedStakingValues,
    gates: ActionGates | None = None,
    expired: Result[bool] | None = None,
    staking_rewards_address: str | None = None,
    console: Console | None = None,
) -> None:
    """Print the position dashboard to stdout."""
    (console or Console()).print(
        build_position_view(tokens, values, gates, expired, staking_rewards_address)
    )
