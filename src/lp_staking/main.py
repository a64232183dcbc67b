"""CLI entrypoint for LP staking."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Annotated, Awaitable, Callable

import typer
from rich.console import Console
from rich.live import Live

from .adapters import AutoConfirmPrompt, ConsolePrompt
from .domain import ActionState, PendingAction, StakingTokens
from .logger import setup_logging
from .orchestrator import TransactionOrchestrator, validate_withdraw_percent
from .report import build_position_view, format_staking_values, print_position
from .session import StakingSession, StakingView
from .settings import Network, StakingSettings
from .state import AppState

# Fields that must settle before a one-shot snapshot is printed
SNAPSHOT_FIELDS = (
    "user_stake_balance",
    "total_staked",
    "earned_rewards",
    "reward_rate_per_second",
    "period_finish_timestamp",
    "lp_balance",
    "allowance",
)

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    add_help_option=True,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
    help="Inspect and manage an LP staking position.",
)

console = Console()
logger = logging.getLogger(__name__)


def _build_logger() -> logging.Logger:
    return logging.getLogger("lp_staking")


def _state(ctx: typer.Context) -> AppState:
    return ctx.obj


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to a TOML config file (can include [lp_staking] table).",
        ),
    ] = None,
    network: Annotated[
        Network | None,
        typer.Option("--network", "-n", help="Network the staking program lives on."),
    ] = None,
    rpc_url: Annotated[
        str | None,
        typer.Option("--rpc-url", help="RPC endpoint; overrides the network default."),
    ] = None,
    staking_rewards: Annotated[
        str | None,
        typer.Option("--staking-rewards", help="StakingRewards contract address."),
    ] = None,
    amm: Annotated[
        str | None,
        typer.Option("--amm", help="Stable-swap AMM contract address."),
    ] = None,
    account: Annotated[
        str | None,
        typer.Option("--account", help="Account to read; defaults to the key's address."),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Override logging verbosity (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL).",
        ),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Confirm every action without prompting."),
    ] = False,
    show_config: Annotated[
        bool,
        typer.Option(
            "--show-config",
            help="Print effective config (with secrets redacted) and exit.",
        ),
    ] = False,
):
    """Load configuration shared by every command."""
    if config_path:
        os.environ["LP_STAKING_CONFIG"] = str(config_path)

    init_kwargs: dict[str, Network | str] = {}
    if network is not None:
        init_kwargs["network"] = network
    if rpc_url is not None:
        init_kwargs["rpc_url"] = rpc_url
    if staking_rewards is not None:
        init_kwargs["staking_rewards_address"] = staking_rewards
    if amm is not None:
        init_kwargs["amm_address"] = amm
    if account is not None:
        init_kwargs["account_address"] = account
    if log_level is not None:
        init_kwargs["log_level"] = log_level.upper()

    settings = StakingSettings(**init_kwargs)
    setup_logging(settings)

    if show_config:
        typer.echo(json.dumps(settings.as_safe_dict(), indent=2))
        raise typer.Exit(code=0)

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=0)

    if not settings.staking_rewards_address:
        raise typer.BadParameter(
            "staking_rewards_address must be configured",
            param_hint=["--staking-rewards", "LP_STAKING_STAKING_REWARDS_ADDRESS"],
        )
    if not settings.amm_address:
        raise typer.BadParameter(
            "amm_address must be configured",
            param_hint=["--amm", "LP_STAKING_AMM_ADDRESS"],
        )

    ctx.obj = AppState(settings=settings, logger=_build_logger())
    ctx.meta["assume_yes"] = yes


def _session(ctx: typer.Context) -> StakingSession:
    state = _state(ctx)
    prompt = (
        AutoConfirmPrompt() if ctx.meta.get("assume_yes") else ConsolePrompt(console)
    )
    try:
        return StakingSession(state.settings, prompt=prompt)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


def _require_tokens(session: StakingSession) -> StakingTokens:
    if session.tokens is None:
        console.print(
            "[red]Could not read the staking contracts.[/] "
            "Check the RPC endpoint and the contract addresses."
        )
        raise typer.Exit(code=1)
    return session.tokens


def _render(session: StakingSession, view: StakingView):
    if view.tokens is None:
        raise RuntimeError("Cannot render a position before its tokens are resolved")
    values = format_staking_values(view.tokens, view.snapshot, view.metrics)
    return build_position_view(
        view.tokens,
        values,
        view.gates,
        view.metrics.is_rewards_expired,
        session.staking_rewards_address,
    )


async def _show_position(session: StakingSession, watch: bool, timeout: float) -> None:
    await session.start()
    try:
        await session.reader.wait_for(SNAPSHOT_FIELDS, timeout=timeout)
    except TimeoutError:
        logger.warning("Some values did not load within %.0fs", timeout)
    tokens = _require_tokens(session)

    if not watch:
        view = session.view()
        print_position(
            tokens,
            format_staking_values(tokens, view.snapshot, view.metrics),
            gates=view.gates,
            expired=view.metrics.is_rewards_expired,
            staking_rewards_address=session.staking_rewards_address,
            console=console,
        )
        return

    with Live(_render(session, session.view()), console=console) as live:
        unsubscribe = session.subscribe(lambda view: live.update(_render(session, view)))
        try:
            while True:
                await asyncio.sleep(session.settings.poll_interval_seconds)
                await session.reader.refresh_static()
        finally:
            unsubscribe()


@app.command()
def position(
    ctx: typer.Context,
    watch: Annotated[
        bool, typer.Option("--watch", "-w", help="Keep refreshing until interrupted.")
    ] = False,
):
    """Show the staking position of the configured account."""
    settings = _state(ctx).settings
    timeout = max(settings.poll_interval_seconds * 3, settings.http_timeout_seconds)

    async def _run() -> None:
        async with _session(ctx) as session:
            await _show_position(session, watch, timeout)

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        pass


def _run_action(
    ctx: typer.Context,
    action: Callable[[StakingSession, TransactionOrchestrator], Awaitable[PendingAction]],
) -> None:
    log = _state(ctx).logger

    async def _run() -> PendingAction:
        async with _session(ctx) as session:
            await session.start()
            try:
                await session.reader.wait_for(
                    ("user_stake_balance", "earned_rewards", "lp_balance", "allowance"),
                    timeout=session.settings.http_timeout_seconds,
                )
            except TimeoutError:
                log.warning("Position not fully loaded; checks may refuse the action")
            _require_tokens(session)
            return await action(session, session.orchestrator)

    try:
        result = asyncio.run(_run())
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e

    if result.state is ActionState.CONFIRMED:
        console.print(f"[green]{result.kind.value} confirmed[/] {result.tx_hash}")
        return
    if result.state is ActionState.FAILED:
        console.print(f"[red]{result.kind.value} failed:[/] {result.error}")
        raise typer.Exit(code=1)
    if result.error:
        console.print(f"[yellow]{result.kind.value} aborted:[/] {result.error}")
        raise typer.Exit(code=1)
    log.info("%s cancelled", result.kind.value)


@app.command()
def approve(
    ctx: typer.Context,
    amount: Annotated[str, typer.Argument(help="LP token amount to approve.")],
    approve_all: Annotated[
        bool, typer.Option("--all", help="Approve an unlimited amount.")
    ] = False,
):
    """Allow the staking contract to spend LP tokens."""

    async def action(session: StakingSession, orch: TransactionOrchestrator):
        session.amount.set_text(amount)
        return await orch.approve(approve_all=approve_all)

    _run_action(ctx, action)


@app.command()
def stake(
    ctx: typer.Context,
    amount: Annotated[str, typer.Argument(help="LP token amount to stake.")],
):
    """Stake LP tokens."""

    async def action(session: StakingSession, orch: TransactionOrchestrator):
        session.amount.set_text(amount)
        return await orch.stake()

    _run_action(ctx, action)


@app.command()
def withdraw(
    ctx: typer.Context,
    percent: Annotated[
        int | None,
        typer.Option("--percent", "-p", help="Percentage of the stake (1-100)."),
    ] = None,
):
    """Withdraw staked LP tokens; 100% also claims rewards."""
    if percent is not None:
        try:
            validate_withdraw_percent(percent)
        except ValueError as e:
            raise typer.BadParameter(str(e), param_hint="--percent") from e

    async def action(session: StakingSession, orch: TransactionOrchestrator):
        return await orch.withdraw(percent)

    _run_action(ctx, action)


@app.command()
def claim(ctx: typer.Context):
    """Claim earned rewards."""

    async def action(session: StakingSession, orch: TransactionOrchestrator):
        return await orch.claim()

    _run_action(ctx, action)


def run() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    run()
