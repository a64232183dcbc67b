"""User confirmation before signing."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from rich.console import Console
from rich.prompt import Confirm, IntPrompt
from rich.table import Table

from ..domain import ActionKind, TxHandle

logger = logging.getLogger(__name__)

OnConfirm = Callable[[Any], Awaitable[TxHandle | None]]


@dataclass
class ConfirmationRequest:
    """What the user is asked to confirm.

    ``on_confirm`` receives the value collected by the prompt: the
    withdrawal percentage for withdraw, the approve-all flag for approve,
    and ``None`` otherwise.
    """

    kind: ActionKind
    on_confirm: OnConfirm
    input_props: dict[str, Any] = field(default_factory=dict)


class ConfirmationPrompt(ABC):
    @abstractmethod
    async def show(self, request: ConfirmationRequest) -> TxHandle | None:
        """Ask for confirmation; return the submitted tx, or None if declined."""
        ...


def _confirm_value(request: ConfirmationRequest) -> Any:
    match request.kind:
        case ActionKind.WITHDRAW:
            return request.input_props.get("amount_percent", 100)
        case ActionKind.APPROVE:
            return bool(request.input_props.get("approve_all", False))
        case _:
            return None


class AutoConfirmPrompt(ConfirmationPrompt):
    """Confirms every request without asking (``--yes``)."""

    async def show(self, request: ConfirmationRequest) -> TxHandle | None:
        logger.info("Auto-confirming %s", request.kind.value)
        return await request.on_confirm(_confirm_value(request))


class ConsolePrompt(ConfirmationPrompt):
    """Interactive confirmation on the terminal."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def _ask(self, request: ConfirmationRequest) -> tuple[bool, Any]:
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Key", style="dim")
        table.add_column("Value", style="cyan")
        for key, value in request.input_props.items():
            table.add_row(key, str(value))
        self.console.print(table)

        value = _confirm_value(request)
        if request.kind == ActionKind.WITHDRAW and "amount_percent" not in request.input_props:
            value = IntPrompt.ask(
                "Percentage to withdraw (1-100)",
                console=self.console,
                default=100,
            )
        confirmed = Confirm.ask(
            f"Confirm {request.kind.value}?", console=self.console, default=False
        )
        return confirmed, value

    async def show(self, request: ConfirmationRequest) -> TxHandle | None:
        confirmed, value = await asyncio.to_thread(self._ask, request)
        if not confirmed:
            return None
        return await request.on_confirm(value)
