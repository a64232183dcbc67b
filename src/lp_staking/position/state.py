"""Observed state holders with change notification."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, Generic, TypeVar

from ..domain import StakingSnapshot
from ..units import amount_to_units, sanitize_numerical_string

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Observable(Generic[T]):
    """Holds a value and notifies listeners when it changes."""

    def __init__(self, initial: T):
        self._value = initial
        self._listeners: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> bool:
        """Replace the value; listeners run only if it actually changed."""
        if value == self._value:
            return False
        self._value = value
        self._notify()
        return True

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        """Register ``listener`` and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._value)
            except Exception:
                logger.exception("State listener %r failed", listener)


class PositionState(Observable[StakingSnapshot]):
    """The current snapshot, updated one field at a time."""

    def __init__(self) -> None:
        super().__init__(StakingSnapshot())

    @property
    def snapshot(self) -> StakingSnapshot:
        return self.value

    def get(self, field: str) -> Any:
        return getattr(self._value, field)

    def update(self, field: str, result: Any) -> bool:
        if self.get(field) == result:
            return False
        return self.set(dataclasses.replace(self._value, **{field: result}))

    def reset(self) -> None:
        self.set(StakingSnapshot())


class AmountInput(Observable[str]):
    """The amount the user typed, kept as sanitized text."""

    def __init__(self) -> None:
        super().__init__("")

    def set_text(self, text: str) -> bool:
        return self.set(sanitize_numerical_string(text))

    def clear(self) -> None:
        self.set("")

    def parsed(self, decimals: int) -> int | None:
        """Amount in base units, or None while empty or not a number."""
        if not self._value or self._value == ".":
            return None
        try:
            return amount_to_units(self._value, decimals)
        except ValueError:
            return None
