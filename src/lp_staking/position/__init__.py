from __future__ import annotations

from .reader import LivePositionReader, WatchContext
from .state import AmountInput, Observable, PositionState

__all__ = [
    "AmountInput",
    "LivePositionReader",
    "Observable",
    "PositionState",
    "WatchContext",
]
