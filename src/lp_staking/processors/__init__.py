from __future__ import annotations

from .action_gate import ActionGates, evaluate_gates
from .yield_calculator import derive_metrics, is_rewards_expired

__all__ = [
    "ActionGates",
    "derive_metrics",
    "evaluate_gates",
    "is_rewards_expired",
]
