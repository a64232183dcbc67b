from __future__ import annotations

from .formatter import (
    FormattedStakingValues,
    build_position_view,
    format_staking_values,
    print_position,
)

__all__ = [
    "FormattedStakingValues",
    "build_position_view",
    "format_staking_values",
    "print_position",
]
