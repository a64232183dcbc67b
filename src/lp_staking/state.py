"""Application state container."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .settings import StakingSettings


@dataclass
class AppState:
    """Settings and logger shared by every CLI command."""

    settings: StakingSettings
    logger: logging.Logger
