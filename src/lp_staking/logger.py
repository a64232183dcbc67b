"""Logging setup for the lp-staking CLI."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .settings import StakingSettings

# Below DEBUG; also lets web3 and urllib3 through
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Chatty at DEBUG; only shown at TRACE
NOISY_LOGGERS = ("web3", "urllib3")


class ColoredFormatter(logging.Formatter):
    """Colors the level name of each record."""

    COLORS = {
        TRACE: "\033[90m",
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelno)
        if color is None:
            return super().format(record)
        levelname = record.levelname
        record.levelname = f"{color}\033[1m{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def resolve_level(name: str) -> int:
    """Map a level name (including TRACE) to its number, INFO if unknown."""
    name = name.upper()
    if name == "TRACE":
        return TRACE
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(settings: StakingSettings) -> None:
    """Send logs to stderr at ``settings.log_level``.

    Stdout is left to the rendered position. Web3 and urllib3 stay at WARNING
    unless the level is TRACE.
    """
    level = resolve_level(settings.log_level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ColoredFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logging.basicConfig(level=level, handlers=[handler], force=True)

    noisy_level = TRACE if level <= TRACE else max(level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)
