from __future__ import annotations

import logging

import pytest

from lp_staking.logger import TRACE, ColoredFormatter, resolve_level, setup_logging
from lp_staking.settings import StakingSettings


@pytest.fixture(autouse=True)
def restore_logging(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("LP_STAKING_CONFIG", raising=False)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    noisy = {name: logging.getLogger(name).level for name in ("web3", "urllib3")}
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, noisy_level in noisy.items():
        logging.getLogger(name).setLevel(noisy_level)


def test_resolve_level():
    assert resolve_level("trace") == TRACE
    assert resolve_level("WARNING") == logging.WARNING
    assert resolve_level("nonsense") == logging.INFO


def test_debug_keeps_web3_quiet():
    setup_logging(StakingSettings(log_level="debug"))

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("web3").level == logging.WARNING


def test_trace_lets_web3_through():
    setup_logging(StakingSettings(log_level="TRACE"))

    assert logging.getLogger().level == TRACE
    assert logging.getLogger("urllib3").level == TRACE


def test_formatter_restores_levelname():
    record = logging.LogRecord("x", logging.ERROR, __file__, 1, "boom", None, None)

    output = ColoredFormatter("%(levelname)s %(message)s").format(record)

    assert "\033[31m" in output
    assert record.levelname == "ERROR"
