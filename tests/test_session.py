from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from eth_account import Account

from lp_staking.adapters.prompt import AutoConfirmPrompt
from lp_staking.domain import Known, StakingTokens, Token
from lp_staking.errors import TransportError
from lp_staking.session import StakingSession
from lp_staking.settings import Network, StakingSettings

PRIVATE_KEY = "0x" + "11" * 32
STAKING_REWARDS = "0x00000000000000000000000000000000000000a1"
AMM = "0x00000000000000000000000000000000000000e5"


@pytest.fixture
def settings(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("LP_STAKING_CONFIG", raising=False)
    return StakingSettings(
        network=Network.GNOSIS,
        staking_rewards_address=STAKING_REWARDS,
        amm_address=AMM,
        private_key=PRIVATE_KEY,
    )


@pytest.fixture
def session(settings):
    return StakingSession(settings, prompt=AutoConfirmPrompt(), w3=MagicMock())


@pytest.fixture
def tokens():
    return StakingTokens(
        staking=Token("0x00000000000000000000000000000000000000b2", "LP", 18),
        rewards=Token("0x00000000000000000000000000000000000000c3", "GNO", 18),
        canonical=Token("0x00000000000000000000000000000000000000d4", "WXDAI", 18),
    )


def test_account_defaults_to_key_address(session):
    assert session.account_address == Account.from_key(PRIVATE_KEY).address


def test_configured_account_wins(settings):
    settings.account_address = "0x" + "ab" * 20
    session = StakingSession(settings, w3=MagicMock())
    assert session.account_address.lower() == "0x" + "ab" * 20


def test_reader_uses_network_reward_symbol(session):
    assert session.reader.reward_price_symbol == "GNO"
    assert session.reader.poll_interval == 5.0


def test_gates_follow_amount_and_snapshot(session, tokens):
    session.reader.tokens = tokens
    session.reader.state.update("lp_balance", Known(10**18))
    session.reader.state.update("allowance", Known(0))
    session.amount.set_text("0.5")

    gates = session.gates()

    assert gates.needs_approval == Known(True)
    assert gates.is_stake_enabled is False


def test_subscribers_see_fresh_views(session):
    views = []
    unsubscribe = session.subscribe(views.append)

    session.amount.set_text("1")
    session.reader.state.update("earned_rewards", Known(3))
    unsubscribe()
    session.amount.set_text("2")

    assert len(views) == 2
    assert views[-1].snapshot.earned_rewards == Known(3)


def test_orchestrator_requires_started_session(session):
    with pytest.raises(RuntimeError):
        session.orchestrator


def test_orchestrator_wired_for_network(session, tokens):
    session.reader.tokens = tokens

    orchestrator = session.orchestrator

    assert orchestrator.chain_id == 100
    assert orchestrator.network_name == "gnosis"
    assert orchestrator.amount is session.amount
    assert session.orchestrator is orchestrator


@pytest.mark.asyncio
async def test_start_survives_unreadable_contracts(session):
    session.reader.resolve_tokens = AsyncMock(side_effect=TransportError("rpc down"))

    async with session:
        assert await session.start() is None
        assert session.reader.context is not None
        assert session.tokens is None
