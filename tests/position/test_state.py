from __future__ import annotations

from lp_staking.domain import UNKNOWN, Known
from lp_staking.position.state import AmountInput, Observable, PositionState


def test_observable_notifies_only_on_change():
    seen = []
    obs = Observable(1)
    obs.subscribe(seen.append)

    assert obs.set(1) is False
    assert obs.set(2) is True
    assert seen == [2]


def test_unsubscribe_stops_notifications():
    seen = []
    obs = Observable("a")
    unsubscribe = obs.subscribe(seen.append)
    unsubscribe()
    unsubscribe()
    obs.set("b")
    assert seen == []


def test_failing_listener_does_not_block_others():
    seen = []
    obs = Observable(0)

    def broken(_):
        raise RuntimeError("boom")

    obs.subscribe(broken)
    obs.subscribe(seen.append)
    obs.set(5)
    assert seen == [5]


def test_position_state_updates_one_field():
    state = PositionState()
    snapshots = []
    state.subscribe(snapshots.append)

    assert state.update("earned_rewards", Known(7)) is True
    assert state.update("earned_rewards", Known(7)) is False
    assert state.snapshot.earned_rewards == Known(7)
    assert state.snapshot.user_stake_balance is UNKNOWN
    assert len(snapshots) == 1


def test_position_state_reset():
    state = PositionState()
    state.update("allowance", Known(1))
    state.reset()
    assert state.snapshot.allowance is UNKNOWN


def test_amount_input_sanitizes_and_parses():
    amount = AmountInput()
    amount.set_text("1,000.5 LP")
    assert amount.value == "1000.5"
    assert amount.parsed(18) == 10005 * 10**17


def test_amount_input_empty_or_partial_is_none():
    amount = AmountInput()
    assert amount.parsed(18) is None
    amount.set_text(".")
    assert amount.parsed(18) is None
    amount.set_text("2")
    amount.clear()
    assert amount.value == ""
    assert amount.parsed(18) is None
