"""State digest v1 and fixture serialization."""

from __future__ import annotations

from copy import deepcopy

from cofre_spec.scenario import mk_initialize
from cofre_spec.state_digest import ledger_digest
from cofre_spec.state_transition import apply_ix
from cofre_spec.test_accounts import MAKER, MINT_B
from cofre_spec.types import LedgerState, Trade
from tools.fixtures_io import ix_from_json, ix_to_json, state_from_json, state_to_json


def test_empty_ledger_digest(vector_test_group) -> None:
    digest = ledger_digest(LedgerState())
    assert len(digest) == 64
    vector_test_group(
        "state/digest.json",
        {"name": "empty_ledger", "input": {"state": state_to_json(LedgerState())}, "expected": {"digest": digest}},
    )


def test_digest_ignores_insertion_order(scenario) -> None:
    state = scenario.state
    reordered = LedgerState(
        accounts=dict(reversed(list(state.accounts.items()))),
        mints=dict(reversed(list(state.mints.items()))),
        token_accounts=dict(reversed(list(state.token_accounts.items()))),
        slot=state.slot,
    )
    assert ledger_digest(reordered) == ledger_digest(state)


def test_digest_tracks_balances_and_slot(scenario) -> None:
    base = ledger_digest(scenario.state)

    bumped = deepcopy(scenario.state)
    bumped.accounts[MAKER].lamports += 1
    assert ledger_digest(bumped) != base

    tokens = deepcopy(scenario.state)
    tokens.token_accounts[scenario.taker_token_b].amount -= 1
    assert ledger_digest(tokens) != base

    later = deepcopy(scenario.state)
    later.slot += 1
    assert ledger_digest(later) != base


def test_state_json_round_trip(scenario) -> None:
    post, result = apply_ix(
        scenario.state,
        mk_initialize(scenario, Trade.native_for_token(MAKER, scenario.maker_token_b, MINT_B)),
    )
    assert result.ok, result
    restored = state_from_json(state_to_json(post))
    assert restored == post
    assert ledger_digest(restored) == ledger_digest(post)


def test_instruction_json_round_trip(scenario) -> None:
    ix = mk_initialize(scenario, Trade.native_for_token(MAKER, scenario.maker_token_b, MINT_B))
    data = ix_to_json(ix)
    assert data["ix_type"] == "initialize"
    assert data["data_hex"]
    assert ix_from_json(data) == ix
