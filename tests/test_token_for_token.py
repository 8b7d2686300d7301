"""Escrow fixtures: maker deposits mint A tokens, asks for mint B tokens."""

from __future__ import annotations

from cofre_spec.ledger import lamports_of
from cofre_spec.scenario import mk_cancel, mk_exchange, mk_initialize
from cofre_spec.test_accounts import MAKER, MALLORY, MINT_A, MINT_B, TAKER
from cofre_spec.types import Trade

FIXTURE = "escrow/token_for_token.json"


def _trade(sc) -> Trade:
    return Trade.token_for_token(sc.maker_token_a, MINT_A, sc.maker_token_b, MINT_B)


def _initialized(sc, state_test_group, name: str = "token_for_token_initialize"):
    post, result = state_test_group(FIXTURE, name, sc.state, mk_initialize(sc, _trade(sc)))
    assert result.ok, result
    return post


def _token_supply(state) -> dict:
    totals: dict = {}
    for ta in state.token_accounts.values():
        totals[ta.mint] = totals.get(ta.mint, 0) + ta.amount
    return totals


def test_initialize(scenario, state_test_group) -> None:
    sc = scenario
    post = _initialized(sc, state_test_group)

    assert post.token_accounts[sc.escrow_vault].amount == sc.maker_amount
    assert post.token_accounts[sc.maker_token_a].amount == 0
    assert _token_supply(post) == _token_supply(sc.state)


def test_exchange_with_wrong_mint_is_rejected(scenario, state_test_group) -> None:
    sc = scenario
    post = _initialized(sc, state_test_group)

    ix = mk_exchange(sc, sc.taker_token_c, sc.taker_token_a, sc.maker_token_b)
    after, result = state_test_group(FIXTURE, "token_for_token_exchange_wrong_mint", post, ix)

    assert not result.ok
    assert result.error.code.name == "MINT_MISMATCH"
    assert after is post


def test_exchange_receiving_account_with_wrong_mint_is_rejected(scenario, state_test_group) -> None:
    sc = scenario
    post = _initialized(sc, state_test_group)

    # The mint A deposit cannot be delivered into a mint C account.
    ix = mk_exchange(sc, sc.taker_token_b, sc.taker_token_c, sc.maker_token_b)
    after, result = state_test_group(FIXTURE, "token_for_token_exchange_wrong_receiving_mint", post, ix)

    assert not result.ok
    assert result.error.code.name == "MINT_MISMATCH"
    assert after is post

def test_exchange_settles_both_legs(scenario, state_test_group) -> None:
    sc = scenario
    maker_before = lamports_of(sc.state, MAKER)
    post = _initialized(sc, state_test_group)

    ix = mk_exchange(sc, sc.taker_token_b, sc.taker_token_a, sc.maker_token_b)
    after, result = state_test_group(FIXTURE, "token_for_token_exchange", post, ix)

    assert result.ok, result
    assert after.token_accounts[sc.maker_token_b].amount == sc.taker_amount
    assert after.token_accounts[sc.taker_token_a].amount == sc.maker_amount
    assert after.token_accounts[sc.taker_token_b].amount == 0
    assert after.token_accounts[sc.maker_token_a].amount == 0
    assert lamports_of(after, MAKER) == maker_before
    assert sc.escrow_vault not in after.token_accounts
    assert sc.escrow_state not in after.accounts
    assert _token_supply(after) == _token_supply(sc.state)


def test_exchange_paying_from_someone_elses_account_is_rejected(scenario, state_test_group) -> None:
    sc = scenario
    post = _initialized(sc, state_test_group)

    # Mallory signs but tries to pay with the taker's mint B tokens.
    ix = mk_exchange(sc, sc.taker_token_b, sc.taker_token_a, sc.maker_token_b, taker=MALLORY)
    after, result = state_test_group(FIXTURE, "token_for_token_exchange_foreign_source", post, ix)

    assert not result.ok
    assert result.error.code.name == "UNAUTHORIZED"
    assert after.token_accounts[sc.taker_token_b].amount == sc.taker_amount


def test_exchange_with_wrong_maker_account_is_rejected(scenario, state_test_group) -> None:
    sc = scenario
    post = _initialized(sc, state_test_group)

    ix = mk_exchange(sc, sc.taker_token_b, sc.taker_token_a, sc.taker_token_b)
    after, result = state_test_group(FIXTURE, "token_for_token_exchange_wrong_maker_account", post, ix)

    assert not result.ok
    assert result.error.code.name == "ACCOUNT_MISMATCH"


def test_cancel_restores_pre_initialize_balances(scenario, state_test_group) -> None:
    sc = scenario
    post = _initialized(sc, state_test_group)

    after, result = state_test_group(
        FIXTURE, "token_for_token_cancel", post, mk_cancel(sc, sc.maker_token_a)
    )

    assert result.ok, result
    assert after.token_accounts == sc.state.token_accounts
    assert lamports_of(after, MAKER) == lamports_of(sc.state, MAKER)
    assert lamports_of(after, TAKER) == lamports_of(sc.state, TAKER)


def test_cancel_by_non_maker_is_rejected(scenario, state_test_group) -> None:
    sc = scenario
    post = _initialized(sc, state_test_group)

    ix = mk_cancel(sc, sc.maker_token_a, caller=TAKER)
    after, result = state_test_group(FIXTURE, "token_for_token_cancel_not_maker", post, ix)

    assert not result.ok
    assert result.error.code.name == "UNAUTHORIZED"
    assert sc.escrow_state in after.accounts
