"""Multi-instruction transactions: all-or-nothing and slot advance."""

from __future__ import annotations

from cofre_spec.errors import ErrorCode, mint_mismatch
from cofre_spec.scenario import mk_cancel, mk_exchange, mk_initialize
from cofre_spec.state_digest import ledger_digest
from cofre_spec.state_transition import TransitionResult, apply_transaction
from cofre_spec.test_accounts import MINT_A, MINT_B, TAKER
from cofre_spec.types import Trade


def _trade(sc) -> Trade:
    return Trade.token_for_token(sc.maker_token_a, MINT_A, sc.maker_token_b, MINT_B)


def test_initialize_and_exchange_in_one_transaction(scenario) -> None:
    sc = scenario
    post, result = apply_transaction(
        sc.state,
        [
            mk_initialize(sc, _trade(sc)),
            mk_exchange(sc, sc.taker_token_b, sc.taker_token_a, sc.maker_token_b),
        ],
    )
    assert result.ok, result
    assert result.logs == [
        "Program log: Instruction: Initialize",
        "Program log: Instruction: Exchange",
    ]
    assert post.slot == sc.state.slot + 1
    assert post.token_accounts[sc.taker_token_a].amount == 1
    assert sc.escrow_state not in post.accounts


def test_failing_second_instruction_rolls_back_first(scenario) -> None:
    sc = scenario
    digest = ledger_digest(sc.state)
    post, result = apply_transaction(
        sc.state,
        [
            mk_initialize(sc, _trade(sc)),
            mk_exchange(sc, sc.taker_token_c, sc.taker_token_a, sc.maker_token_b),
        ],
    )
    assert not result.ok
    assert result.error.code == ErrorCode.MINT_MISMATCH
    assert result.logs[0] == "Program log: Instruction: Initialize"
    assert result.logs[-1] == "Program log: Error: Account not associated with this Mint"
    assert post is sc.state
    assert ledger_digest(post) == digest
    assert sc.escrow_state not in post.accounts


def test_exchange_then_cancel_in_one_transaction_fails(scenario) -> None:
    sc = scenario
    post, result = apply_transaction(
        sc.state,
        [
            mk_initialize(sc, _trade(sc)),
            mk_exchange(sc, sc.taker_token_b, sc.taker_token_a, sc.maker_token_b),
            mk_cancel(sc, sc.maker_token_a),
        ],
    )
    assert result.error.code == ErrorCode.RECORD_NOT_OPEN
    assert post.token_accounts[sc.taker_token_b].amount == sc.taker_amount


def test_empty_transaction_is_rejected(scenario) -> None:
    post, result = apply_transaction(scenario.state, [])
    assert result.error.code == ErrorCode.INVALID_PAYLOAD
    assert post is scenario.state


def test_failure_result_carries_error_log() -> None:
    result = TransitionResult.failure(mint_mismatch(), ["Program log: Instruction: Exchange"])
    assert not result.ok
    assert result.logs == [
        "Program log: Instruction: Exchange",
        "Program log: Error: Account not associated with this Mint",
    ]
    assert "MINT_MISMATCH" in repr(result)


def test_taker_identity_unchanged_by_failed_transaction(scenario) -> None:
    sc = scenario
    before = sc.state.accounts[TAKER].lamports
    apply_transaction(sc.state, [mk_cancel(sc, sc.maker_token_a)])
    assert sc.state.accounts[TAKER].lamports == before
