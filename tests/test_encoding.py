"""Account-data and instruction-data layout specs."""

from __future__ import annotations

import hashlib

import pytest

from cofre_spec.authority import find_vault
from cofre_spec.config import DISCRIMINATOR_SIZE, ESCROW_STATE_SPACE, U64_MAX
from cofre_spec.encoding import (
    ESCROW_STATE_DISCRIMINATOR,
    IX_DISCRIMINATORS,
    Reader,
    Writer,
    decode_escrow_state,
    decode_instruction_data,
    encode_escrow_state,
    encode_instruction_data,
)
from cofre_spec.errors import ErrorCode, EscrowError
from cofre_spec.test_accounts import ESCROW_STATE, MAKER, MINT_A, MINT_B, identity
from cofre_spec.types import EscrowState, InstructionType, Trade

MAKER_TOKEN_A = identity("maker_token_a")
MAKER_TOKEN_B = identity("maker_token_b")


def _record(trade: Trade) -> EscrowState:
    vault, bump = find_vault(ESCROW_STATE)
    return EscrowState(
        maker=MAKER,
        maker_amount=1,
        taker_amount=2,
        trade=trade,
        vault=vault,
        bump=bump,
    )


def test_discriminators_are_anchor_style() -> None:
    assert ESCROW_STATE_DISCRIMINATOR == hashlib.sha256(b"account:EscrowState").digest()[:8]
    assert IX_DISCRIMINATORS[InstructionType.INITIALIZE] == hashlib.sha256(b"global:initialize").digest()[:8]
    assert len(set(IX_DISCRIMINATORS.values())) == len(IX_DISCRIMINATORS)


@pytest.mark.parametrize(
    "trade",
    [
        Trade.native_for_token(MAKER, MAKER_TOKEN_B, MINT_B),
        Trade.token_for_native(MAKER_TOKEN_A, MINT_A, MAKER),
        Trade.token_for_token(MAKER_TOKEN_A, MINT_A, MAKER_TOKEN_B, MINT_B),
    ],
    ids=lambda t: t.kind.value,
)
def test_escrow_state_layout(trade, vector_test_group) -> None:
    record = _record(trade)
    data = encode_escrow_state(record)

    assert len(data) == ESCROW_STATE_SPACE
    assert data[:DISCRIMINATOR_SIZE] == ESCROW_STATE_DISCRIMINATOR
    assert data[DISCRIMINATOR_SIZE : DISCRIMINATOR_SIZE + 32] == MAKER
    assert int.from_bytes(data[40:48], "little") == 1
    assert int.from_bytes(data[48:56], "little") == 2
    assert decode_escrow_state(data) == record

    vector_test_group(
        "encoding/escrow_state.json",
        {
            "name": f"escrow_state_{trade.kind.value}",
            "expected": {"data_hex": data.hex()},
        },
    )


def test_decode_rejects_foreign_discriminator() -> None:
    data = bytearray(encode_escrow_state(_record(Trade.native_for_token(MAKER, MAKER_TOKEN_B, MINT_B))))
    data[0] ^= 0xFF
    with pytest.raises(EscrowError) as exc:
        decode_escrow_state(bytes(data))
    assert exc.value.code == ErrorCode.INVALID_ACCOUNT_DATA


def test_decode_rejects_unknown_trade_tag() -> None:
    data = bytearray(encode_escrow_state(_record(Trade.native_for_token(MAKER, MAKER_TOKEN_B, MINT_B))))
    data[56] = 7
    with pytest.raises(EscrowError) as exc:
        decode_escrow_state(bytes(data))
    assert exc.value.code == ErrorCode.INVALID_ACCOUNT_DATA


def test_decode_rejects_truncated_data() -> None:
    data = encode_escrow_state(_record(Trade.native_for_token(MAKER, MAKER_TOKEN_B, MINT_B)))
    with pytest.raises(EscrowError) as exc:
        decode_escrow_state(data[:50])
    assert exc.value.code == ErrorCode.INVALID_ACCOUNT_DATA


def test_initialize_instruction_data() -> None:
    data = encode_instruction_data(InstructionType.INITIALIZE, 254, maker_amount=1, taker_amount=2)
    assert len(data) == DISCRIMINATOR_SIZE + 3 * 8
    assert decode_instruction_data(data) == {
        "ix_type": InstructionType.INITIALIZE,
        "maker_amount": 1,
        "taker_amount": 2,
        "bump": 254,
    }


@pytest.mark.parametrize("ix_type", [InstructionType.EXCHANGE, InstructionType.CANCEL])
def test_bump_only_instruction_data(ix_type) -> None:
    data = encode_instruction_data(ix_type, 253)
    assert len(data) == DISCRIMINATOR_SIZE + 8
    assert decode_instruction_data(data) == {"ix_type": ix_type, "bump": 253}


def test_instruction_data_unknown_discriminator() -> None:
    with pytest.raises(EscrowError) as exc:
        decode_instruction_data(bytes(16))
    assert exc.value.code == ErrorCode.INVALID_INSTRUCTION


def test_instruction_data_trailing_bytes() -> None:
    data = encode_instruction_data(InstructionType.CANCEL, 1) + b"\x00"
    with pytest.raises(EscrowError) as exc:
        decode_instruction_data(data)
    assert exc.value.code == ErrorCode.INVALID_FORMAT


def test_writer_rejects_out_of_range_u64() -> None:
    w = Writer(bytearray())
    with pytest.raises(EscrowError) as exc:
        w.write_u64(U64_MAX + 1)
    assert exc.value.code == ErrorCode.OVERFLOW


def test_reader_round_trips_u64_max() -> None:
    w = Writer(bytearray())
    w.write_u64(U64_MAX)
    assert Reader(bytes(w.buf)).read_u64() == U64_MAX
