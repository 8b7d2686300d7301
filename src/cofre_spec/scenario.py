"""Shared pre-state and instruction builders for tests and fixtures.

`base_scenario` reproduces the standard trade setup: maker, taker and mint
authority funded with native balance; mints A, B and C; associated token
accounts for both parties; maker holding `maker_amount` of A, taker holding
`taker_amount` of B and of C.
"""

from __future__ import annotations

from dataclasses import dataclass

from .authority import find_vault
from .config import LAMPORTS_PER_SOL
from .ledger import airdrop
from .test_accounts import ESCROW_STATE, MAKER, MINT_A, MINT_AUTHORITY, MINT_B, MINT_C, TAKER
from .token_ledger import create_associated_token_account, create_mint, mint_to
from .types import (
    CancelPayload,
    ExchangePayload,
    InitializePayload,
    Instruction,
    InstructionType,
    LedgerState,
    Trade,
)

AIRDROP_LAMPORTS = 100 * LAMPORTS_PER_SOL
DEFAULT_MAKER_AMOUNT = 1
DEFAULT_TAKER_AMOUNT = 2


@dataclass
class Scenario:
    state: LedgerState
    maker_token_a: bytes
    maker_token_b: bytes
    taker_token_a: bytes
    taker_token_b: bytes
    taker_token_c: bytes
    escrow_state: bytes
    escrow_vault: bytes
    vault_bump: int
    maker_amount: int = DEFAULT_MAKER_AMOUNT
    taker_amount: int = DEFAULT_TAKER_AMOUNT


def base_scenario(
    maker_amount: int = DEFAULT_MAKER_AMOUNT,
    taker_amount: int = DEFAULT_TAKER_AMOUNT,
    escrow_state: bytes = ESCROW_STATE,
) -> Scenario:
    state = LedgerState()
    for who in (MAKER, TAKER, MINT_AUTHORITY):
        airdrop(state, who, AIRDROP_LAMPORTS)

    create_mint(state, MAKER, MINT_A, MINT_AUTHORITY)
    create_mint(state, TAKER, MINT_B, MINT_AUTHORITY)
    create_mint(state, MINT_AUTHORITY, MINT_C, MINT_AUTHORITY)

    maker_token_a = create_associated_token_account(state, MAKER, MAKER, MINT_A)
    maker_token_b = create_associated_token_account(state, MAKER, MAKER, MINT_B)
    taker_token_a = create_associated_token_account(state, TAKER, TAKER, MINT_A)
    taker_token_b = create_associated_token_account(state, TAKER, TAKER, MINT_B)
    taker_token_c = create_associated_token_account(state, TAKER, TAKER, MINT_C)

    mint_to(state, MINT_A, maker_token_a, maker_amount, [MINT_AUTHORITY])
    mint_to(state, MINT_B, taker_token_b, taker_amount, [MINT_AUTHORITY])
    mint_to(state, MINT_C, taker_token_c, taker_amount, [MINT_AUTHORITY])

    escrow_vault, vault_bump = find_vault(escrow_state)
    return Scenario(
        state=state,
        maker_token_a=maker_token_a,
        maker_token_b=maker_token_b,
        taker_token_a=taker_token_a,
        taker_token_b=taker_token_b,
        taker_token_c=taker_token_c,
        escrow_state=escrow_state,
        escrow_vault=escrow_vault,
        vault_bump=vault_bump,
        maker_amount=maker_amount,
        taker_amount=taker_amount,
    )


def mk_initialize(
    sc: Scenario,
    trade: Trade,
    maker_amount: int | None = None,
    taker_amount: int | None = None,
    bump: int | None = None,
    maker: bytes = MAKER,
) -> Instruction:
    payload = InitializePayload(
        maker_amount=sc.maker_amount if maker_amount is None else maker_amount,
        taker_amount=sc.taker_amount if taker_amount is None else taker_amount,
        bump=sc.vault_bump if bump is None else bump,
        maker=maker,
        escrow_state=sc.escrow_state,
        escrow_vault=sc.escrow_vault,
        trade=trade,
    )
    return Instruction(InstructionType.INITIALIZE, payload, signers=[maker, sc.escrow_state])


def mk_exchange(
    sc: Scenario,
    from_taker_account: bytes,
    to_taker_account: bytes,
    to_maker_account: bytes,
    bump: int | None = None,
    taker: bytes = TAKER,
) -> Instruction:
    payload = ExchangePayload(
        bump=sc.vault_bump if bump is None else bump,
        taker=taker,
        from_taker_account=from_taker_account,
        to_taker_account=to_taker_account,
        maker=MAKER,
        to_maker_account=to_maker_account,
        escrow_state=sc.escrow_state,
        escrow_vault=sc.escrow_vault,
    )
    return Instruction(InstructionType.EXCHANGE, payload, signers=[taker])


def mk_cancel(
    sc: Scenario,
    from_maker_account: bytes,
    bump: int | None = None,
    caller: bytes = MAKER,
) -> Instruction:
    payload = CancelPayload(
        bump=sc.vault_bump if bump is None else bump,
        maker=caller,
        from_maker_account=from_maker_account,
        escrow_state=sc.escrow_state,
        escrow_vault=sc.escrow_vault,
    )
    return Instruction(InstructionType.CANCEL, payload, signers=[caller])
