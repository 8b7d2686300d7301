"""Escrow instruction specs (initialize / exchange / cancel)."""

from __future__ import annotations

from copy import deepcopy

from ..assets import (
    balance_of,
    close_vault,
    custody_transfer_in,
    custody_transfer_out,
    debit,
    ledger_amount,
    require_same_asset,
)
from ..authority import VaultAuthority
from ..config import COFRE_PROGRAM_ID, ESCROW_STATE_SPACE, TOKEN_ACCOUNT_SPACE, U64_MAX
from ..encoding import decode_escrow_state, encode_escrow_state
from ..errors import ErrorCode, EscrowError
from ..ledger import close_account, create_account, lamports_of, rent_exempt_minimum, require_signer
from ..types import (
    Asset,
    CancelPayload,
    EscrowState,
    ExchangePayload,
    InitializePayload,
    Instruction,
    InstructionType,
    LedgerState,
    NativeAsset,
    TokenAsset,
    Trade,
)

_PAYLOAD_TYPES = {
    InstructionType.INITIALIZE: InitializePayload,
    InstructionType.EXCHANGE: ExchangePayload,
    InstructionType.CANCEL: CancelPayload,
}


def fetch_escrow_state(state: LedgerState, escrow_state: bytes) -> EscrowState:
    """Read-only fetch of an open escrow record."""
    acct = state.accounts.get(escrow_state)
    if acct is None:
        raise EscrowError(ErrorCode.RECORD_NOT_OPEN, "escrow record not found")
    if acct.owner != COFRE_PROGRAM_ID:
        raise EscrowError(ErrorCode.INVALID_ACCOUNT_OWNER, "account is not owned by the escrow program")
    return decode_escrow_state(acct.data)


def _in_use(state: LedgerState, address: bytes) -> bool:
    acct = state.accounts.get(address)
    return acct is not None and (acct.lamports > 0 or bool(acct.data))


def _require_controls(state: LedgerState, asset: Asset, address: bytes, who: bytes, signers: set) -> None:
    """`who` must be able to move funds out of `address` and must have signed."""
    if isinstance(asset, TokenAsset):
        controller = state.token_accounts[address].owner
    else:
        controller = address
    if controller != who or who not in signers:
        raise EscrowError(ErrorCode.UNAUTHORIZED, "source account is not controlled by the signer")


def _prove_vault(record: EscrowState, escrow_state: bytes, bump: int, vault: bytes) -> VaultAuthority:
    if vault != record.vault or bump != record.bump:
        raise EscrowError(ErrorCode.AUTHORITY_MISMATCH, "bump does not reproduce the vault authority")
    return VaultAuthority.prove(escrow_state, bump, record.vault)


def verify(state: LedgerState, ix: Instruction) -> None:
    expected = _PAYLOAD_TYPES.get(ix.ix_type)
    if expected is None:
        raise EscrowError(ErrorCode.INVALID_INSTRUCTION, f"unsupported instruction: {ix.ix_type}")
    if not isinstance(ix.payload, expected):
        raise EscrowError(ErrorCode.INVALID_PAYLOAD, f"{ix.ix_type.value} payload must be {expected.__name__}")

    if ix.ix_type == InstructionType.INITIALIZE:
        _verify_initialize(state, ix, ix.payload)
    elif ix.ix_type == InstructionType.EXCHANGE:
        _verify_exchange(state, ix, ix.payload)
    else:
        _verify_cancel(state, ix, ix.payload)


def apply(state: LedgerState, ix: Instruction) -> LedgerState:
    if ix.ix_type == InstructionType.INITIALIZE:
        return _apply_initialize(state, ix, ix.payload)
    if ix.ix_type == InstructionType.EXCHANGE:
        return _apply_exchange(state, ix, ix.payload)
    if ix.ix_type == InstructionType.CANCEL:
        return _apply_cancel(state, ix, ix.payload)
    raise EscrowError(ErrorCode.INVALID_INSTRUCTION, f"unsupported instruction: {ix.ix_type}")


# --- INITIALIZE ---


def _verify_initialize(state: LedgerState, ix: Instruction, p: InitializePayload) -> None:
    if p.maker_amount <= 0 or p.taker_amount <= 0:
        raise EscrowError(ErrorCode.INVALID_AMOUNT, "escrow amounts must be > 0")
    if p.maker_amount > U64_MAX or p.taker_amount > U64_MAX:
        raise EscrowError(ErrorCode.OVERFLOW, "escrow amount exceeds u64 max")
    if not isinstance(p.trade, Trade):
        raise EscrowError(ErrorCode.INVALID_PAYLOAD, "trade must be a Trade")

    signers = set(ix.signers)
    require_signer(signers, p.maker, "maker")
    require_signer(signers, p.escrow_state, "escrow state")

    if _in_use(state, p.escrow_state):
        raise EscrowError(ErrorCode.ACCOUNT_EXISTS, "escrow record already in use")
    VaultAuthority.prove(p.escrow_state, p.bump, p.escrow_vault)
    if _in_use(state, p.escrow_vault) or p.escrow_vault in state.token_accounts:
        raise EscrowError(ErrorCode.ACCOUNT_EXISTS, "escrow vault already in use")

    trade = p.trade
    require_same_asset(state, trade.from_asset, trade.from_asset.address)
    require_same_asset(state, trade.to_asset, trade.to_asset.address)
    _require_controls(state, trade.from_asset, trade.from_asset.address, p.maker, signers)

    deposit = ledger_amount(trade.from_asset, p.maker_amount)
    if balance_of(state, trade.from_asset, trade.from_asset.address) < deposit:
        raise EscrowError(ErrorCode.INSUFFICIENT_BALANCE, "deposit source cannot cover maker_amount")

    lamports_needed = rent_exempt_minimum(ESCROW_STATE_SPACE)
    if isinstance(trade.from_asset, NativeAsset):
        lamports_needed += deposit
    else:
        lamports_needed += rent_exempt_minimum(TOKEN_ACCOUNT_SPACE)
    if lamports_of(state, p.maker) < lamports_needed:
        raise EscrowError(ErrorCode.INSUFFICIENT_BALANCE, "maker cannot fund deposit and storage")


def _apply_initialize(state: LedgerState, ix: Instruction, p: InitializePayload) -> LedgerState:
    ns = deepcopy(state)
    authority = VaultAuthority.prove(p.escrow_state, p.bump, p.escrow_vault)

    record_account = create_account(
        ns, p.maker, p.escrow_state, ESCROW_STATE_SPACE, COFRE_PROGRAM_ID
    )
    custody_transfer_in(
        ns,
        p.trade.from_asset,
        p.maker_amount,
        p.trade.from_asset.address,
        authority.address,
        payer=p.maker,
        signers=ix.signers,
    )

    record = EscrowState(
        maker=p.maker,
        maker_amount=p.maker_amount,
        taker_amount=p.taker_amount,
        trade=p.trade,
        vault=authority.address,
        bump=authority.bump,
    )
    record_account.data = encode_escrow_state(record)
    return ns


# --- EXCHANGE ---


def _verify_exchange(state: LedgerState, ix: Instruction, p: ExchangePayload) -> None:
    signers = set(ix.signers)
    require_signer(signers, p.taker, "taker")

    record = fetch_escrow_state(state, p.escrow_state)
    _prove_vault(record, p.escrow_state, p.bump, p.escrow_vault)

    if p.maker != record.maker:
        raise EscrowError(ErrorCode.ACCOUNT_MISMATCH, "maker does not match escrow record")
    if p.to_maker_account != record.trade.to_asset.address:
        raise EscrowError(ErrorCode.ACCOUNT_MISMATCH, "maker receiving account does not match escrow record")
    escrow_accounts = {p.escrow_state, record.vault}
    if p.from_taker_account in escrow_accounts or p.to_taker_account in escrow_accounts:
        raise EscrowError(ErrorCode.ACCOUNT_MISMATCH, "taker accounts must not be escrow accounts")

    # Taker pays in what the maker asked for and receives what the maker deposited.
    require_same_asset(state, record.trade.to_asset, p.from_taker_account)
    require_same_asset(state, record.trade.from_asset, p.to_taker_account)

    payment = ledger_amount(record.trade.to_asset, record.taker_amount)
    if balance_of(state, record.trade.to_asset, p.from_taker_account) < payment:
        raise EscrowError(ErrorCode.INSUFFICIENT_BALANCE, "taker cannot cover taker_amount")
    _require_controls(state, record.trade.to_asset, p.from_taker_account, p.taker, signers)


def _apply_exchange(state: LedgerState, ix: Instruction, p: ExchangePayload) -> LedgerState:
    ns = deepcopy(state)
    record = fetch_escrow_state(ns, p.escrow_state)
    authority = _prove_vault(record, p.escrow_state, p.bump, p.escrow_vault)
    trade = record.trade

    debit(
        ns,
        trade.to_asset,
        record.taker_amount,
        p.from_taker_account,
        trade.to_asset.address,
        ix.signers,
    )
    custody_transfer_out(ns, trade.from_asset, record.maker_amount, p.to_taker_account, authority)
    close_vault(ns, trade.from_asset, authority, record.maker, surplus_to=trade.from_asset.address)
    close_account(ns, p.escrow_state, record.maker)
    return ns


# --- CANCEL ---


def _verify_cancel(state: LedgerState, ix: Instruction, p: CancelPayload) -> None:
    record = fetch_escrow_state(state, p.escrow_state)
    if p.maker != record.maker or p.maker not in set(ix.signers):
        raise EscrowError(ErrorCode.UNAUTHORIZED, "only the maker can cancel")
    _prove_vault(record, p.escrow_state, p.bump, p.escrow_vault)
    if p.from_maker_account != record.trade.from_asset.address:
        raise EscrowError(ErrorCode.ACCOUNT_MISMATCH, "refund account does not match escrow record")


def _apply_cancel(state: LedgerState, ix: Instruction, p: CancelPayload) -> LedgerState:
    ns = deepcopy(state)
    record = fetch_escrow_state(ns, p.escrow_state)
    authority = _prove_vault(record, p.escrow_state, p.bump, p.escrow_vault)
    trade = record.trade

    custody_transfer_out(ns, trade.from_asset, record.maker_amount, p.from_maker_account, authority)
    close_vault(ns, trade.from_asset, authority, record.maker, surplus_to=p.from_maker_account)
    close_account(ns, p.escrow_state, record.maker)
    return ns
