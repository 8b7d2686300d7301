"""Ledger runtime collaborator: system accounts, lamport transfers and rent.

Only the surface the escrow program consumes is modelled. Every helper
mutates the given `LedgerState` in place; atomicity is provided by the
caller (`state_transition` works on a deep copy).
"""

from __future__ import annotations

from typing import Iterable, Optional

from .config import (
    ACCOUNT_STORAGE_OVERHEAD,
    EXEMPTION_THRESHOLD_YEARS,
    LAMPORTS_PER_BYTE_YEAR,
    SYSTEM_PROGRAM_ID,
    U64_MAX,
)
from .errors import ErrorCode, EscrowError
from .types import AccountState, LedgerState


def rent_exempt_minimum(space: int) -> int:
    """Storage allowance that keeps an account of `space` data bytes alive."""
    return (ACCOUNT_STORAGE_OVERHEAD + space) * LAMPORTS_PER_BYTE_YEAR * EXEMPTION_THRESHOLD_YEARS


def apply_balance_change(balance: int, delta: int) -> int:
    """Apply +/- balance with u64 bounds."""
    new_balance = balance + delta
    if new_balance < 0:
        raise EscrowError(ErrorCode.INSUFFICIENT_BALANCE, "insufficient balance")
    if new_balance > U64_MAX:
        raise EscrowError(ErrorCode.OVERFLOW, "balance overflow")
    return new_balance


def get_account(state: LedgerState, address: bytes) -> Optional[AccountState]:
    return state.accounts.get(address)


def lamports_of(state: LedgerState, address: bytes) -> int:
    acct = state.accounts.get(address)
    return acct.lamports if acct is not None else 0


def is_native_holder(state: LedgerState, address: bytes) -> bool:
    """A native holder is a system-owned account without data, or unused."""
    acct = state.accounts.get(address)
    if acct is None:
        return True
    return acct.owner == SYSTEM_PROGRAM_ID and not acct.data


def require_signer(signers: Iterable[bytes], address: bytes, what: str) -> None:
    if address not in set(signers):
        raise EscrowError(ErrorCode.MISSING_SIGNATURE, f"{what} must sign")


def airdrop(state: LedgerState, address: bytes, lamports: int) -> AccountState:
    acct = state.accounts.get(address)
    if acct is None:
        acct = AccountState(address=address)
        state.accounts[address] = acct
    acct.lamports = apply_balance_change(acct.lamports, lamports)
    return acct


def system_transfer(state: LedgerState, source: bytes, destination: bytes, lamports: int) -> None:
    """Move lamports between system accounts; creates the destination if unused.

    The caller is responsible for checking that `source` signed (or that the
    program proved authority over it).
    """
    if lamports < 0:
        raise EscrowError(ErrorCode.INVALID_AMOUNT, "transfer amount invalid")
    sender = state.accounts.get(source)
    if sender is None:
        raise EscrowError(ErrorCode.ACCOUNT_NOT_FOUND, "transfer source not found")
    if sender.owner != SYSTEM_PROGRAM_ID or sender.data:
        raise EscrowError(ErrorCode.INVALID_ACCOUNT_OWNER, "transfer source is not a system account")
    if sender.lamports < lamports:
        raise EscrowError(ErrorCode.INSUFFICIENT_BALANCE, "insufficient lamports")
    receiver = state.accounts.get(destination)
    if receiver is None:
        receiver = AccountState(address=destination)
        state.accounts[destination] = receiver
    sender.lamports = apply_balance_change(sender.lamports, -lamports)
    receiver.lamports = apply_balance_change(receiver.lamports, lamports)
    _reap(state, source)


def create_account(
    state: LedgerState,
    payer: bytes,
    address: bytes,
    space: int,
    owner: bytes,
    data: Optional[bytes] = None,
) -> AccountState:
    """Create a rent-exempt account of `space` bytes funded by `payer`."""
    existing = state.accounts.get(address)
    if existing is not None and (existing.lamports > 0 or existing.data):
        raise EscrowError(ErrorCode.ACCOUNT_EXISTS, "account already in use")
    allowance = rent_exempt_minimum(space)
    system_transfer(state, payer, address, allowance)
    acct = state.accounts[address]
    acct.owner = owner
    acct.data = data if data is not None else bytes(space)
    return acct


def close_account(state: LedgerState, address: bytes, destination: bytes) -> int:
    """Delete `address`, crediting all of its lamports to `destination`."""
    acct = state.accounts.get(address)
    if acct is None:
        raise EscrowError(ErrorCode.ACCOUNT_NOT_FOUND, "account to close not found")
    reclaimed = acct.lamports
    receiver = state.accounts.get(destination)
    if receiver is None:
        receiver = AccountState(address=destination)
        state.accounts[destination] = receiver
    receiver.lamports = apply_balance_change(receiver.lamports, reclaimed)
    del state.accounts[address]
    return reclaimed


def _reap(state: LedgerState, address: bytes) -> None:
    # Accounts drained to zero lamports cease to exist.
    acct = state.accounts.get(address)
    if acct is not None and acct.lamports == 0:
        del state.accounts[address]
