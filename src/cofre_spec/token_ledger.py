"""Ledger runtime collaborator: token mints and token accounts."""

from __future__ import annotations

from typing import Iterable, Optional

from .authority import VaultAuthority, associated_token_address
from .config import MINT_ACCOUNT_SPACE, TOKEN_ACCOUNT_SPACE, TOKEN_PROGRAM_ID
from .errors import ErrorCode, EscrowError, mint_mismatch
from .ledger import apply_balance_change, close_account, create_account
from .types import LedgerState, MintState, TokenAccountState


def get_token_account(state: LedgerState, address: bytes) -> Optional[TokenAccountState]:
    return state.token_accounts.get(address)


def token_balance(state: LedgerState, address: bytes) -> int:
    ta = state.token_accounts.get(address)
    if ta is None:
        raise EscrowError(ErrorCode.ACCOUNT_NOT_FOUND, "token account not found")
    return ta.amount


def _authorized(
    owner: bytes, signers: Iterable[bytes], authority: Optional[VaultAuthority]
) -> bool:
    if authority is not None and authority.address == owner:
        return True
    return owner in set(signers)


def create_mint(
    state: LedgerState,
    payer: bytes,
    mint: bytes,
    mint_authority: Optional[bytes],
    decimals: int = 0,
) -> MintState:
    create_account(state, payer, mint, MINT_ACCOUNT_SPACE, TOKEN_PROGRAM_ID)
    ms = MintState(address=mint, mint_authority=mint_authority, decimals=decimals)
    state.mints[mint] = ms
    return ms


def create_token_account(
    state: LedgerState, payer: bytes, address: bytes, mint: bytes, owner: bytes
) -> TokenAccountState:
    if mint not in state.mints:
        raise EscrowError(ErrorCode.ACCOUNT_NOT_FOUND, "mint not found")
    create_account(state, payer, address, TOKEN_ACCOUNT_SPACE, TOKEN_PROGRAM_ID)
    ta = TokenAccountState(address=address, mint=mint, owner=owner)
    state.token_accounts[address] = ta
    return ta


def create_associated_token_account(
    state: LedgerState, payer: bytes, owner: bytes, mint: bytes
) -> bytes:
    address = associated_token_address(owner, mint)
    create_token_account(state, payer, address, mint, owner)
    return address


def mint_to(
    state: LedgerState,
    mint: bytes,
    destination: bytes,
    amount: int,
    signers: Iterable[bytes],
) -> None:
    ms = state.mints.get(mint)
    if ms is None:
        raise EscrowError(ErrorCode.ACCOUNT_NOT_FOUND, "mint not found")
    if ms.mint_authority is None or ms.mint_authority not in set(signers):
        raise EscrowError(ErrorCode.UNAUTHORIZED, "mint authority must sign")
    ta = state.token_accounts.get(destination)
    if ta is None:
        raise EscrowError(ErrorCode.ACCOUNT_NOT_FOUND, "token account not found")
    if ta.mint != mint:
        raise mint_mismatch()
    ms.supply = apply_balance_change(ms.supply, amount)
    ta.amount = apply_balance_change(ta.amount, amount)


def token_transfer(
    state: LedgerState,
    source: bytes,
    destination: bytes,
    amount: int,
    signers: Iterable[bytes] = (),
    authority: Optional[VaultAuthority] = None,
) -> None:
    """Move tokens between two accounts of the same mint.

    The source owner must be among `signers` or be the address proven by
    `authority`.
    """
    src = state.token_accounts.get(source)
    dst = state.token_accounts.get(destination)
    if src is None or dst is None:
        raise EscrowError(ErrorCode.ACCOUNT_NOT_FOUND, "token account not found")
    if src.mint != dst.mint:
        raise mint_mismatch()
    if not _authorized(src.owner, signers, authority):
        raise EscrowError(ErrorCode.UNAUTHORIZED, "owner does not match")
    if src.amount < amount:
        raise EscrowError(ErrorCode.INSUFFICIENT_BALANCE, "insufficient token balance")
    src.amount = apply_balance_change(src.amount, -amount)
    dst.amount = apply_balance_change(dst.amount, amount)


def close_token_account(
    state: LedgerState,
    address: bytes,
    destination: bytes,
    signers: Iterable[bytes] = (),
    authority: Optional[VaultAuthority] = None,
) -> int:
    """Close an empty token account and return its reclaimed lamports."""
    ta = state.token_accounts.get(address)
    if ta is None:
        raise EscrowError(ErrorCode.ACCOUNT_NOT_FOUND, "token account not found")
    if not _authorized(ta.owner, signers, authority):
        raise EscrowError(ErrorCode.UNAUTHORIZED, "owner does not match")
    if ta.amount != 0:
        raise EscrowError(ErrorCode.INVALID_ACCOUNT_DATA, "non-native account has balance")
    del state.token_accounts[address]
    return close_account(state, address, destination)
