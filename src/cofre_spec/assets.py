"""Asset transfer abstraction: native balances vs token balances.

Amounts passed in are escrow amounts: whole native units for native legs,
raw base units for token legs. Every check runs before the ledger is touched
so a failing transfer never leaves a partial balance change behind.
"""

from __future__ import annotations

from typing import Iterable

from .authority import VaultAuthority
from .config import LAMPORTS_PER_SOL, U64_MAX
from .errors import ErrorCode, EscrowError, mint_mismatch
from .ledger import close_account, is_native_holder, lamports_of, system_transfer
from .token_ledger import (
    close_token_account,
    create_token_account,
    get_token_account,
    token_transfer,
)
from .types import Asset, LedgerState, NativeAsset, TokenAsset


def native_units_to_lamports(amount: int) -> int:
    lamports = amount * LAMPORTS_PER_SOL
    if lamports > U64_MAX:
        raise EscrowError(ErrorCode.OVERFLOW, "native amount overflows u64 lamports")
    return lamports


def ledger_amount(asset: Asset, amount: int) -> int:
    """Translate an escrow amount into the unit the ledger moves."""
    if isinstance(asset, NativeAsset):
        return native_units_to_lamports(amount)
    return amount


def require_native_holder(state: LedgerState, address: bytes) -> None:
    if address in state.token_accounts or not is_native_holder(state, address):
        raise mint_mismatch()


def require_token_account(state: LedgerState, address: bytes, mint: bytes) -> None:
    ta = get_token_account(state, address)
    if ta is None or ta.mint != mint:
        raise mint_mismatch()


def require_same_asset(state: LedgerState, asset: Asset, address: bytes) -> None:
    """Check `address` can hold `asset`: same kind and, for tokens, same mint."""
    if isinstance(asset, TokenAsset):
        require_token_account(state, address, asset.mint)
    else:
        require_native_holder(state, address)


def balance_of(state: LedgerState, asset: Asset, address: bytes) -> int:
    """Ledger-unit balance of `address` for the kind of `asset`."""
    if isinstance(asset, TokenAsset):
        ta = get_token_account(state, address)
        return ta.amount if ta is not None else 0
    return lamports_of(state, address)


def debit(
    state: LedgerState,
    asset: Asset,
    amount: int,
    source: bytes,
    destination: bytes,
    signers: Iterable[bytes],
) -> None:
    """Move `amount` of `asset` from `source` to `destination`."""
    signers = set(signers)
    require_same_asset(state, asset, source)
    require_same_asset(state, asset, destination)
    value = ledger_amount(asset, amount)
    if isinstance(asset, TokenAsset):
        token_transfer(state, source, destination, value, signers=signers)
        return
    if source not in signers:
        raise EscrowError(ErrorCode.UNAUTHORIZED, "native source must sign")
    if lamports_of(state, source) < value:
        raise EscrowError(ErrorCode.INSUFFICIENT_BALANCE, "insufficient lamports")
    system_transfer(state, source, destination, value)


def custody_transfer_in(
    state: LedgerState,
    asset: Asset,
    amount: int,
    source: bytes,
    vault: bytes,
    payer: bytes,
    signers: Iterable[bytes],
) -> None:
    """Move the deposit into the vault, creating the vault token account if needed."""
    signers = set(signers)
    if isinstance(asset, TokenAsset):
        require_token_account(state, source, asset.mint)
        # The vault token account is owned by its own derived address.
        create_token_account(state, payer, vault, asset.mint, owner=vault)
    debit(state, asset, amount, source, vault, signers)


def custody_transfer_out(
    state: LedgerState,
    asset: Asset,
    amount: int,
    destination: bytes,
    authority: VaultAuthority,
) -> None:
    """Move `amount` out of the vault under the derived custody authority."""
    require_same_asset(state, asset, destination)
    value = ledger_amount(asset, amount)
    if isinstance(asset, TokenAsset):
        token_transfer(state, authority.address, destination, value, authority=authority)
        return
    if lamports_of(state, authority.address) < value:
        raise EscrowError(ErrorCode.INSUFFICIENT_BALANCE, "vault holds less than the deposit")
    system_transfer(state, authority.address, destination, value)


def close_vault(
    state: LedgerState,
    asset: Asset,
    authority: VaultAuthority,
    destination: bytes,
    surplus_to: bytes,
) -> int:
    """Destroy the vault, returning reclaimed lamports to `destination`.

    Tokens still in a token vault after settlement (anyone may transfer into
    it) are swept to `surplus_to` first. Leftover lamports in a native vault
    follow the reclaimed lamports to `destination`.
    """
    if isinstance(asset, TokenAsset):
        vault = get_token_account(state, authority.address)
        if vault is not None and vault.amount > 0:
            token_transfer(state, authority.address, surplus_to, vault.amount, authority=authority)
        return close_token_account(state, authority.address, destination, authority=authority)
    if authority.address in state.accounts:
        return close_account(state, authority.address, destination)
    return 0
