"""Canonical ledger state digest implementation (v1)."""
from __future__ import annotations

from blake3 import blake3

from .types import LedgerState

_NO_AUTHORITY = bytes(32)


def _u64_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u64 must be non-negative")
    return int(value).to_bytes(8, "big", signed=False)


def ledger_digest(state: LedgerState) -> str:
    """Compute state digest v1 of a ledger.

    Sections are encoded in canonical order (slot, accounts, mints, token
    accounts), each sorted by address, and hashed with BLAKE3-256.
    """
    buf = bytearray()
    buf += _u64_be(state.slot)

    buf += _u64_be(len(state.accounts))
    for addr in sorted(state.accounts):
        acct = state.accounts[addr]
        if len(addr) != 32:
            raise ValueError(f"address must be 32 bytes, got {len(addr)}")
        buf += addr
        buf += _u64_be(acct.lamports)
        buf += acct.owner
        buf += _u64_be(len(acct.data))
        buf += acct.data

    buf += _u64_be(len(state.mints))
    for addr in sorted(state.mints):
        mint = state.mints[addr]
        buf += addr
        buf += mint.mint_authority if mint.mint_authority is not None else _NO_AUTHORITY
        buf += _u64_be(mint.decimals)
        buf += _u64_be(mint.supply)

    buf += _u64_be(len(state.token_accounts))
    for addr in sorted(state.token_accounts):
        ta = state.token_accounts[addr]
        buf += addr
        buf += ta.mint
        buf += ta.owner
        buf += _u64_be(ta.amount)

    return blake3(bytes(buf)).hexdigest()
