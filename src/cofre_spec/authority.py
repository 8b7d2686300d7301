"""Deterministic authority derivation (program-derived addresses).

A program-derived address is SHA-256 over ``seeds || program_id || marker``
that is *not* a valid ed25519 point, so no private key can exist for it. The
only way to act as such an address is for the owning program to reproduce the
derivation; `VaultAuthority` is the capability object that records such a
proof for one escrow vault.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Sequence

from .config import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    COFRE_PROGRAM_ID,
    MAX_BUMP_SEED,
    MAX_SEED_LEN,
    MAX_SEEDS,
    PDA_MARKER,
    TOKEN_PROGRAM_ID,
)
from .errors import ErrorCode, EscrowError

# ed25519 field / curve parameters
_P = 2**255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P


def is_on_curve(point: bytes) -> bool:
    """Return True if `point` decompresses to an ed25519 curve point.

    Mirrors compressed Edwards-Y decompression: y is the low 255 bits (reduced
    mod p) and the point is valid iff (y^2 - 1) / (d*y^2 + 1) is a square.
    """
    if len(point) != 32:
        return False
    y = (int.from_bytes(point, "little") & ((1 << 255) - 1)) % _P
    yy = y * y % _P
    u = (yy - 1) % _P
    v = (_D * yy + 1) % _P
    w = u * pow(v, _P - 2, _P) % _P
    if w == 0:
        return True
    return pow(w, (_P - 1) // 2, _P) == 1


def create_program_address(seeds: Sequence[bytes], program_id: bytes) -> bytes:
    if len(seeds) > MAX_SEEDS:
        raise EscrowError(ErrorCode.INVALID_SEEDS, "too many seeds")
    hasher = hashlib.sha256()
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise EscrowError(ErrorCode.INVALID_SEEDS, "seed too long")
        hasher.update(seed)
    hasher.update(program_id)
    hasher.update(PDA_MARKER)
    address = hasher.digest()
    if is_on_curve(address):
        raise EscrowError(ErrorCode.INVALID_SEEDS, "derived address is on curve")
    return address


def find_program_address(seeds: Sequence[bytes], program_id: bytes) -> tuple[bytes, int]:
    """Return the first off-curve address scanning bumps from 255 down to 0."""
    for bump in range(MAX_BUMP_SEED, -1, -1):
        try:
            return create_program_address([*seeds, bytes([bump])], program_id), bump
        except EscrowError as exc:
            if exc.code != ErrorCode.INVALID_SEEDS:
                raise
    raise EscrowError(ErrorCode.INVALID_SEEDS, "unable to find a viable bump seed")


def vault_seeds(escrow_state: bytes) -> list[bytes]:
    return [escrow_state]


def derive_vault(escrow_state: bytes, bump: int) -> bytes:
    if not 0 <= bump <= MAX_BUMP_SEED:
        raise EscrowError(ErrorCode.INVALID_SEEDS, "bump out of range")
    return create_program_address([*vault_seeds(escrow_state), bytes([bump])], COFRE_PROGRAM_ID)


def find_vault(escrow_state: bytes) -> tuple[bytes, int]:
    return find_program_address(vault_seeds(escrow_state), COFRE_PROGRAM_ID)


def associated_token_address(owner: bytes, mint: bytes) -> bytes:
    address, _ = find_program_address([owner, TOKEN_PROGRAM_ID, mint], ASSOCIATED_TOKEN_PROGRAM_ID)
    return address


@dataclass(frozen=True)
class VaultAuthority:
    """Proof that the program reproduced the vault derivation for a record."""

    escrow_state: bytes
    bump: int
    address: bytes

    @classmethod
    def prove(cls, escrow_state: bytes, bump: int, expected_vault: bytes) -> "VaultAuthority":
        try:
            address = derive_vault(escrow_state, bump)
        except EscrowError as exc:
            raise EscrowError(ErrorCode.AUTHORITY_MISMATCH, f"vault derivation failed: {exc.message}") from exc
        if address != expected_vault:
            raise EscrowError(ErrorCode.AUTHORITY_MISMATCH, "bump does not reproduce the vault authority")
        return cls(escrow_state=escrow_state, bump=bump, address=address)
