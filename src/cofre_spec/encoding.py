"""Account-data and instruction-data encoding (Borsh, little-endian).

Layouts follow the Anchor conventions used by the deployed program: an
8-byte SHA-256 discriminator (``account:<Name>`` / ``global:<ix>``) followed by
the Borsh encoding of the fields.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from .config import DISCRIMINATOR_SIZE, ESCROW_STATE_SPACE, PUBKEY_BYTES, U64_MAX
from .errors import ErrorCode, EscrowError
from .types import EscrowState, InstructionType, NativeAsset, TokenAsset, Trade, TradeKind


def discriminator(namespace: str, name: str) -> bytes:
    return hashlib.sha256(f"{namespace}:{name}".encode()).digest()[:DISCRIMINATOR_SIZE]


ESCROW_STATE_DISCRIMINATOR = discriminator("account", "EscrowState")

IX_DISCRIMINATORS = {
    InstructionType.INITIALIZE: discriminator("global", "initialize"),
    InstructionType.EXCHANGE: discriminator("global", "exchange"),
    InstructionType.CANCEL: discriminator("global", "cancel"),
}

# Variant order of the on-ledger Trade enum.
TRADE_TAGS = {
    TradeKind.NATIVE_FOR_TOKEN: 0,
    TradeKind.TOKEN_FOR_NATIVE: 1,
    TradeKind.TOKEN_FOR_TOKEN: 2,
}
_TAG_TO_KIND = {v: k for k, v in TRADE_TAGS.items()}


@dataclass
class Writer:
    buf: bytearray

    def write_u8(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(1, "little", signed=False))

    def write_u64(self, v: int) -> None:
        if not 0 <= v <= U64_MAX:
            raise EscrowError(ErrorCode.OVERFLOW, "u64 out of range")
        self.buf.extend(int(v).to_bytes(8, "little", signed=False))

    def write_pubkey(self, v: bytes) -> None:
        if len(v) != PUBKEY_BYTES:
            raise EscrowError(ErrorCode.INVALID_FORMAT, f"pubkey must be {PUBKEY_BYTES} bytes")
        self.buf.extend(v)

    def write_bytes(self, b: bytes) -> None:
        self.buf.extend(b)


@dataclass
class Reader:
    data: bytes
    pos: int = 0

    def _take(self, n: int) -> bytes:
        if self.pos + n > len(self.data):
            raise EscrowError(ErrorCode.INVALID_ACCOUNT_DATA, "unexpected end of data")
        chunk = self.data[self.pos : self.pos + n]
        self.pos += n
        return chunk

    def read_u8(self) -> int:
        return self._take(1)[0]

    def read_u64(self) -> int:
        return int.from_bytes(self._take(8), "little", signed=False)

    def read_pubkey(self) -> bytes:
        return bytes(self._take(PUBKEY_BYTES))

    def read_bytes(self, n: int) -> bytes:
        return bytes(self._take(n))


def _write_trade(w: Writer, trade: Trade) -> None:
    w.write_u8(TRADE_TAGS[trade.kind])
    if trade.kind == TradeKind.NATIVE_FOR_TOKEN:
        w.write_pubkey(trade.from_asset.holder)
        w.write_pubkey(trade.to_asset.account)
        w.write_pubkey(trade.to_asset.mint)
    elif trade.kind == TradeKind.TOKEN_FOR_NATIVE:
        w.write_pubkey(trade.from_asset.account)
        w.write_pubkey(trade.from_asset.mint)
        w.write_pubkey(trade.to_asset.holder)
    else:
        w.write_pubkey(trade.from_asset.account)
        w.write_pubkey(trade.from_asset.mint)
        w.write_pubkey(trade.to_asset.account)
        w.write_pubkey(trade.to_asset.mint)


def _read_trade(r: Reader) -> Trade:
    tag = r.read_u8()
    kind = _TAG_TO_KIND.get(tag)
    if kind is None:
        raise EscrowError(ErrorCode.INVALID_ACCOUNT_DATA, f"unknown trade tag {tag}")
    if kind == TradeKind.NATIVE_FOR_TOKEN:
        from_native = r.read_pubkey()
        to_token = r.read_pubkey()
        to_mint = r.read_pubkey()
        return Trade(kind, NativeAsset(from_native), TokenAsset(to_token, to_mint))
    if kind == TradeKind.TOKEN_FOR_NATIVE:
        from_token = r.read_pubkey()
        from_mint = r.read_pubkey()
        to_native = r.read_pubkey()
        return Trade(kind, TokenAsset(from_token, from_mint), NativeAsset(to_native))
    from_token = r.read_pubkey()
    from_mint = r.read_pubkey()
    to_token = r.read_pubkey()
    to_mint = r.read_pubkey()
    return Trade(kind, TokenAsset(from_token, from_mint), TokenAsset(to_token, to_mint))


def encode_escrow_state(record: EscrowState) -> bytes:
    """Serialize a record, zero-padded to the fixed account space."""
    w = Writer(bytearray())
    w.write_bytes(ESCROW_STATE_DISCRIMINATOR)
    w.write_pubkey(record.maker)
    w.write_u64(record.maker_amount)
    w.write_u64(record.taker_amount)
    _write_trade(w, record.trade)
    w.write_pubkey(record.vault)
    w.write_u8(record.bump)
    return bytes(w.buf) + bytes(ESCROW_STATE_SPACE - len(w.buf))


def decode_escrow_state(data: bytes) -> EscrowState:
    r = Reader(data)
    if r.read_bytes(DISCRIMINATOR_SIZE) != ESCROW_STATE_DISCRIMINATOR:
        raise EscrowError(ErrorCode.INVALID_ACCOUNT_DATA, "account discriminator mismatch")
    maker = r.read_pubkey()
    maker_amount = r.read_u64()
    taker_amount = r.read_u64()
    trade = _read_trade(r)
    vault = r.read_pubkey()
    bump = r.read_u8()
    return EscrowState(
        maker=maker,
        maker_amount=maker_amount,
        taker_amount=taker_amount,
        trade=trade,
        vault=vault,
        bump=bump,
    )


def encode_instruction_data(
    ix_type: InstructionType,
    bump: int,
    maker_amount: int = 0,
    taker_amount: int = 0,
) -> bytes:
    w = Writer(bytearray())
    w.write_bytes(IX_DISCRIMINATORS[ix_type])
    if ix_type == InstructionType.INITIALIZE:
        w.write_u64(maker_amount)
        w.write_u64(taker_amount)
        # The deployed program takes the bump as a u64 argument.
        w.write_u64(bump)
    else:
        w.write_u64(bump)
    return bytes(w.buf)


def decode_instruction_data(data: bytes) -> dict:
    r = Reader(data)
    disc = r.read_bytes(DISCRIMINATOR_SIZE) if len(data) >= DISCRIMINATOR_SIZE else b""
    for ix_type, expected in IX_DISCRIMINATORS.items():
        if disc == expected:
            break
    else:
        raise EscrowError(ErrorCode.INVALID_INSTRUCTION, "unknown instruction discriminator")

    out: dict = {"ix_type": ix_type}
    if ix_type == InstructionType.INITIALIZE:
        out["maker_amount"] = r.read_u64()
        out["taker_amount"] = r.read_u64()
    out["bump"] = r.read_u64()
    if r.pos != len(data):
        raise EscrowError(ErrorCode.INVALID_FORMAT, "trailing instruction data")
    return out
