"""Core types for the Cofre escrow Python spec.

The ledger is modelled only as far as the escrow program needs it: plain
accounts (lamports + owner + data), token mints and token accounts. The
escrow record itself is stored as serialized data of a program-owned account
(see `encoding.py`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from .config import PUBKEY_BYTES, SYSTEM_PROGRAM_ID
from .errors import ErrorCode, EscrowError


class InstructionType(Enum):
    INITIALIZE = "initialize"
    EXCHANGE = "exchange"
    CANCEL = "cancel"


class AssetKind(Enum):
    NATIVE = "native"
    TOKEN = "token"


class TradeKind(Enum):
    NATIVE_FOR_TOKEN = "native_for_token"
    TOKEN_FOR_NATIVE = "token_for_native"
    TOKEN_FOR_TOKEN = "token_for_token"


# --- Ledger state ---


@dataclass
class AccountState:
    address: bytes
    lamports: int = 0
    owner: bytes = SYSTEM_PROGRAM_ID
    data: bytes = b""


@dataclass
class MintState:
    address: bytes
    mint_authority: Optional[bytes]
    decimals: int = 0
    supply: int = 0


@dataclass
class TokenAccountState:
    address: bytes
    mint: bytes
    # Authority allowed to move tokens out of this account.
    owner: bytes
    amount: int = 0


@dataclass
class LedgerState:
    accounts: dict[bytes, AccountState] = field(default_factory=dict)
    mints: dict[bytes, MintState] = field(default_factory=dict)
    token_accounts: dict[bytes, TokenAccountState] = field(default_factory=dict)
    slot: int = 0


# --- Assets and trades ---


@dataclass(frozen=True)
class NativeAsset:
    holder: bytes

    @property
    def kind(self) -> AssetKind:
        return AssetKind.NATIVE

    @property
    def address(self) -> bytes:
        return self.holder


@dataclass(frozen=True)
class TokenAsset:
    account: bytes
    mint: bytes

    @property
    def kind(self) -> AssetKind:
        return AssetKind.TOKEN

    @property
    def address(self) -> bytes:
        return self.account


Asset = Union[NativeAsset, TokenAsset]


_TRADE_LEGS = {
    TradeKind.NATIVE_FOR_TOKEN: (AssetKind.NATIVE, AssetKind.TOKEN),
    TradeKind.TOKEN_FOR_NATIVE: (AssetKind.TOKEN, AssetKind.NATIVE),
    TradeKind.TOKEN_FOR_TOKEN: (AssetKind.TOKEN, AssetKind.TOKEN),
}


def _check_identity(name: str, value: object) -> None:
    if not isinstance(value, bytes) or len(value) != PUBKEY_BYTES:
        raise EscrowError(ErrorCode.INVALID_PAYLOAD, f"{name} must be {PUBKEY_BYTES} bytes")


@dataclass(frozen=True)
class Trade:
    """Trade shape fixed at initialize time.

    `from_asset` is where the maker's deposit is debited from and what moves
    into custody; `to_asset` is where the maker's proceeds land. Each token
    leg carries its mint explicitly; native legs carry none.
    """

    kind: TradeKind
    from_asset: Asset
    to_asset: Asset

    def __post_init__(self) -> None:
        expected = _TRADE_LEGS.get(self.kind)
        if expected is None:
            raise EscrowError(ErrorCode.INVALID_PAYLOAD, f"unknown trade kind: {self.kind}")
        for name, leg, leg_kind in (
            ("from", self.from_asset, expected[0]),
            ("to", self.to_asset, expected[1]),
        ):
            if not isinstance(leg, (NativeAsset, TokenAsset)) or leg.kind != leg_kind:
                raise EscrowError(
                    ErrorCode.INVALID_PAYLOAD,
                    f"{self.kind.value} trade requires a {leg_kind.value} {name} leg",
                )
            _check_identity(f"{name} account", leg.address)
            if isinstance(leg, TokenAsset):
                _check_identity(f"{name} mint", leg.mint)

    @classmethod
    def native_for_token(cls, from_native: bytes, to_token: bytes, to_mint: bytes) -> "Trade":
        return cls(TradeKind.NATIVE_FOR_TOKEN, NativeAsset(from_native), TokenAsset(to_token, to_mint))

    @classmethod
    def token_for_native(cls, from_token: bytes, from_mint: bytes, to_native: bytes) -> "Trade":
        return cls(TradeKind.TOKEN_FOR_NATIVE, TokenAsset(from_token, from_mint), NativeAsset(to_native))

    @classmethod
    def token_for_token(
        cls, from_token: bytes, from_mint: bytes, to_token: bytes, to_mint: bytes
    ) -> "Trade":
        return cls(
            TradeKind.TOKEN_FOR_TOKEN,
            TokenAsset(from_token, from_mint),
            TokenAsset(to_token, to_mint),
        )


@dataclass(frozen=True)
class EscrowState:
    maker: bytes
    maker_amount: int
    taker_amount: int
    trade: Trade
    vault: bytes
    bump: int


# --- Instructions ---


@dataclass
class InitializePayload:
    maker_amount: int
    taker_amount: int
    bump: int
    maker: bytes
    escrow_state: bytes
    escrow_vault: bytes
    trade: Trade


@dataclass
class ExchangePayload:
    bump: int
    taker: bytes
    from_taker_account: bytes
    to_taker_account: bytes
    maker: bytes
    to_maker_account: bytes
    escrow_state: bytes
    escrow_vault: bytes


@dataclass
class CancelPayload:
    bump: int
    maker: bytes
    from_maker_account: bytes
    escrow_state: bytes
    escrow_vault: bytes


@dataclass
class Instruction:
    ix_type: InstructionType
    payload: object
    signers: List[bytes] = field(default_factory=list)
