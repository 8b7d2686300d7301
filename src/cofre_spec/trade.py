"""Build a typed `Trade` from the account list clients already hold.

Clients address the program with a deposit account, a proceeds account and a
side list of mints (one per token leg, deposit leg first). This module turns
that into an explicit `Trade` before submission so the program never has to
infer the shape from account positions.
"""

from __future__ import annotations

from typing import Sequence

from .errors import ErrorCode, EscrowError
from .types import LedgerState, NativeAsset, TokenAsset, Trade, TradeKind


def _is_token_account(state: LedgerState, address: bytes) -> bool:
    return address in state.token_accounts


def trade_from_accounts(
    state: LedgerState,
    from_account: bytes,
    to_account: bytes,
    mints: Sequence[bytes],
) -> Trade:
    from_token = _is_token_account(state, from_account)
    to_token = _is_token_account(state, to_account)

    if not from_token and not to_token:
        raise EscrowError(ErrorCode.INVALID_PAYLOAD, "native-for-native trades are not supported")

    token_legs = int(from_token) + int(to_token)
    if len(mints) != token_legs:
        raise EscrowError(
            ErrorCode.INVALID_PAYLOAD,
            f"expected {token_legs} mint(s) for this trade shape, got {len(mints)}",
        )

    remaining = list(mints)
    from_asset = TokenAsset(from_account, remaining.pop(0)) if from_token else NativeAsset(from_account)
    to_asset = TokenAsset(to_account, remaining.pop(0)) if to_token else NativeAsset(to_account)

    if not from_token:
        kind = TradeKind.NATIVE_FOR_TOKEN
    elif not to_token:
        kind = TradeKind.TOKEN_FOR_NATIVE
    else:
        kind = TradeKind.TOKEN_FOR_TOKEN
    return Trade(kind, from_asset, to_asset)
