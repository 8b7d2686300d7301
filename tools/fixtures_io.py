"""Helpers to serialize/deserialize minimal fixtures for the Cofre escrow specs."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from cofre_spec.encoding import encode_instruction_data
from cofre_spec.errors import EscrowError
from cofre_spec.types import (
    AccountState,
    CancelPayload,
    ExchangePayload,
    InitializePayload,
    Instruction,
    InstructionType,
    LedgerState,
    MintState,
    NativeAsset,
    TokenAccountState,
    TokenAsset,
    Trade,
    TradeKind,
)


def _hex_to_bytes(v: str) -> bytes:
    return bytes.fromhex(v)


def _bytes_to_hex(v: bytes) -> str:
    return v.hex()


def state_to_json(state: LedgerState) -> dict[str, Any]:
    return {
        "slot": state.slot,
        "accounts": [
            {
                "address": _bytes_to_hex(a.address),
                "lamports": a.lamports,
                "owner": _bytes_to_hex(a.owner),
                "data": _bytes_to_hex(a.data),
            }
            for a in sorted(state.accounts.values(), key=lambda a: a.address)
        ],
        "mints": [
            {
                "address": _bytes_to_hex(m.address),
                "mint_authority": _bytes_to_hex(m.mint_authority) if m.mint_authority else None,
                "decimals": m.decimals,
                "supply": m.supply,
            }
            for m in sorted(state.mints.values(), key=lambda m: m.address)
        ],
        "token_accounts": [
            {
                "address": _bytes_to_hex(t.address),
                "mint": _bytes_to_hex(t.mint),
                "owner": _bytes_to_hex(t.owner),
                "amount": t.amount,
            }
            for t in sorted(state.token_accounts.values(), key=lambda t: t.address)
        ],
    }


def state_from_json(data: dict[str, Any]) -> LedgerState:
    state = LedgerState(slot=data.get("slot", 0))

    for a in data.get("accounts", []):
        acct = AccountState(
            address=_hex_to_bytes(a["address"]),
            lamports=a.get("lamports", 0),
            owner=_hex_to_bytes(a["owner"]) if a.get("owner") else bytes(32),
            data=_hex_to_bytes(a.get("data", "")) if a.get("data") else b"",
        )
        state.accounts[acct.address] = acct

    for m in data.get("mints", []):
        mint = MintState(
            address=_hex_to_bytes(m["address"]),
            mint_authority=_hex_to_bytes(m["mint_authority"]) if m.get("mint_authority") else None,
            decimals=m.get("decimals", 0),
            supply=m.get("supply", 0),
        )
        state.mints[mint.address] = mint

    for t in data.get("token_accounts", []):
        ta = TokenAccountState(
            address=_hex_to_bytes(t["address"]),
            mint=_hex_to_bytes(t["mint"]),
            owner=_hex_to_bytes(t["owner"]),
            amount=t.get("amount", 0),
        )
        state.token_accounts[ta.address] = ta

    return state


def _asset_to_json(asset: Any) -> dict[str, Any]:
    if isinstance(asset, TokenAsset):
        return {"kind": "token", "account": _bytes_to_hex(asset.account), "mint": _bytes_to_hex(asset.mint)}
    return {"kind": "native", "holder": _bytes_to_hex(asset.holder)}


def _asset_from_json(data: dict[str, Any]) -> Any:
    if data["kind"] == "token":
        return TokenAsset(_hex_to_bytes(data["account"]), _hex_to_bytes(data["mint"]))
    return NativeAsset(_hex_to_bytes(data["holder"]))


def trade_to_json(trade: Trade) -> dict[str, Any]:
    return {
        "kind": trade.kind.value,
        "from": _asset_to_json(trade.from_asset),
        "to": _asset_to_json(trade.to_asset),
    }


def trade_from_json(data: dict[str, Any]) -> Trade:
    return Trade(
        TradeKind(data["kind"]),
        _asset_from_json(data["from"]),
        _asset_from_json(data["to"]),
    )


_BYTES_FIELDS: set[str] = {
    "maker", "taker", "escrow_state", "escrow_vault",
    "from_taker_account", "to_taker_account", "to_maker_account",
    "from_maker_account",
}

_PAYLOAD_CLASSES = {
    InstructionType.INITIALIZE: InitializePayload,
    InstructionType.EXCHANGE: ExchangePayload,
    InstructionType.CANCEL: CancelPayload,
}


def _payload_to_json(payload: Any) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in vars(payload).items():
        if isinstance(value, Trade):
            out[key] = trade_to_json(value)
        elif isinstance(value, (bytes, bytearray)):
            out[key] = _bytes_to_hex(bytes(value))
        else:
            out[key] = value
    return out


def ix_to_json(ix: Instruction) -> dict[str, Any]:
    p = ix.payload
    amounts = {}
    if ix.ix_type == InstructionType.INITIALIZE:
        amounts = {"maker_amount": p.maker_amount, "taker_amount": p.taker_amount}
    try:
        data_hex = encode_instruction_data(ix.ix_type, p.bump, **amounts).hex()
    except EscrowError:
        # Negative cases may carry out-of-range arguments.
        data_hex = ""
    return {
        "ix_type": ix.ix_type.value,
        "payload": _payload_to_json(p),
        "signers": [_bytes_to_hex(s) for s in ix.signers],
        "data_hex": data_hex,
    }


def ix_from_json(data: dict[str, Any]) -> Instruction:
    ix_type = InstructionType(data["ix_type"])
    fields: dict[str, Any] = {}
    for key, value in data.get("payload", {}).items():
        if key == "trade":
            fields[key] = trade_from_json(value)
        elif key in _BYTES_FIELDS and isinstance(value, str):
            fields[key] = _hex_to_bytes(value)
        else:
            fields[key] = value
    return Instruction(
        ix_type=ix_type,
        payload=_PAYLOAD_CLASSES[ix_type](**fields),
        signers=[_hex_to_bytes(s) for s in data.get("signers", [])],
    )


# --- YAML vectors ---


class _VectorDumper(yaml.SafeDumper):
    pass


_VectorDumper.add_representer(
    str, lambda dumper, data: dumper.represent_scalar("tag:yaml.org,2002:str", data)
)


def write_vectors_yaml(path: Path, data: dict[str, Any]) -> None:
    path.write_text(yaml.dump(data, Dumper=_VectorDumper, sort_keys=False, width=4096))


def read_vectors_yaml(path: Path) -> dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f) or {}
