"""Consume fixtures and validate against the Python escrow spec."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tools"))

from cofre_spec.encoding import decode_instruction_data  # noqa: E402
from cofre_spec.errors import EscrowError  # noqa: E402
from cofre_spec.state_digest import ledger_digest  # noqa: E402
from cofre_spec.state_transition import apply_ix  # noqa: E402
from cofre_spec.types import InstructionType  # noqa: E402
from fixtures_io import ix_from_json, state_from_json  # noqa: E402


def _check_instruction_data(name: str, ix_json: dict) -> list[str]:
    data_hex = ix_json.get("data_hex")
    if not data_hex:
        return []
    try:
        decoded = decode_instruction_data(bytes.fromhex(data_hex))
    except EscrowError as exc:
        return [f"{name}: data_decode_failed ({exc})"]
    payload = ix_json["payload"]
    if decoded["ix_type"] != InstructionType(ix_json["ix_type"]) or decoded["bump"] != payload["bump"]:
        return [f"{name}: data_mismatch"]
    if decoded["ix_type"] == InstructionType.INITIALIZE and (
        decoded["maker_amount"] != payload["maker_amount"]
        or decoded["taker_amount"] != payload["taker_amount"]
    ):
        return [f"{name}: data_mismatch"]
    return []


def _check_state_cases(path: Path) -> list[str]:
    failures: list[str] = []
    data = json.loads(path.read_text())

    for case in data.get("cases", []):
        name = case["name"]
        pre_state = state_from_json(case["pre_state"])
        ix = ix_from_json(case["ix"])
        failures.extend(_check_instruction_data(name, case["ix"]))
        post_state, result = apply_ix(pre_state, ix)

        expected = case["expected"]
        if result.ok != expected["ok"]:
            failures.append(f"{name}: ok_mismatch")
            continue

        actual_err = result.error.code.name if result.error else None
        if actual_err != expected["error"]:
            failures.append(f"{name}: error_mismatch")
            continue

        if "logs" in expected and result.logs != expected["logs"]:
            failures.append(f"{name}: logs_mismatch")
            continue

        expected_state = state_from_json(expected["post_state"])
        if ledger_digest(post_state) != ledger_digest(expected_state):
            failures.append(f"{name}: state_mismatch")
            continue

        if expected.get("state_digest") and expected["state_digest"] != ledger_digest(post_state):
            failures.append(f"{name}: digest_mismatch")

    return failures


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay fixtures against the Python spec")
    parser.add_argument("--fixtures", default=str(ROOT / "fixtures"))
    args = parser.parse_args()

    fixtures = Path(args.fixtures)
    failures: list[str] = []
    checked = 0
    for path in sorted(fixtures.rglob("*.json")):
        data = json.loads(path.read_text())
        if not isinstance(data, dict) or "cases" not in data:
            continue
        checked += 1
        failures.extend(f"{path.relative_to(fixtures)}: {f}" for f in _check_state_cases(path))

    if failures:
        for f in failures:
            print("FAIL", f)
        raise SystemExit(1)

    print(f"All fixtures passed ({checked} files)")


if __name__ == "__main__":
    main()
