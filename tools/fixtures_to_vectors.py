#!/usr/bin/env python3
"""Turn filled JSON fixtures into YAML conformance vectors.

Case files (``{"cases": [...]}``) become runnable vectors carrying the
pre-state, the instruction (typed JSON plus instruction data) and the
expected outcome with its state digest. Files that already hold
``test_vectors`` are re-emitted as YAML unchanged.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]
for extra in ("src", "tools"):
    sys.path.insert(0, str(ROOT / extra))

from cofre_spec.errors import ErrorCode  # noqa: E402
from cofre_spec.state_digest import ledger_digest  # noqa: E402
from fixtures_io import state_from_json, write_vectors_yaml  # noqa: E402

# fixture top-level directory -> vector directory
LAYOUT = {
    "escrow": Path("execution/escrow"),
    "authority": Path("derivation"),
    "encoding": Path("encoding"),
    "errors": Path("errors"),
    "state": Path("state"),
}


def vector_path(rel: Path) -> Path:
    head, *rest = rel.parts or ("",)
    if head not in LAYOUT:
        return Path("unmapped", *rel.parts)
    return LAYOUT[head].joinpath(*rest)


def error_code_for(name: str | None) -> int:
    if name is None:
        return int(ErrorCode.SUCCESS)
    code = ErrorCode.__members__.get(name, ErrorCode.INTERNAL_ERROR)
    return int(code)


def case_to_vector(case: dict[str, Any]) -> dict[str, Any]:
    outcome = case.get("expected") or {}
    post = outcome.get("post_state")
    digest = outcome.get("state_digest") or (ledger_digest(state_from_json(post)) if post else "")
    ix = case.get("ix") or {}

    vector: dict[str, Any] = {key: case.get(key, "") for key in ("name", "description")}
    vector["pre_state"] = case.get("pre_state")
    if case.get("runnable") is False:
        vector["runnable"] = False
    vector["input"] = {"kind": "ix", "data_hex": ix.get("data_hex", ""), "ix": ix}
    vector["expected"] = {
        "success": bool(outcome.get("ok")),
        "error_code": error_code_for(outcome.get("error")),
        "logs": list(outcome.get("logs", [])),
        "state_digest": digest,
        "post_state": post,
    }
    return vector


def convert_file(path: Path) -> dict[str, Any] | None:
    data = json.loads(path.read_text())
    if not isinstance(data, dict):
        return None
    if isinstance(data.get("cases"), list):
        return {"test_vectors": [case_to_vector(c) for c in data["cases"]]}
    if isinstance(data.get("test_vectors"), list):
        return data
    return None


def prune(vectors: Path, keep: set[Path]) -> int:
    stale = [p for p in vectors.rglob("*.yaml") if p.resolve() not in keep]
    for p in stale:
        p.unlink()
    for d in sorted((d for d in vectors.rglob("*") if d.is_dir()), reverse=True):
        if next(d.iterdir(), None) is None:
            d.rmdir()
    return len(stale)


def main() -> None:
    parser = argparse.ArgumentParser(description="Convert JSON fixtures into YAML vectors")
    parser.add_argument("--fixtures", type=Path, default=ROOT / "fixtures")
    parser.add_argument("--vectors", type=Path, default=ROOT / "vectors")
    args = parser.parse_args()

    src_dir: Path = args.fixtures.resolve()
    out_dir: Path = args.vectors.resolve()
    if not src_dir.is_dir():
        raise SystemExit(f"no fixtures directory at {src_dir}")
    out_dir.mkdir(parents=True, exist_ok=True)

    written: set[Path] = set()
    for path in sorted(src_dir.rglob("*.json")):
        rel = path.relative_to(src_dir)
        converted = convert_file(path)
        if converted is None:
            print(f"skipping {rel}: not a fixture file")
            continue
        dest = (out_dir / vector_path(rel)).with_suffix(".yaml")
        dest.parent.mkdir(parents=True, exist_ok=True)
        write_vectors_yaml(dest, converted)
        written.add(dest.resolve())

    removed = prune(out_dir, written)
    print(f"{len(written)} vector files in {out_dir}" + (f", {removed} stale removed" if removed else ""))


if __name__ == "__main__":
    main()
