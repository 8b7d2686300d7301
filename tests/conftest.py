"""Shared escrow fixtures and the hooks that dump collected cases as JSON."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from cofre_spec.scenario import Scenario, base_scenario
from cofre_spec.state_digest import ledger_digest
from cofre_spec.state_transition import TransitionResult, apply_ix
from cofre_spec.types import Instruction, LedgerState
from tools.fixtures_io import ix_to_json, state_to_json

# fixture path -> collected entries, keyed by the top-level JSON field
_COLLECTED: dict[str, dict[str, list[dict[str, Any]]]] = {"cases": {}, "test_vectors": {}}

StateTest = Callable[[str, str, LedgerState, Instruction], "tuple[LedgerState, TransitionResult]"]


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--output",
        action="store",
        default=None,
        help="Write collected cases and vectors as JSON fixtures under this directory",
    )


@pytest.fixture
def scenario() -> Scenario:
    """Funded maker/taker, mints A/B/C and their associated token accounts."""
    return base_scenario()


@pytest.fixture
def state_test_group() -> StateTest:
    """Apply an instruction, collect the case under a fixture path and return the outcome."""

    def _state_test_group(
        rel_path: str, name: str, pre_state: LedgerState, ix: Instruction
    ) -> tuple[LedgerState, TransitionResult]:
        pre_json = state_to_json(pre_state)
        post_state, result = apply_ix(pre_state, ix)
        _COLLECTED["cases"].setdefault(rel_path, []).append(
            {
                "name": name,
                "pre_state": pre_json,
                "ix": ix_to_json(ix),
                "expected": {
                    "ok": result.ok,
                    "error": result.error.code.name if result.error else None,
                    "logs": result.logs,
                    "post_state": state_to_json(post_state),
                    "state_digest": ledger_digest(post_state),
                },
            }
        )
        return post_state, result

    return _state_test_group


@pytest.fixture
def vector_test_group() -> Callable[[str, dict[str, Any]], None]:
    """Record a hand-built vector (derivation, layout, error tables) under a fixture path."""

    def _vector_test_group(rel_path: str, vector: dict[str, Any]) -> None:
        _COLLECTED["test_vectors"].setdefault(rel_path, []).append(vector)

    return _vector_test_group


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    output_dir = session.config.getoption("--output")
    if not output_dir:
        return

    root = Path(output_dir)
    for key, groups in _COLLECTED.items():
        for rel_path, entries in groups.items():
            if entries:
                target = root / rel_path
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(json.dumps({key: entries}, indent=2))
