"""State transition entrypoints for the Cofre escrow Python spec."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional, Sequence

from .errors import ErrorCode, EscrowError
from .types import Instruction, InstructionType, LedgerState
from .ix import escrow as ix_escrow

logger = logging.getLogger(__name__)

_ESCROW_TYPES = frozenset({
    InstructionType.INITIALIZE,
    InstructionType.EXCHANGE,
    InstructionType.CANCEL,
})


class TransitionResult:
    """Thin wrapper for verify/apply results and the program log lines."""

    def __init__(
        self,
        ok: bool,
        error: Optional[EscrowError] = None,
        logs: Optional[List[str]] = None,
    ):
        self.ok = ok
        self.error = error
        self.logs = logs if logs is not None else []

    @classmethod
    def success(cls, logs: Optional[List[str]] = None) -> "TransitionResult":
        return cls(True, None, logs)

    @classmethod
    def failure(cls, error: EscrowError, logs: Optional[List[str]] = None) -> "TransitionResult":
        logs = list(logs or [])
        logs.append(error.program_log())
        return cls(False, error, logs)

    def __repr__(self) -> str:
        status = "ok" if self.ok else f"failed: {self.error}"
        return f"TransitionResult({status})"


def _instruction_log(ix: Instruction) -> str:
    name = ix.ix_type.value if isinstance(ix.ix_type, InstructionType) else str(ix.ix_type)
    return f"Program log: Instruction: {name.capitalize()}"


def _dispatch_verify(state: LedgerState, ix: Instruction) -> None:
    if ix.ix_type in _ESCROW_TYPES:
        return ix_escrow.verify(state, ix)

    raise EscrowError(ErrorCode.NOT_IMPLEMENTED, f"verify not implemented for {ix.ix_type}")


def _dispatch_apply(state: LedgerState, ix: Instruction) -> LedgerState:
    if ix.ix_type in _ESCROW_TYPES:
        return ix_escrow.apply(state, ix)

    raise EscrowError(ErrorCode.NOT_IMPLEMENTED, f"apply not implemented for {ix.ix_type}")


def verify_ix(state: LedgerState, ix: Instruction) -> TransitionResult:
    """Stateful verification for a single instruction; never mutates `state`."""
    logs = [_instruction_log(ix)]
    try:
        _dispatch_verify(state, ix)
        return TransitionResult.success(logs)
    except EscrowError as exc:
        return TransitionResult.failure(exc, logs)


def apply_ix(state: LedgerState, ix: Instruction) -> tuple[LedgerState, TransitionResult]:
    """Apply a single instruction atomically.

    Failed-instruction semantics: the input state is returned untouched,
    whether the failure happens during verification or execution.
    """
    logs = [_instruction_log(ix)]
    try:
        _dispatch_verify(state, ix)
    except EscrowError as exc:
        logger.debug("%s rejected in verification: %s", ix.ix_type, exc)
        return state, TransitionResult.failure(exc, logs)

    try:
        working = _dispatch_apply(state, ix)
    except EscrowError as exc:
        # Execution failure: state unchanged
        logger.debug("%s failed during execution: %s", ix.ix_type, exc)
        return state, TransitionResult.failure(exc, logs)

    return working, TransitionResult.success(logs)


def apply_transaction(
    state: LedgerState, instructions: Sequence[Instruction]
) -> tuple[LedgerState, TransitionResult]:
    """Apply instructions in order with all-or-nothing semantics.

    If any instruction fails the whole transaction is rejected and the state
    is unchanged. On success the ledger slot advances by one.
    """
    if not instructions:
        return state, TransitionResult.failure(
            EscrowError(ErrorCode.INVALID_PAYLOAD, "transaction has no instructions")
        )

    working = state
    logs: List[str] = []
    for ix in instructions:
        working, result = apply_ix(working, ix)
        logs.extend(result.logs)
        if not result.ok:
            return state, TransitionResult(False, result.error, logs)

    working = replace(working, slot=working.slot + 1)
    return working, TransitionResult.success(logs)
