"""In-process ledger runtime that serializes submissions.

The escrow program takes no locks. Mutual exclusion between conflicting
submissions is the runtime's job: `LedgerRuntime` admits one transaction at a
time against the whole ledger, so two submissions racing to consume the same
record resolve to one success and one `RECORD_NOT_OPEN`.
"""

from __future__ import annotations

import logging
import threading
from copy import deepcopy
from typing import Optional, Sequence, Union

from .errors import ErrorCode, EscrowError
from .ix.escrow import fetch_escrow_state
from .ledger import get_account, lamports_of
from .state_digest import ledger_digest
from .state_transition import TransitionResult, apply_transaction
from .token_ledger import token_balance
from .types import AccountState, EscrowState, Instruction, LedgerState

logger = logging.getLogger(__name__)


class LedgerRuntime:
    """Holds one ledger state and applies transactions to it atomically."""

    def __init__(self, state: Optional[LedgerState] = None):
        self._state = state if state is not None else LedgerState()
        self._lock = threading.Lock()

    def submit(self, instructions: Union[Instruction, Sequence[Instruction]]) -> TransitionResult:
        if isinstance(instructions, Instruction):
            instructions = [instructions]
        with self._lock:
            self._state, result = apply_transaction(self._state, instructions)
        if result.ok:
            logger.info("transaction committed (%d instruction(s))", len(instructions))
        else:
            logger.info("transaction rejected: %s", result.error)
        return result

    def snapshot(self) -> LedgerState:
        with self._lock:
            return deepcopy(self._state)

    def digest(self) -> str:
        with self._lock:
            return ledger_digest(self._state)

    def account(self, address: bytes) -> Optional[AccountState]:
        with self._lock:
            acct = get_account(self._state, address)
            return deepcopy(acct) if acct is not None else None

    def lamports(self, address: bytes) -> int:
        with self._lock:
            return lamports_of(self._state, address)

    def token_balance(self, address: bytes) -> int:
        with self._lock:
            return token_balance(self._state, address)

    def fetch_escrow_state(self, escrow_state: bytes) -> EscrowState:
        with self._lock:
            return fetch_escrow_state(self._state, escrow_state)

    def try_fetch_escrow_state(self, escrow_state: bytes) -> Optional[EscrowState]:
        try:
            return self.fetch_escrow_state(escrow_state)
        except EscrowError as exc:
            if exc.code != ErrorCode.RECORD_NOT_OPEN:
                raise
            return None
