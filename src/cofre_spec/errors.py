"""Cofre escrow spec error codes and exceptions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorCategory(IntEnum):
    SUCCESS = 0x00
    VALIDATION = 0x01
    AUTHORIZATION = 0x02
    RESOURCE = 0x03
    STATE = 0x04
    INTERNAL = 0xFF


class ErrorCode(IntEnum):
    # Success
    SUCCESS = 0x0000

    # Validation
    INVALID_FORMAT = 0x0100
    INVALID_AMOUNT = 0x0101
    INVALID_PAYLOAD = 0x0102
    INVALID_INSTRUCTION = 0x0103
    MINT_MISMATCH = 0x0104
    ACCOUNT_MISMATCH = 0x0105

    # Authorization
    UNAUTHORIZED = 0x0200
    MISSING_SIGNATURE = 0x0201
    AUTHORITY_MISMATCH = 0x0202
    INVALID_SEEDS = 0x0203

    # Resource
    INSUFFICIENT_BALANCE = 0x0300
    OVERFLOW = 0x0301

    # State
    ACCOUNT_NOT_FOUND = 0x0400
    ACCOUNT_EXISTS = 0x0401
    RECORD_NOT_OPEN = 0x0402
    INVALID_ACCOUNT_OWNER = 0x0403
    INVALID_ACCOUNT_DATA = 0x0404

    # Internal
    INTERNAL_ERROR = 0xFF00
    NOT_IMPLEMENTED = 0xFF01

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory(self.value >> 8)


# Message surfaced in program logs for every mint/type mismatch.
MINT_MISMATCH_MESSAGE = "Account not associated with this Mint"


@dataclass(frozen=True)
class EscrowError(Exception):
    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.name}({self.code:#06x}): {self.message}"

    def program_log(self) -> str:
        return f"Program log: Error: {self.message}"


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# while keeping dataclass fields frozen (Python 3.13 contextlib compat).
_EXCEPTION_ATTRS = frozenset(("__traceback__", "__context__", "__cause__"))
_frozen_setattr = EscrowError.__setattr__


def _escrow_error_setattr(self: EscrowError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


EscrowError.__setattr__ = _escrow_error_setattr  # type: ignore[method-assign]


def err(code: ErrorCode, message: str) -> EscrowError:
    return EscrowError(code=code, message=message)


def mint_mismatch() -> EscrowError:
    return EscrowError(ErrorCode.MINT_MISMATCH, MINT_MISMATCH_MESSAGE)
