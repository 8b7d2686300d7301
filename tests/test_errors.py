"""Error code layout."""

from __future__ import annotations

import pytest

from cofre_spec.errors import ErrorCategory, ErrorCode, EscrowError, err, mint_mismatch


def test_codes_are_grouped_by_category(vector_test_group) -> None:
    for code in ErrorCode:
        assert code.category == ErrorCategory(code >> 8)
    vector_test_group(
        "errors/codes.json",
        {
            "name": "error_codes",
            "expected": {code.name: int(code) for code in ErrorCode},
        },
    )


@pytest.mark.parametrize(
    "code,category",
    [
        (ErrorCode.INVALID_AMOUNT, ErrorCategory.VALIDATION),
        (ErrorCode.MINT_MISMATCH, ErrorCategory.VALIDATION),
        (ErrorCode.AUTHORITY_MISMATCH, ErrorCategory.AUTHORIZATION),
        (ErrorCode.UNAUTHORIZED, ErrorCategory.AUTHORIZATION),
        (ErrorCode.INSUFFICIENT_BALANCE, ErrorCategory.RESOURCE),
        (ErrorCode.RECORD_NOT_OPEN, ErrorCategory.STATE),
    ],
)
def test_required_codes(code, category) -> None:
    assert code.category == category


def test_escrow_error_is_frozen_but_raisable() -> None:
    with pytest.raises(EscrowError) as exc:
        try:
            raise KeyError("inner")
        except KeyError as inner:
            raise err(ErrorCode.INTERNAL_ERROR, "wrapped") from inner
    assert exc.value.code == ErrorCode.INTERNAL_ERROR
    assert isinstance(exc.value.__cause__, KeyError)
    assert str(exc.value) == "INTERNAL_ERROR(0xff00): wrapped"


def test_mint_mismatch_program_log() -> None:
    assert mint_mismatch().program_log() == "Program log: Error: Account not associated with this Mint"
