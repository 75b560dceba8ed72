"""Exit code mapping regression tests."""

import pytest

from nlsheet.contracts.common import DivisionByZero, InvalidReference, NotNumeric, Unrecognized
from nlsheet.engine.dispatcher import (
    error_envelope,
    exit_code_for,
    instruction_error_envelope,
    success_envelope,
)


def test_exit_code_success():
    assert exit_code_for(success_envelope("x", {})) == 0


@pytest.mark.parametrize(
    ("code", "expected"),
    [
        ("ERR_INVALID_REFERENCE", 10),
        ("ERR_SCRIPT_INVALID", 10),
        ("ERR_MISSING_PARAM", 10),
        ("ERR_USAGE", 10),
        ("ERR_NO_GRID_LOADED", 10),
        ("ERR_INSTRUCTION_UNRECOGNIZED", 20),
        ("ERR_INSTRUCTION_EMPTY", 20),
        ("ERR_NOT_NUMERIC", 30),
        ("ERR_DIVISION_BY_ZERO", 30),
        ("ERR_LOCK_HELD", 40),
        ("ERR_WORKBOOK_NOT_FOUND", 50),
        ("ERR_SHEET_NOT_FOUND", 50),
        ("ERR_WORKBOOK_CORRUPT", 50),
        ("ERR_FILE_EXISTS", 50),
        ("ERR_IO_WRITE", 50),
        ("ERR_INTERNAL", 90),
    ],
)
def test_exit_code_classes(code: str, expected: int):
    assert exit_code_for(error_envelope("x", code, "msg")) == expected


def test_error_envelope_without_errors_is_internal():
    env = success_envelope("x", {})
    env.ok = False
    assert exit_code_for(env) == 90


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (InvalidReference("bad"), 10),
        (Unrecognized("what"), 20),
        (NotNumeric("nan"), 30),
        (DivisionByZero("zero"), 30),
    ],
)
def test_instruction_errors_map_by_class(error, expected):
    assert exit_code_for(instruction_error_envelope("apply", error)) == expected
