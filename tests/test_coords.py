"""Tests for column letter <-> index conversion."""

from __future__ import annotations

import pytest

from nlsheet.contracts.common import InvalidReference
from nlsheet.engine.coords import cell_address, index_to_letters, letters_to_index, parse_cell_ref


@pytest.mark.parametrize(
    ("index", "letters"),
    [(0, "A"), (1, "B"), (25, "Z"), (26, "AA"), (27, "AB"), (51, "AZ"), (52, "BA"), (701, "ZZ"), (702, "AAA")],
)
def test_known_columns(index: int, letters: str):
    assert index_to_letters(index) == letters
    assert letters_to_index(letters) == index


def test_letters_are_case_insensitive():
    assert letters_to_index("aa") == 26
    assert letters_to_index("zZ") == 701


def test_letters_are_trimmed():
    assert letters_to_index("  c ") == 2


@pytest.mark.parametrize("bad", ["", "   ", "A1", "B-", "Ä", "ſ", "1"])
def test_invalid_letters(bad: str):
    with pytest.raises(InvalidReference) as exc:
        letters_to_index(bad)
    assert exc.value.code == "ERR_INVALID_REFERENCE"
    assert exc.value.token == bad


def test_negative_index_rejected():
    with pytest.raises(InvalidReference):
        index_to_letters(-1)


def test_parse_cell_ref():
    assert parse_cell_ref("e", "2") == (1, 4)
    assert parse_cell_ref("AA", "010") == (9, 26)


def test_parse_cell_ref_rejects_row_zero():
    with pytest.raises(InvalidReference, match="Row reference invalid"):
        parse_cell_ref("A", "0")


def test_cell_address():
    assert cell_address(0, 0) == "A1"
    assert cell_address(3, 27) == "AB4"
