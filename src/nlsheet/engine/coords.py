"""Column letter <-> zero-based index conversion and A1 reference parsing."""

from __future__ import annotations

from nlsheet.contracts.common import InvalidReference


def index_to_letters(index: int) -> str:
    """Encode a zero-based column index as spreadsheet letters (0 -> A, 26 -> AA)."""
    if index < 0:
        raise InvalidReference(
            f"Invalid column index: {index}",
            token=str(index),
            expected="non-negative integer",
        )
    letters = ""
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def letters_to_index(letters: str) -> int:
    """Decode spreadsheet column letters (case-insensitive) to a zero-based index."""
    clean = letters.strip()
    if not clean or not clean.isascii():
        raise InvalidReference(
            f"Invalid column reference: {letters}", token=letters, expected="A-Z letters"
        )
    index = 0
    for ch in clean.upper():
        if not ("A" <= ch <= "Z"):
            raise InvalidReference(
                f"Invalid column reference: {letters}", token=letters, expected="A-Z letters"
            )
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index - 1


def parse_cell_ref(letters: str, digits: str) -> tuple[int, int]:
    """Resolve the two halves of an A1 reference to ``(row_index, col_index)``."""
    col = letters_to_index(letters)
    try:
        row_number = int(digits)
    except ValueError:
        row_number = 0
    if row_number < 1:
        raise InvalidReference(
            "Row reference invalid.", token=f"{letters}{digits}", expected="positive row number"
        )
    return row_number - 1, col


def cell_address(row: int, col: int) -> str:
    """Zero-based ``(row, col)`` -> ``"B4"``."""
    return f"{index_to_letters(col)}{row + 1}"
