"""Expression evaluator for instruction operands.

``evaluate`` turns a short value expression into a cell value, resolving
references against a grid. Rules are tried in order and the first one that
matches wins:

1. quoted literal (``'...'`` or ``"..."``), returned verbatim
2. ``blank`` / ``empty`` / ``null`` / ``none`` -> empty cell
3. a single cell reference (``B4``)
4. a bare number (``.`` or ``,`` as decimal separator)
5. column op column (``C * D``), resolved at the context row
6. cell op cell (``C2 * D2``)
7. cell op number (``C2 * 1.5``)
8. anything else: a title-cased text label

Arithmetic never fails: a non-numeric operand or an overflowing result
gives an empty cell and division by zero gives 0. References outside the
grid grow it.
"""

from __future__ import annotations

import math
import re
import sys

from nlsheet.contracts.common import Cell, NotNumeric
from nlsheet.engine.coords import letters_to_index, parse_cell_ref
from nlsheet.engine.grid import EMPTY, Grid, ensure_row_capacity, get_cell, width

_NUMBER = r"[+-]?(?:\d+(?:[.,]\d*)?|[.,]\d+)"
_OP = r"\s*([-+*/])\s*"
_FLAGS = re.IGNORECASE | re.ASCII

# Integers beyond this lose exactness as floats and do not fit every JSON encoder.
MAX_EXACT_INT = 2**53

_DOUBLE_QUOTED = re.compile(r'"(.*)"', re.DOTALL)
_SINGLE_QUOTED = re.compile(r"'(.*)'", re.DOTALL)
_EMPTY_KEYWORD = re.compile(r"blank|empty|null|none", re.IGNORECASE)
_CELL_REF = re.compile(r"([a-z]+)(\d+)", _FLAGS)
_BARE_NUMBER = re.compile(_NUMBER, re.ASCII)
_NUMERIC_TEXT = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:e[+-]?\d+)?", _FLAGS)
_COLUMN_FORMULA = re.compile(r"([a-z]+)" + _OP + r"([a-z]+)", _FLAGS)
_CELL_FORMULA = re.compile(r"([a-z]+)(\d+)" + _OP + r"([a-z]+)(\d+)", _FLAGS)
_CELL_NUMBER_FORMULA = re.compile(r"([a-z]+)(\d+)" + _OP + "(" + _NUMBER + ")", _FLAGS)


def _as_int(value: float) -> int | float:
    if value.is_integer() and abs(value) < MAX_EXACT_INT:
        return int(value)
    return value


def round_number(value: float) -> int | float:
    """Round half away from zero to 2 places after an epsilon bias.

    Integral results come back as ``int`` so ``37.0`` reads as ``37``, as
    long as they stay below ``MAX_EXACT_INT``. Values too large to scale are
    returned unchanged.
    """
    scaled = (value + sys.float_info.epsilon) * 100
    if not math.isfinite(scaled):
        return value
    return _as_int(math.floor(scaled + 0.5) / 100)


def _parse_number(text: str) -> int | float | None:
    clean = text.strip().replace(",", ".")
    if not _NUMERIC_TEXT.fullmatch(clean):
        return None
    value = float(clean)
    if not math.isfinite(value):
        return None
    if "." in clean or "e" in clean.lower():
        return value
    return _as_int(value)


def to_number(value: Cell) -> int | float | None:
    """Coerce a cell to a number, or ``None`` when it has no numeric reading.

    Text must be plain ASCII decimal notation, optionally with an exponent;
    a comma counts as the decimal point.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if abs(value) <= sys.float_info.max else None
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        if not value.strip():
            return None
        return _parse_number(value)
    return None


def capitalize_words(text: str) -> str:
    """``"gross  PAY"`` -> ``"Gross Pay"``."""
    return " ".join(word.capitalize() for word in text.split())


def format_cell(value: Cell) -> str:
    """Display text of a cell, as used in confirmation messages."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def apply_operator(op: str, left: float, right: float) -> Cell:
    """Apply ``+ - * /`` and round; dividing by zero yields 0.

    A result that overflows to infinity yields an empty cell.
    """
    left, right = float(left), float(right)
    if op == "+":
        result = left + right
    elif op == "-":
        result = left - right
    elif op == "*":
        result = left * right
    else:
        result = 0.0 if right == 0 else left / right
    if not math.isfinite(result):
        return EMPTY
    return round_number(result)


def _resolve(grid: Grid, letters: str, digits: str) -> Cell:
    row, col = parse_cell_ref(letters, digits)
    ensure_row_capacity(grid, row + 1, max(width(grid), col + 1))
    return grid[row][col]


def evaluate(expression: str, grid: Grid, context_row: int, context_col: int) -> Cell:
    """Evaluate *expression* against *grid* at ``(context_row, context_col)``.

    *grid* is grown in place when a reference points past its bounds, so
    pass a working copy. Only a malformed row number (``A0``) raises.
    """
    text = expression.strip()

    m = _DOUBLE_QUOTED.fullmatch(text) or _SINGLE_QUOTED.fullmatch(text)
    if m:
        return m.group(1)

    if _EMPTY_KEYWORD.fullmatch(text):
        return EMPTY

    m = _CELL_REF.fullmatch(text)
    if m:
        return _resolve(grid, m.group(1), m.group(2))

    if _BARE_NUMBER.fullmatch(text):
        return _parse_number(text)

    m = _COLUMN_FORMULA.fullmatch(text)
    if m:
        left_letters, op, right_letters = m.groups()
        left = to_number(get_cell(grid, context_row, letters_to_index(left_letters)))
        right = to_number(get_cell(grid, context_row, letters_to_index(right_letters)))
        if left is None or right is None:
            return EMPTY
        return apply_operator(op, left, right)

    m = _CELL_FORMULA.fullmatch(text)
    if m:
        left_letters, left_digits, op, right_letters, right_digits = m.groups()
        left = to_number(_resolve(grid, left_letters, left_digits))
        right = to_number(_resolve(grid, right_letters, right_digits))
        if left is None or right is None:
            return EMPTY
        return apply_operator(op, left, right)

    m = _CELL_NUMBER_FORMULA.fullmatch(text)
    if m:
        letters, digits, op, number = m.groups()
        base = to_number(_resolve(grid, letters, digits))
        operand = _parse_number(number)
        if base is None or operand is None:
            return EMPTY
        return apply_operator(op, base, operand)

    if not text:
        return EMPTY
    return capitalize_words(text)


def evaluate_numeric(expression: str, grid: Grid, context_row: int, context_col: int) -> int | float:
    """Like :func:`evaluate`, but the result must be a number."""
    value = to_number(evaluate(expression, grid, context_row, context_col))
    if value is None:
        raise NotNumeric(
            f'Expected a numeric value from "{expression.strip()}".',
            token=expression.strip(),
            expected="number or numeric formula",
        )
    return value
