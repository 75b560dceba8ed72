"""Instruction matcher and the six grid mutation routines.

An instruction is tried against ``MATCHERS`` top to bottom and the first
pattern found anywhere in the text picks the intent. The order is part of
the contract: phrasings can overlap, and earlier entries win.

Every routine works on a private working copy; the caller's grid is never
touched, and a raised :class:`InstructionError` discards the copy.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from typing import NamedTuple

from nlsheet.contracts.common import (
    Cell,
    DivisionByZero,
    EmptyInstruction,
    NotNumeric,
    Unrecognized,
)
from nlsheet.contracts.responses import MutationResult
from nlsheet.engine.coords import letters_to_index, parse_cell_ref
from nlsheet.engine.evaluator import (
    apply_operator,
    capitalize_words,
    evaluate,
    evaluate_numeric,
    format_cell,
    to_number,
)
from nlsheet.engine.grid import (
    EMPTY,
    Grid,
    ensure_column_capacity,
    ensure_row_capacity,
    is_empty,
    normalize,
    width,
    working_copy,
)

# Intent names
SET_CELL = "cell.set"
ADJUST_COLUMN = "column.adjust"
ADD_COLUMN = "column.add"
FILL_COLUMN = "column.fill"
RENAME_COLUMN = "column.rename"
CLEAR_COLUMN = "column.clear"

_ADJUST_OPERATORS = {
    "increase": "+",
    "increment": "+",
    "decrease": "-",
    "reduce": "-",
    "multiply": "*",
    "divide": "/",
}


def set_cell(working: Grid, match: re.Match[str]) -> str:
    letters, digits, expression = match.groups()
    row, col = parse_cell_ref(letters, digits)
    ensure_row_capacity(working, row + 1, max(width(working), col + 1))
    value = evaluate(expression, working, row, col)
    working[row][col] = value
    return f"Set {letters.upper()}{row + 1} to {format_cell(value)}"


def adjust_column(working: Grid, match: re.Match[str]) -> str:
    action, letters, amount_raw = match.groups()
    col = letters_to_index(letters)
    ensure_column_capacity(working, col + 1)

    amount = evaluate_numeric(amount_raw, working, 1, col)
    op = _ADJUST_OPERATORS[action]
    if op == "/" and amount == 0:
        raise DivisionByZero(
            "Cannot divide by zero.", token=amount_raw.strip(), expected="non-zero amount"
        )

    for row in working[1:]:
        current = to_number(row[col])
        if current is None:
            continue
        result = apply_operator(op, current, amount)
        if result is EMPTY:
            raise NotNumeric(
                f"Result of {action} column {letters.upper()} is out of range.",
                token=amount_raw.strip(),
                expected="an amount with a finite result",
            )
        row[col] = result

    return f"{action.capitalize()} column {letters.upper()} by {format_cell(amount)}"


def add_column(working: Grid, match: re.Match[str]) -> str:
    target_letters, left_letters, right_letters = match.groups()
    target = letters_to_index(target_letters)
    left_col = letters_to_index(left_letters)
    right_col = letters_to_index(right_letters)
    ensure_column_capacity(working, max(target, left_col, right_col) + 1)

    op = "-" if "minus" in match.group(0).lower() else "+"
    working[0][target] = f"{left_letters.upper()}{op}{right_letters.upper()}"
    for row in working[1:]:
        left = to_number(row[left_col])
        right = to_number(row[right_col])
        if left is None or right is None:
            row[target] = EMPTY
            continue
        row[target] = apply_operator(op, left, right)

    return (
        f"Computed column {target_letters.upper()} from "
        f"{left_letters.upper()} {op} {right_letters.upper()}"
    )


def fill_column(working: Grid, match: re.Match[str]) -> str:
    letters, expression = match.groups()
    col = letters_to_index(letters)
    ensure_column_capacity(working, col + 1)

    # The expression may grow the grid, so re-check the length every pass.
    row = 1
    while row < len(working):
        if is_empty(working[row][col]):
            working[row][col] = evaluate(expression, working, row, col)
        row += 1

    return f"Filled empty cells in column {letters.upper()}"


def rename_column(working: Grid, match: re.Match[str]) -> str:
    letters, title_raw = match.groups()
    col = letters_to_index(letters)
    ensure_column_capacity(working, col + 1)
    title = capitalize_words(title_raw.strip())
    working[0][col] = title
    return f"Renamed column {letters.upper()} to {title}"


def clear_column(working: Grid, match: re.Match[str]) -> str:
    (letters,) = match.groups()
    col = letters_to_index(letters)
    ensure_column_capacity(working, col + 1)
    for row in working[1:]:
        row[col] = EMPTY
    return f"Cleared column {letters.upper()}"


class Matcher(NamedTuple):
    intent: str
    pattern: re.Pattern[str]
    routine: Callable[[Grid, re.Match[str]], str]
    lowercase: bool = False  # match against the lower-cased instruction


MATCHERS: tuple[Matcher, ...] = (
    Matcher(
        SET_CELL,
        re.compile(r"(?:set|update)\s+cell\s+([a-z]+)(\d+)\s+(?:to|as)\s+(.+)", re.IGNORECASE),
        set_cell,
    ),
    Matcher(
        ADJUST_COLUMN,
        re.compile(
            r"(increase|increment|decrease|reduce|multiply|divide)\s+column\s+([a-z]+)\s+"
            r"(?:by|with)\s+([\w ./*+,-]+)"
        ),
        adjust_column,
        lowercase=True,
    ),
    Matcher(
        ADD_COLUMN,
        re.compile(
            r"add\s+column\s+([a-z]+)\s+(?:as|with)\s+(?:sum|total|difference|value)\s+of\s+"
            r"([a-z]+)\s+(?:and|minus)\s+([a-z]+)",
            re.IGNORECASE,
        ),
        add_column,
    ),
    Matcher(
        FILL_COLUMN,
        re.compile(
            r"fill\s+(?:empty\s+)?cells?\s+(?:in\s+)?column\s+([a-z]+)\s+(?:with|using)\s+(.+)",
            re.IGNORECASE,
        ),
        fill_column,
    ),
    Matcher(
        RENAME_COLUMN,
        re.compile(r"rename\s+column\s+([a-z]+)\s+(?:to|as)\s+(.+)", re.IGNORECASE),
        rename_column,
    ),
    Matcher(
        CLEAR_COLUMN,
        re.compile(r"clear\s+column\s+([a-z]+)", re.IGNORECASE),
        clear_column,
    ),
)


def _find(text: str) -> tuple[Matcher, re.Match[str]] | None:
    normalized = text.lower()
    for matcher in MATCHERS:
        m = matcher.pattern.search(normalized if matcher.lowercase else text)
        if m:
            return matcher, m
    return None


def classify(instruction: str) -> str | None:
    """Return the intent an instruction would run as, without running it."""
    found = _find(instruction.strip())
    return found[0].intent if found else None


def apply_instruction(grid: Sequence[Sequence[Cell]], instruction: str) -> MutationResult:
    """Run one instruction against a copy of *grid*.

    Returns the new normalized grid and a confirmation message, or raises an
    :class:`~nlsheet.contracts.common.InstructionError` subclass.
    """
    text = instruction.strip()
    if not text:
        raise EmptyInstruction("Instruction cannot be empty.", expected="a non-blank instruction")

    found = _find(text)
    if found is None:
        raise Unrecognized(
            "Instruction not recognized. Try a simpler sentence.",
            token=text,
            expected="one of: set cell, increase/decrease/multiply/divide column, "
            "add column, fill column, rename column, clear column",
        )

    matcher, match = found
    working = working_copy(grid)
    message = matcher.routine(working, match)
    return MutationResult(grid=normalize(working), message=message, intent=matcher.intent)
