"""Property-based tests using Hypothesis for grid and instruction invariants.

These tests verify invariants that must hold for *any* valid input:
- column letters and indices convert back and forth losslessly
- normalization is idempotent and always rectangular
- every successful instruction leaves a rectangular grid and never
  touches its input
- failed instructions raise a typed error instead of corrupting state
"""

from __future__ import annotations

import copy

from hypothesis import given, settings
from hypothesis import strategies as st

from nlsheet.contracts.common import InstructionError
from nlsheet.engine.commands import apply_instruction
from nlsheet.engine.coords import index_to_letters, letters_to_index
from nlsheet.engine.evaluator import round_number, to_number
from nlsheet.engine.grid import normalize, shape
from nlsheet.engine.session import Session

# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------
cell_values = st.one_of(
    st.none(),
    st.just(""),
    st.integers(min_value=-10_000, max_value=10_000),
    st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False),
    st.text(alphabet="abcxyz ,.0123456789", max_size=8),
)

ragged_grids = st.lists(st.lists(cell_values, max_size=6), max_size=8)

column_letters = st.sampled_from(list("abcdefgh"))
small_row = st.integers(min_value=1, max_value=12)
operand = st.sampled_from(["5", "0,5", "-2", "c2", "c * d", "blank", "'text'", "total"])

instructions = st.one_of(
    st.builds(lambda c, r, v: f"set cell {c}{r} to {v}", column_letters, small_row, operand),
    st.builds(
        lambda a, c, v: f"{a} column {c} by {v}",
        st.sampled_from(["increase", "decrease", "multiply", "divide"]),
        column_letters,
        st.sampled_from(["2", "0", "1.5", "c2"]),
    ),
    st.builds(
        lambda t, a, b, w: f"add column {t} as sum of {a} {w} {b}",
        column_letters, column_letters, column_letters, st.sampled_from(["and", "minus"]),
    ),
    st.builds(lambda c, v: f"fill empty cells in column {c} with {v}", column_letters, operand),
    st.builds(lambda c: f"rename column {c} to net pay", column_letters),
    st.builds(lambda c: f"clear column {c}", column_letters),
    st.text(max_size=20),
)


# ---------------------------------------------------------------------------
# Coordinates
# ---------------------------------------------------------------------------
@given(st.integers(min_value=0, max_value=701))
def test_letters_round_trip_two_letter_range(index: int) -> None:
    letters = index_to_letters(index)
    assert 1 <= len(letters) <= 2
    assert letters_to_index(letters) == index


@given(st.integers(min_value=0, max_value=10**7))
def test_letters_round_trip_large(index: int) -> None:
    assert letters_to_index(index_to_letters(index)) == index


@given(st.integers(min_value=0, max_value=10**6))
def test_letters_are_uppercase_ascii(index: int) -> None:
    letters = index_to_letters(index)
    assert letters.isascii() and letters.isalpha() and letters.isupper()


# ---------------------------------------------------------------------------
# Grid
# ---------------------------------------------------------------------------
@given(ragged_grids)
def test_normalize_is_idempotent_and_rectangular(grid) -> None:
    once = normalize(grid)
    rows, cols = shape(once)
    assert rows >= 1 and cols >= 1
    assert all(len(row) == cols for row in once)
    assert normalize(once) == once


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------
@given(st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False))
def test_round_number_has_at_most_two_decimals(value: float) -> None:
    rounded = round_number(value)
    assert abs(rounded - value) <= 0.005 + 1e-6
    assert round(rounded, 2) == rounded


@given(st.integers(min_value=-10**6, max_value=10**6))
def test_integer_strings_parse_exactly(value: int) -> None:
    assert to_number(str(value)) == value


# ---------------------------------------------------------------------------
# Instructions
# ---------------------------------------------------------------------------
@given(ragged_grids, instructions)
@settings(max_examples=200)
def test_instruction_never_mutates_input_and_stays_rectangular(grid, instruction: str) -> None:
    before = copy.deepcopy(grid)
    try:
        result = apply_instruction(grid, instruction)
    except InstructionError:
        assert grid == before
        return
    assert grid == before
    rows, cols = shape(result.grid)
    assert all(len(row) == cols for row in result.grid)
    assert rows >= 1
    assert result.message


@given(st.lists(instructions, min_size=1, max_size=6))
@settings(max_examples=50)
def test_session_history_counts_only_successes(steps: list[str]) -> None:
    session = Session()
    session.load_sample()
    passed = 0
    for text in steps:
        before = session.grid
        try:
            session.run(text)
        except InstructionError:
            assert session.grid == before
            continue
        passed += 1
    assert len(session.history) == passed
