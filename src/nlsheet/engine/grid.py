"""Grid model: the rectangular cell container and its shape primitives.

Row 0 is the header row; rows 1..N hold data. ``normalize``,
``ensure_row_capacity`` and ``ensure_column_capacity`` are the only
functions that change a grid's shape.
"""

from __future__ import annotations

from collections.abc import Sequence

from nlsheet.contracts.common import Cell

EMPTY: Cell = None
DEFAULT_HEADER = "Column A"

Grid = list[list[Cell]]


def is_empty(value: Cell) -> bool:
    """``None`` and ``""`` both count as no value."""
    return value is None or value == ""


def width(grid: Sequence[Sequence[Cell]]) -> int:
    return max((len(row) for row in grid), default=0)


def shape(grid: Sequence[Sequence[Cell]]) -> tuple[int, int]:
    return len(grid), width(grid)


def normalize(grid: Sequence[Sequence[Cell]]) -> Grid:
    """Return a rectangular copy of *grid*, padding short rows with empty cells.

    An empty grid becomes a single header cell. Input rows are never reused.
    """
    if not grid:
        return [[DEFAULT_HEADER]]
    widest = width(grid)
    return [list(row) + [EMPTY] * (widest - len(row)) for row in grid]


def working_copy(grid: Sequence[Sequence[Cell]]) -> Grid:
    """Owned, normalized duplicate of *grid* for one mutation."""
    return normalize(grid)


def ensure_column_capacity(grid: Grid, min_cols: int) -> None:
    """Grow every row in place to at least *min_cols* cells."""
    for row in grid:
        if len(row) < min_cols:
            row.extend([EMPTY] * (min_cols - len(row)))


def ensure_row_capacity(grid: Grid, min_rows: int, min_cols: int) -> None:
    """Append empty rows until *grid* has *min_rows*, then widen to *min_cols*."""
    row_width = max(width(grid), min_cols)
    while len(grid) < min_rows:
        grid.append([EMPTY] * row_width)
    ensure_column_capacity(grid, min_cols)


def get_cell(grid: Sequence[Sequence[Cell]], row: int, col: int) -> Cell:
    """Read a cell, treating out-of-bounds addresses as empty."""
    if 0 <= row < len(grid) and 0 <= col < len(grid[row]):
        return grid[row][col]
    return EMPTY
