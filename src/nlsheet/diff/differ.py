"""Grid diff logic: cell-level comparison of two grids."""

from __future__ import annotations

from collections.abc import Sequence

from nlsheet.contracts.common import Cell, ChangeRecord
from nlsheet.engine.coords import cell_address
from nlsheet.engine.grid import get_cell, is_empty, shape


def diff_grids(
    before: Sequence[Sequence[Cell]],
    after: Sequence[Sequence[Cell]],
) -> list[ChangeRecord]:
    """Compare two grids cell by cell, row-major.

    ``""`` and ``None`` are both empty and never differ from each other.
    Cells outside *before* that are non-empty in *after* are ``cell.added``;
    a non-empty cell that becomes empty is ``cell.cleared``.
    """
    before_rows, before_cols = shape(before)
    after_rows, after_cols = shape(after)
    changes: list[ChangeRecord] = []

    for row in range(max(before_rows, after_rows)):
        for col in range(max(before_cols, after_cols)):
            old = get_cell(before, row, col)
            new = get_cell(after, row, col)
            old_blank = is_empty(old)
            new_blank = is_empty(new)
            if old_blank and new_blank:
                continue
            if old == new and type(old) is type(new):
                continue
            if old_blank:
                change_type = "cell.added"
            elif new_blank:
                change_type = "cell.cleared"
            else:
                change_type = "cell.changed"
            changes.append(ChangeRecord(
                type=change_type,
                target=cell_address(row, col),
                before=old,
                after=new,
            ))
    return changes


def summarize_changes(changes: list[ChangeRecord]) -> dict[str, int]:
    """Count changes by type."""
    by_type: dict[str, int] = {}
    for change in changes:
        by_type[change.type] = by_type.get(change.type, 0) + 1
    return by_type
