"""Tests for grid diffing."""

from __future__ import annotations

from nlsheet.diff.differ import diff_grids, summarize_changes
from nlsheet.engine.commands import apply_instruction


def test_identical_grids_have_no_changes(sample_rows):
    assert diff_grids(sample_rows, sample_rows) == []


def test_none_and_empty_string_are_equal():
    assert diff_grids([["a", ""]], [["a", None]]) == []


def test_changed_cells_are_reported_row_major(sample_rows):
    after = apply_instruction(sample_rows, "increase column c by 5").grid
    changes = diff_grids(sample_rows, after)
    assert [c.target for c in changes] == ["C2", "C3", "C4", "C5"]
    assert {c.type for c in changes} == {"cell.changed"}
    assert (changes[0].before, changes[0].after) == (32, 37)


def test_added_and_cleared(sample_rows):
    filled = apply_instruction(sample_rows, "set cell e2 to 10").grid
    added = diff_grids(sample_rows, filled)
    assert len(added) == 1
    assert added[0].type == "cell.added"
    assert added[0].target == "E2"

    cleared = apply_instruction(sample_rows, "clear column d").grid
    changes = diff_grids(sample_rows, cleared)
    assert {c.type for c in changes} == {"cell.cleared"}
    assert [c.target for c in changes] == ["D2", "D3", "D4", "D5"]


def test_growth_reports_only_non_empty_new_cells(sample_rows):
    after = apply_instruction(sample_rows, "set cell g9 to 1").grid
    changes = diff_grids(sample_rows, after)
    assert [(c.type, c.target) for c in changes] == [("cell.added", "G9")]


def test_type_change_counts_as_change():
    changes = diff_grids([["5"]], [[5]])
    assert len(changes) == 1
    assert changes[0].type == "cell.changed"


def test_summarize_changes(sample_rows):
    after = apply_instruction(sample_rows, "add column f as sum of c and d").grid
    after[1][0] = None
    summary = summarize_changes(diff_grids(sample_rows, after))
    assert summary == {"cell.added": 5, "cell.cleared": 1}
