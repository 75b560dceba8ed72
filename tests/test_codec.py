"""Tests for the openpyxl workbook codec."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import openpyxl
import pytest
from openpyxl import Workbook

from nlsheet.adapters.openpyxl_codec import read_grid, write_grid
from nlsheet.config import sample_grid
from nlsheet.contracts.common import WorkbookCorruptError


def test_read_first_sheet(payroll_workbook: Path):
    grid, title = read_grid(payroll_workbook)
    assert title == "Workforce"
    assert grid == sample_grid()


def test_read_named_sheet(payroll_workbook: Path):
    grid, title = read_grid(payroll_workbook, "Notes")
    assert title == "Notes"
    assert grid == [["Note"], ["quarterly"]]


def test_missing_sheet(payroll_workbook: Path):
    with pytest.raises(KeyError, match="Nope"):
        read_grid(payroll_workbook, "Nope")


def test_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        read_grid(tmp_path / "absent.xlsx")


def test_corrupt_file(tmp_path: Path):
    bad = tmp_path / "bad.xlsx"
    bad.write_bytes(b"this is not a zip archive")
    with pytest.raises(WorkbookCorruptError):
        read_grid(bad)


def test_empty_sheet_gets_default_header(tmp_path: Path):
    path = tmp_path / "empty.xlsx"
    wb = Workbook()
    wb.save(str(path))
    grid, _ = read_grid(path)
    assert grid == [["Column A"]]


def test_ragged_sheet_is_normalized_and_dates_become_text(tmp_path: Path):
    path = tmp_path / "ragged.xlsx"
    wb = Workbook()
    ws = wb.active
    ws["A1"] = "When"
    ws["C1"] = "Amount"
    ws["A2"] = date(2024, 3, 1)
    wb.save(str(path))

    grid, _ = read_grid(path)
    assert len(grid) == 2
    assert all(len(row) == 3 for row in grid)
    assert grid[0] == ["When", None, "Amount"]
    assert grid[1][0].startswith("2024-03-01")


def test_write_then_read(tmp_path: Path):
    path = tmp_path / "out.xlsx"
    grid = [["Name", "Score", "Pass"], ["ana", 2.5, True], [None, 7, None]]
    write_grid(path, grid, "Results")

    back, title = read_grid(path)
    assert title == "Results"
    assert back == grid


def test_leading_equals_is_stored_as_text(tmp_path: Path):
    path = tmp_path / "label.xlsx"
    write_grid(path, [["=SUM(A2:A3)"], [1]], "Sheet1")

    wb = openpyxl.load_workbook(str(path))
    cell = wb.active["A1"]
    assert cell.data_type == "s"
    assert cell.value == "=SUM(A2:A3)"
    wb.close()


def test_write_leaves_no_temp_files(tmp_path: Path):
    write_grid(tmp_path / "a.xlsx", [["x"]], "Sheet1")
    assert [p.name for p in tmp_path.iterdir()] == ["a.xlsx"]
