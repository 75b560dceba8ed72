"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
from openpyxl import Workbook

from nlsheet.config import SAMPLE_GRID, sample_grid


@pytest.fixture()
def sample_rows() -> list[list]:
    """Mutable copy of the built-in workforce sample."""
    return sample_grid()


@pytest.fixture()
def payroll_workbook(tmp_path: Path) -> Path:
    """Workbook whose first sheet holds the sample data, plus a second sheet."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Workforce"
    for row in SAMPLE_GRID:
        ws.append(list(row))

    ws2 = wb.create_sheet("Notes")
    ws2["A1"] = "Note"
    ws2["A2"] = "quarterly"

    path = tmp_path / "payroll.xlsx"
    wb.save(str(path))
    wb.close()
    return path
