"""openpyxl-based workbook codec: worksheet values <-> grid of scalars."""

from __future__ import annotations

from datetime import date, datetime, time
from io import BytesIO
from pathlib import Path
from typing import Any

import openpyxl
from openpyxl import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from nlsheet.contracts.common import Cell, WorkbookCorruptError
from nlsheet.engine.grid import Grid, normalize
from nlsheet.io.fileops import atomic_write


def _to_cell(value: Any) -> Cell:
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def read_grid(path: str | Path, sheet: str | None = None) -> tuple[Grid, str]:
    """Read the first (or named) worksheet as a rectangular grid.

    Formula cells come back as their cached values. Raises
    ``FileNotFoundError``, ``KeyError`` for an unknown sheet, or
    :class:`WorkbookCorruptError`.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Workbook not found: {p}")
    try:
        wb = openpyxl.load_workbook(str(p), data_only=True)
    except Exception as e:
        raise WorkbookCorruptError(f"Cannot open workbook {p}: {e}") from e

    try:
        if sheet is None:
            ws: Worksheet = wb.worksheets[0]
        elif sheet in wb.sheetnames:
            ws = wb[sheet]
        else:
            raise KeyError(f"Sheet not found: {sheet}")
        rows = [[_to_cell(v) for v in row] for row in ws.iter_rows(values_only=True)]
        # openpyxl reports a blank sheet as a single empty A1
        if all(v is None for row in rows for v in row):
            rows = []
        return normalize(rows), ws.title
    finally:
        wb.close()


def grid_to_bytes(grid: Grid, sheet_name: str) -> bytes:
    """Serialize *grid* as a single-sheet .xlsx workbook."""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name
    for row_idx, row in enumerate(grid, start=1):
        for col_idx, value in enumerate(row, start=1):
            if value is None:
                continue
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            # Text starting with "=" is a label here, not a formula.
            if isinstance(value, str) and value.startswith("="):
                cell.data_type = "s"
    buf = BytesIO()
    wb.save(buf)
    wb.close()
    return buf.getvalue()


def write_grid(path: str | Path, grid: Grid, sheet_name: str) -> None:
    """Atomically write *grid* to *path* as a single-sheet workbook."""
    atomic_write(path, grid_to_bytes(grid, sheet_name))
