"""Static configuration: sample dataset, example instructions, env settings."""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel

from nlsheet.contracts.common import Cell

SAMPLE_SHEET_NAME = "Workforce"

SAMPLE_GRID: tuple[tuple[Cell, ...], ...] = (
    ("Employee", "Department", "Hours", "Rate", "Total"),
    ("Anita", "Finance", 32, 45, None),
    ("Rohan", "Marketing", 40, 38, None),
    ("Zoya", "Finance", 28, 52, None),
    ("Karan", "Sales", 45, 41, None),
)

EXAMPLE_INSTRUCTIONS: tuple[str, ...] = (
    "set cell e2 to c2 * d2",
    "increment column c by 5",
    "rename column e to payroll",
    "fill empty cells in column e with c * d",
    "add column f as sum of c and e",
    "clear column d",
)

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Runtime settings, read from ``NLSHEET_*`` environment variables."""

    events: bool = False
    lock_timeout: float = 0.0
    default_sheet_name: str = "Sheet1"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        if "NLSHEET_EVENTS" in env:
            values["events"] = env["NLSHEET_EVENTS"].strip().lower() in _TRUTHY
        if "NLSHEET_LOCK_TIMEOUT" in env:
            values["lock_timeout"] = env["NLSHEET_LOCK_TIMEOUT"]
        if "NLSHEET_SHEET_NAME" in env:
            values["default_sheet_name"] = env["NLSHEET_SHEET_NAME"]
        return cls(**values)


def sample_grid() -> list[list[Cell]]:
    """A fresh, mutable copy of the sample dataset."""
    return [list(row) for row in SAMPLE_GRID]
