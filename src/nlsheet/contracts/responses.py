"""Command-specific result models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from nlsheet.contracts.common import Cell


class MutationResult(BaseModel):
    """A new grid plus the confirmation message for one instruction."""

    grid: list[list[Cell]]
    message: str
    intent: str = ""


class GridMeta(BaseModel):
    """Shape and headers of the live grid."""

    sheet_name: str
    source: str = "memory"  # memory / sample / file path
    rows: int = 0
    columns: int = 0
    headers: list[Cell] = Field(default_factory=list)


class EvalResult(BaseModel):
    """Result of evaluating a single expression."""

    expression: str
    context: str  # A1-style address of the context cell
    value: Cell = None
    display: str = ""


class ApplyResult(BaseModel):
    """Result of the ``apply`` command."""

    applied: bool = False
    dry_run: bool = False
    output_path: str | None = None
    backup_path: str | None = None
    messages: list[str] = Field(default_factory=list)
    history: list[str] = Field(default_factory=list)
    grid: list[list[Cell]] = Field(default_factory=list)
    meta: GridMeta | None = None
    fingerprint_before: str | None = None
    fingerprint_after: str | None = None


class StepResult(BaseModel):
    """Outcome of one instruction-script step."""

    step_id: str
    instruction: str
    ok: bool = False
    message: str | None = None
    error: str | None = None
    code: str | None = None


class ScriptResult(BaseModel):
    """Outcome of a whole instruction script."""

    script: str = ""
    steps_total: int = 0
    steps_passed: int = 0
    ok: bool = True
    saved: bool = False
    steps: list[StepResult] = Field(default_factory=list)
    history: list[str] = Field(default_factory=list)
    meta: GridMeta | None = None
