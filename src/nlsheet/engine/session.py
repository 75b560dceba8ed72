"""Session: holds the live grid and instruction history for one host."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from nlsheet.config import SAMPLE_SHEET_NAME, Settings, sample_grid
from nlsheet.contracts.common import Cell, InstructionError, NoGridLoaded, Target
from nlsheet.contracts.responses import EvalResult, GridMeta, MutationResult
from nlsheet.engine.commands import apply_instruction
from nlsheet.engine.coords import cell_address, letters_to_index
from nlsheet.engine.evaluator import evaluate, format_cell
from nlsheet.engine.grid import Grid, normalize, shape, working_copy
from nlsheet.observe.events import EventEmitter


class Session:
    """Owns exactly one live grid and a most-recent-first message history.

    A new grid replaces the old one only after an instruction succeeds, so a
    failed instruction leaves both the grid and the history as they were.
    Loading a dataset clears the history.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        emitter: EventEmitter | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.emitter = emitter or EventEmitter(enabled=self.settings.events)
        self._grid: Grid | None = None
        self.sheet_name: str = self.settings.default_sheet_name
        self.source: str = "memory"
        self.history: list[str] = []

    @property
    def loaded(self) -> bool:
        return self._grid is not None

    @property
    def grid(self) -> Grid:
        """A copy of the live grid."""
        if self._grid is None:
            raise NoGridLoaded("Upload a sheet before running instructions.")
        return working_copy(self._grid)

    def load_grid(
        self,
        rows: Sequence[Sequence[Cell]],
        sheet_name: str | None = None,
        *,
        source: str = "memory",
    ) -> GridMeta:
        self._grid = normalize(rows)
        self.sheet_name = sheet_name or self.settings.default_sheet_name
        self.source = source
        self.history = []
        meta = self.meta()
        self.emitter.emit("grid.loaded", meta.model_dump())
        return meta

    def load_sample(self) -> GridMeta:
        return self.load_grid(sample_grid(), SAMPLE_SHEET_NAME, source="sample")

    def load_workbook(self, path: str | Path, sheet: str | None = None) -> GridMeta:
        from nlsheet.adapters.openpyxl_codec import read_grid

        rows, sheet_name = read_grid(path, sheet)
        return self.load_grid(rows, sheet_name, source=str(Path(path).resolve()))

    def meta(self) -> GridMeta:
        grid = self._grid or []
        rows, cols = shape(grid)
        return GridMeta(
            sheet_name=self.sheet_name,
            source=self.source,
            rows=rows,
            columns=cols,
            headers=list(grid[0]) if grid else [],
        )

    def target(self) -> Target:
        file = self.source if self.source not in ("memory", "sample") else None
        return Target(file=file, sheet=self.sheet_name)

    def run(self, instruction: str) -> MutationResult:
        """Apply one instruction and commit the new grid on success."""
        if self._grid is None:
            raise NoGridLoaded("Upload a sheet before running instructions.")
        self.emitter.emit("instruction.start", {"instruction": instruction})
        try:
            result = apply_instruction(self._grid, instruction)
        except InstructionError as e:
            self.emitter.emit("instruction.error", {
                "instruction": instruction, "code": e.code, "message": e.message,
            })
            raise
        self._grid = working_copy(result.grid)
        self.history.insert(0, result.message)
        self.emitter.emit("instruction.ok", {"intent": result.intent, "message": result.message})
        return result

    def evaluate(self, expression: str, row: int = 1, column: str = "A") -> EvalResult:
        """Evaluate *expression* at zero-based *row* without touching the live grid."""
        col = letters_to_index(column)
        value = evaluate(expression, self.grid, row, col)
        return EvalResult(
            expression=expression,
            context=cell_address(row, col),
            value=value,
            display=format_cell(value),
        )

    def export(self, path: str | Path) -> str:
        from nlsheet.adapters.openpyxl_codec import write_grid

        write_grid(path, self.grid, self.sheet_name)
        self.emitter.emit("grid.saved", {"path": str(path)})
        return str(path)
