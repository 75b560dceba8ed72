"""Common Pydantic models and the instruction error taxonomy."""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, Field

# A single grid entry. ``None`` is the empty cell.
Cell = Union[str, bool, int, float, None]


class WorkbookCorruptError(Exception):
    """Raised when a workbook file cannot be parsed."""


class InstructionError(Exception):
    """Base class for every failure raised while interpreting an instruction.

    Carries a stable ``code`` so callers can branch on the kind of failure
    instead of the message text. ``token`` is the offending piece of input
    (when there is one) and ``expected`` a short description of what would
    have been accepted.
    """

    code = "ERR_INSTRUCTION"

    def __init__(
        self,
        message: str,
        *,
        token: str | None = None,
        expected: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.token = token
        self.expected = expected

    def to_detail(self) -> "ErrorDetail":
        details = {
            k: v for k, v in (("token", self.token), ("expected", self.expected))
            if v is not None
        }
        return ErrorDetail(code=self.code, message=self.message, details=details or None)


class InvalidReference(InstructionError):
    """A column letter token or row number does not address a cell."""

    code = "ERR_INVALID_REFERENCE"


class NotNumeric(InstructionError):
    """An expression that must yield a number produced something else."""

    code = "ERR_NOT_NUMERIC"


class DivisionByZero(InstructionError):
    """The amount of a ``divide column`` instruction is zero."""

    code = "ERR_DIVISION_BY_ZERO"


class Unrecognized(InstructionError):
    """The instruction matched none of the known phrasings."""

    code = "ERR_INSTRUCTION_UNRECOGNIZED"


class EmptyInstruction(InstructionError):
    """The instruction is blank after trimming."""

    code = "ERR_INSTRUCTION_EMPTY"


class NoGridLoaded(InstructionError):
    """An instruction was run before any grid was loaded."""

    code = "ERR_NO_GRID_LOADED"


class Target(BaseModel):
    """Identifies the workbook/sheet a command worked on."""

    file: str | None = None
    sheet: str | None = None
    ref: str | None = None


class WarningDetail(BaseModel):
    """Structured warning."""

    code: str
    message: str
    path: str | None = None


class ErrorDetail(BaseModel):
    """Structured error."""

    code: str
    message: str
    details: dict[str, Any] | None = None


class Metrics(BaseModel):
    """Execution metrics."""

    duration_ms: int = 0


class ChangeRecord(BaseModel):
    """Describes a single cell change made (or projected) by a command."""

    type: str
    target: str
    before: Any | None = None
    after: Any | None = None


class ResponseEnvelope(BaseModel):
    """Standard response envelope returned by every command."""

    ok: bool = True
    command: str = ""
    target: Target = Field(default_factory=Target)
    result: Any = None
    changes: list[ChangeRecord] = Field(default_factory=list)
    warnings: list[WarningDetail] = Field(default_factory=list)
    errors: list[ErrorDetail] = Field(default_factory=list)
    metrics: Metrics = Field(default_factory=Metrics)
