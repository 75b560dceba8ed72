"""Pydantic models for responses, results, and instruction scripts."""

from nlsheet.contracts.common import (
    Cell,
    ChangeRecord,
    DivisionByZero,
    EmptyInstruction,
    ErrorDetail,
    InstructionError,
    InvalidReference,
    Metrics,
    NoGridLoaded,
    NotNumeric,
    ResponseEnvelope,
    Target,
    Unrecognized,
    WarningDetail,
    WorkbookCorruptError,
)
from nlsheet.contracts.responses import (
    ApplyResult,
    EvalResult,
    GridMeta,
    MutationResult,
    ScriptResult,
    StepResult,
)
from nlsheet.contracts.script import (
    InstructionScript,
    ScriptDefaults,
    ScriptStep,
    ScriptTarget,
)

__all__ = [
    "ApplyResult",
    "Cell",
    "ChangeRecord",
    "DivisionByZero",
    "EmptyInstruction",
    "ErrorDetail",
    "EvalResult",
    "GridMeta",
    "InstructionError",
    "InstructionScript",
    "InvalidReference",
    "Metrics",
    "MutationResult",
    "NoGridLoaded",
    "NotNumeric",
    "ResponseEnvelope",
    "ScriptDefaults",
    "ScriptResult",
    "ScriptStep",
    "ScriptTarget",
    "StepResult",
    "Target",
    "Unrecognized",
    "WarningDetail",
    "WorkbookCorruptError",
]
