"""Response envelope helpers, exit codes, and JSON output."""

from __future__ import annotations

import sys
from typing import Any

import click
import orjson

from nlsheet.contracts.common import (
    ErrorDetail,
    InstructionError,
    Metrics,
    ResponseEnvelope,
    Target,
)

# Exit code mapping
EXIT_CODES = {
    "success": 0,
    "validation": 10,
    "instruction": 20,
    "arithmetic": 30,
    "conflict": 40,
    "io": 50,
    "internal": 90,
}

VALIDATION_CODE_MARKERS = (
    "INVALID_REFERENCE",
    "SCRIPT_INVALID",
    "MISSING_",
    "USAGE",
    "NO_GRID",
)

INSTRUCTION_CODE_MARKERS = ("UNRECOGNIZED", "INSTRUCTION_EMPTY")

ARITHMETIC_CODE_MARKERS = ("NOT_NUMERIC", "DIVISION_BY_ZERO")

IO_CODE_MARKERS = ("FILE_EXISTS",)


def success_envelope(
    command: str,
    result: Any,
    *,
    target: Target | None = None,
    changes: list | None = None,
    warnings: list | None = None,
    duration_ms: int = 0,
) -> ResponseEnvelope:
    return ResponseEnvelope(
        ok=True,
        command=command,
        target=target or Target(),
        result=result,
        changes=changes or [],
        warnings=warnings or [],
        metrics=Metrics(duration_ms=duration_ms),
    )


def error_envelope(
    command: str,
    code: str,
    message: str,
    *,
    target: Target | None = None,
    details: dict | None = None,
    duration_ms: int = 0,
) -> ResponseEnvelope:
    return ResponseEnvelope(
        ok=False,
        command=command,
        target=target or Target(),
        errors=[ErrorDetail(code=code, message=message, details=details)],
        metrics=Metrics(duration_ms=duration_ms),
    )


def instruction_error_envelope(
    command: str,
    error: InstructionError,
    *,
    target: Target | None = None,
    duration_ms: int = 0,
) -> ResponseEnvelope:
    """Envelope for a typed instruction failure, keeping its token/expected details."""
    return ResponseEnvelope(
        ok=False,
        command=command,
        target=target or Target(),
        errors=[error.to_detail()],
        metrics=Metrics(duration_ms=duration_ms),
    )


def output_json(envelope: ResponseEnvelope) -> str:
    """Serialize envelope to JSON string using orjson."""
    data = envelope.model_dump(mode="json")
    return orjson.dumps(data, option=orjson.OPT_INDENT_2).decode()


def print_response(envelope: ResponseEnvelope) -> None:
    """Print response as JSON to stdout."""
    sys.stdout.write(output_json(envelope) + "\n")


def exit_code_for(envelope: ResponseEnvelope) -> int:
    """Determine exit code from envelope errors."""
    if envelope.ok:
        return 0
    if not envelope.errors:
        return EXIT_CODES["internal"]
    code = envelope.errors[0].code.upper()
    if any(marker in code for marker in ARITHMETIC_CODE_MARKERS):
        return EXIT_CODES["arithmetic"]
    if any(marker in code for marker in INSTRUCTION_CODE_MARKERS):
        return EXIT_CODES["instruction"]
    if "LOCK" in code or "CONFLICT" in code:
        return EXIT_CODES["conflict"]
    if any(marker in code for marker in VALIDATION_CODE_MARKERS):
        return EXIT_CODES["validation"]
    if any(marker in code for marker in IO_CODE_MARKERS):
        return EXIT_CODES["io"]
    if code.startswith("ERR_IO") or code.endswith("NOT_FOUND") or "CORRUPT" in code:
        return EXIT_CODES["io"]
    return EXIT_CODES["internal"]


def patch_typer_errors() -> None:
    """Patch TyperGroup.invoke to emit JSON envelopes for CLI usage errors."""
    import typer.core

    _orig_invoke = typer.core.TyperGroup.invoke

    def _json_invoke(self, ctx):
        try:
            return _orig_invoke(self, ctx)
        except click.exceptions.UsageError as e:
            env = error_envelope("unknown", "ERR_USAGE", str(e.format_message()))
            print_response(env)
            raise SystemExit(exit_code_for(env)) from e

    typer.core.TyperGroup.invoke = _json_invoke
