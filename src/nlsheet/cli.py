"""Typer CLI application: edit workbook grids with plain-language instructions."""

from __future__ import annotations

import contextlib
from pathlib import Path
from typing import Annotated, Optional

import portalocker
import typer

from nlsheet.engine.dispatcher import patch_typer_errors

patch_typer_errors()

import nlsheet
from nlsheet.config import EXAMPLE_INSTRUCTIONS, SAMPLE_SHEET_NAME, Settings
from nlsheet.contracts.common import (
    ErrorDetail,
    InstructionError,
    Target,
    WarningDetail,
    WorkbookCorruptError,
)
from nlsheet.contracts.responses import ApplyResult
from nlsheet.diff.differ import diff_grids, summarize_changes
from nlsheet.engine.dispatcher import (
    error_envelope,
    exit_code_for,
    instruction_error_envelope,
    print_response,
    success_envelope,
)
from nlsheet.engine.session import Session
from nlsheet.observe.events import Timer

_MAIN_HELP = """\
Edit spreadsheet grids by typing short instructions instead of formulas.

**Supported instructions** (case-insensitive, tried in this order):

1. `set cell e2 to c2 * d2` (also `update cell ... as ...`)
2. `increase column c by 5` (`increment`, `decrease`, `reduce`, `multiply`, `divide`)
3. `add column f as sum of c and e` (`minus` subtracts)
4. `fill empty cells in column e with c * d`
5. `rename column e to payroll`
6. `clear column d`

**Values** can be quoted text (`'hello'`), `blank`, a cell (`B4`), a number,
`C * D` (same row), `C2 * D2`, `C2 * 1.5`, or any other text (title-cased).

**Every command** returns a JSON `ResponseEnvelope`:
`{"ok": bool, "command": "...", "result": {...}, "errors": [...], "metrics": {"duration_ms": N}}`

**Exit codes:** 0=success, 10=validation, 20=instruction not understood, 30=arithmetic, 40=lock conflict, 50=io, 90=internal
"""

_APPLY_EPILOG = """\
**Examples:**

`nlsheet apply -f payroll.xlsx -i "set cell e2 to c2 * d2" -i "rename column e to payroll"`

`nlsheet apply --sample -i "increase column c by 5" --out sample.xlsx`

`nlsheet apply -f payroll.xlsx -i "clear column d" --dry-run` previews without writing

Instructions run in order, each against the grid left by the previous one.
The first failure aborts the command and nothing is written.
"""

_RUN_EPILOG = """\
**Example script:**

    schema_version: "1.0"
    name: payroll
    target: { file: payroll.xlsx }
    defaults: { stop_on_error: true }
    steps:
      - { id: total, instruction: "fill empty cells in column e with c * d" }
      - { id: label, instruction: "rename column e to payroll" }
"""


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(nlsheet.__version__)
        raise typer.Exit()


app = typer.Typer(
    name="nlsheet",
    help=_MAIN_HELP,
    no_args_is_help=True,
    rich_markup_mode="markdown",
)


@app.callback(invoke_without_command=True)
def main_callback(
    version: Annotated[
        bool, typer.Option("--version", "-V", help="Print version and exit.", is_eager=True)
    ] = False,
) -> None:
    if version:
        _version_callback(True)


# Type aliases for common options
FileOpt = Annotated[Optional[str], typer.Option("--file", "-f", help="Path to .xlsx workbook file")]
SampleFlag = Annotated[bool, typer.Option("--sample", help="Use the built-in sample sheet instead of a file")]
SheetOpt = Annotated[Optional[str], typer.Option("--sheet", "-s", help="Sheet name (default: first sheet)")]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _emit(envelope, code=None):
    print_response(envelope)
    raise typer.Exit(code if code is not None else exit_code_for(envelope))


def _load_session_or_emit(
    cmd: str, file: str | None, sample: bool, sheet: str | None, settings: Settings
) -> Session:
    """Build a Session holding the requested grid, or emit an error envelope."""
    session = Session(settings=settings)
    target = Target(file=file, sheet=sheet)
    if sample:
        session.load_sample()
        return session
    if not file:
        _emit(error_envelope(cmd, "ERR_MISSING_PARAM", "Provide --file or --sample"))
    try:
        session.load_workbook(file, sheet)
    except FileNotFoundError:
        _emit(error_envelope(cmd, "ERR_WORKBOOK_NOT_FOUND", f"File not found: {file}", target=target))
    except WorkbookCorruptError as e:
        _emit(error_envelope(cmd, "ERR_WORKBOOK_CORRUPT", str(e), target=target))
    except KeyError as e:
        _emit(error_envelope(cmd, "ERR_SHEET_NOT_FOUND", str(e.args[0]), target=target))
    return session


def _fingerprint_or_none(path: str | None) -> str | None:
    from nlsheet.io.fileops import fingerprint

    if path and Path(path).exists():
        return fingerprint(path)
    return None


# ---------------------------------------------------------------------------
# nlsheet version / examples / sample
# ---------------------------------------------------------------------------
@app.command()
def version():
    """Print the nlsheet version.

    Example: `nlsheet version`
    """
    _emit(success_envelope("version", {"version": nlsheet.__version__}))


@app.command()
def examples():
    """List example instructions that work against the sample sheet.

    Example: `nlsheet examples`
    """
    _emit(success_envelope("examples", {"instructions": list(EXAMPLE_INSTRUCTIONS)}))


@app.command()
def sample(
    out: Annotated[Optional[str], typer.Option("--out", "-o", help="Also write the sample to this .xlsx path")] = None,
    force: Annotated[bool, typer.Option("--force", help="Overwrite --out if it exists")] = False,
):
    """Show the built-in sample sheet, optionally exporting it as a workbook.

    Example: `nlsheet sample --out workforce.xlsx`
    """
    with Timer() as t:
        session = Session(settings=Settings.from_env())
        meta = session.load_sample()
        if out:
            if Path(out).exists() and not force:
                _emit(error_envelope(
                    "sample", "ERR_FILE_EXISTS", f"File already exists: {out}", target=Target(file=out),
                ))
            session.export(out)

    result = {"grid": session.grid, "meta": meta.model_dump(), "output_path": out}
    _emit(success_envelope(
        "sample", result, target=Target(file=out, sheet=SAMPLE_SHEET_NAME), duration_ms=t.elapsed_ms,
    ))


# ---------------------------------------------------------------------------
# nlsheet show
# ---------------------------------------------------------------------------
@app.command()
def show(file: FileOpt = None, sample: SampleFlag = False, sheet: SheetOpt = None):
    """Print a worksheet as a grid with its shape and headers.

    Example: `nlsheet show -f payroll.xlsx -s Workforce`
    """
    with Timer() as t:
        session = _load_session_or_emit("show", file, sample, sheet, Settings.from_env())
        result = {
            "grid": session.grid,
            "meta": session.meta().model_dump(),
            "fingerprint": _fingerprint_or_none(file) if not sample else None,
        }
    _emit(success_envelope("show", result, target=session.target(), duration_ms=t.elapsed_ms))


# ---------------------------------------------------------------------------
# nlsheet eval
# ---------------------------------------------------------------------------
@app.command("eval")
def eval_cmd(
    expression: Annotated[str, typer.Option("--expr", "-e", help="Value expression, e.g. 'c2 * d2' or 'C * D'")],
    file: FileOpt = None,
    sample: SampleFlag = False,
    sheet: SheetOpt = None,
    row: Annotated[int, typer.Option("--row", help="Context row number (1-based) for column formulas")] = 2,
    col: Annotated[str, typer.Option("--col", help="Context column letters")] = "A",
):
    """Evaluate a value expression against a sheet without changing it. Read-only.

    Example: `nlsheet eval --sample -e "c * d" --row 3`
    """
    with Timer() as t:
        session = _load_session_or_emit("eval", file, sample, sheet, Settings.from_env())
        if row < 1:
            _emit(error_envelope(
                "eval", "ERR_INVALID_REFERENCE", "Row reference invalid.",
                details={"token": str(row), "expected": "positive row number"},
            ))
        try:
            result = session.evaluate(expression, row - 1, col)
        except InstructionError as e:
            _emit(instruction_error_envelope("eval", e, target=session.target(), duration_ms=t.running_ms))

    _emit(success_envelope("eval", result.model_dump(), target=session.target(), duration_ms=t.elapsed_ms))


# ---------------------------------------------------------------------------
# nlsheet apply
# ---------------------------------------------------------------------------
@app.command("apply", epilog=_APPLY_EPILOG)
def apply_cmd(
    instructions: Annotated[
        Optional[list[str]], typer.Option("--instruction", "-i", help="Instruction to run (repeatable, runs in order)")
    ] = None,
    file: FileOpt = None,
    sample: SampleFlag = False,
    sheet: SheetOpt = None,
    out: Annotated[Optional[str], typer.Option("--out", "-o", help="Write the result here instead of in place")] = None,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Preview changes without writing to disk")] = False,
    backup: Annotated[bool, typer.Option("--backup", help="Create timestamped .bak copy before overwriting")] = False,
    lock_timeout: Annotated[
        Optional[float], typer.Option("--lock-timeout", help="Seconds to wait for the workbook lock")
    ] = None,
):
    """Run one or more instructions against a sheet and save the result. Mutating.

    Writes back to `--file` (under an exclusive sidecar lock) or to `--out`.
    With `--sample` and no `--out`, nothing is written.
    """
    if not instructions:
        _emit(error_envelope("apply", "ERR_MISSING_PARAM", "Provide at least one --instruction"))

    settings = Settings.from_env()
    if lock_timeout is not None:
        settings.lock_timeout = lock_timeout
    destination = out or (None if sample else file)

    from nlsheet.io.fileops import WorkbookLock

    in_place = bool(file) and not sample and not out and not dry_run and Path(file).exists()
    lock = WorkbookLock(file, timeout=settings.lock_timeout) if in_place else contextlib.nullcontext()

    with Timer() as t:
        try:
            with lock:
                session = _load_session_or_emit("apply", file, sample, sheet, settings)
                before = session.grid
                fp_before = _fingerprint_or_none(destination)
                messages: list[str] = []
                for instruction in instructions:
                    try:
                        messages.append(session.run(instruction).message)
                    except InstructionError as e:
                        env = instruction_error_envelope("apply", e, target=session.target())
                        env.errors[0].details = {
                            **(env.errors[0].details or {}),
                            "instruction": instruction,
                            "applied_before_failure": messages,
                        }
                        _emit(env)

                changes = diff_grids(before, session.grid)
                result = ApplyResult(
                    dry_run=dry_run,
                    messages=messages,
                    history=list(session.history),
                    grid=session.grid,
                    meta=session.meta(),
                    fingerprint_before=fp_before,
                )
                if not dry_run and destination:
                    if backup and Path(destination).exists():
                        from nlsheet.io.fileops import backup as make_backup
                        result.backup_path = make_backup(destination)
                    session.export(destination)
                    result.applied = True
                    result.output_path = destination
                    result.fingerprint_after = _fingerprint_or_none(destination)
        except portalocker.LockException:
            _emit(error_envelope(
                "apply", "ERR_LOCK_HELD", f"Workbook is locked by another process: {file}",
                target=Target(file=file),
            ))

    warnings = []
    if not dry_run and not destination:
        warnings.append(WarningDetail(
            code="WARN_NOT_SAVED", message="Sample sheet edited in memory only; pass --out to save it.",
        ))
    payload = result.model_dump()
    payload["summary"] = summarize_changes(changes)
    _emit(success_envelope(
        "apply",
        payload,
        target=Target(file=destination, sheet=session.sheet_name),
        changes=changes,
        warnings=warnings,
        duration_ms=t.elapsed_ms,
    ))


# ---------------------------------------------------------------------------
# nlsheet run
# ---------------------------------------------------------------------------
@app.command("run", epilog=_RUN_EPILOG)
def run_cmd(
    script_file: Annotated[str, typer.Option("--script", help="Path to YAML instruction script")],
    file: Annotated[Optional[str], typer.Option("--file", "-f", help="Override the script's target.file")] = None,
    sheet: SheetOpt = None,
    out: Annotated[Optional[str], typer.Option("--out", "-o", help="Write the result here instead of the target file")] = None,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Run every step without saving")] = False,
):
    """Execute a YAML script of instructions, one step at a time.

    Each step is an independent instruction; `defaults.stop_on_error`
    (default true) stops at the first failing step.

    Example: `nlsheet run --script payroll.yaml -f payroll.xlsx`
    """
    from nlsheet.engine.script import ScriptValidationError, execute_script, load_script

    with Timer() as t:
        try:
            script = load_script(script_file)
        except ScriptValidationError as e:
            _emit(error_envelope("run", e.code, str(e), details={"issues": e.issues}))
        except OSError as e:
            _emit(error_envelope("run", "ERR_SCRIPT_NOT_FOUND", f"Cannot read script: {e}"))

        if dry_run:
            script.defaults.dry_run = True
        workbook = file or script.target.file
        use_sample = script.target.sample and not file
        if not workbook and not use_sample:
            _emit(error_envelope("run", "ERR_MISSING_PARAM", "Provide --file or set target.file in the script"))

        from nlsheet.io.fileops import WorkbookLock

        settings = Settings.from_env()
        destination = out or (None if use_sample else workbook)
        in_place = (
            not use_sample and not out and not script.defaults.dry_run and Path(workbook).exists()
        )
        lock = WorkbookLock(workbook, timeout=settings.lock_timeout) if in_place else contextlib.nullcontext()
        try:
            with lock:
                session = _load_session_or_emit(
                    "run", workbook, use_sample, sheet or script.target.sheet, settings,
                )
                result = execute_script(script, session, output_path=destination)
        except portalocker.LockException:
            _emit(error_envelope(
                "run", "ERR_LOCK_HELD", f"Workbook is locked by another process: {workbook}",
                target=Target(file=workbook),
            ))

    env = success_envelope(
        "run", result.model_dump(), target=Target(file=destination, sheet=session.sheet_name),
        duration_ms=t.elapsed_ms,
    )
    if not result.ok:
        env.ok = False
        for step in result.steps:
            if not step.ok:
                env.errors.append(ErrorDetail(
                    code=step.code or "ERR_SCRIPT_STEP_FAILED",
                    message=f"Step '{step.step_id}': {step.error}",
                ))
    _emit(env)


# ---------------------------------------------------------------------------
# nlsheet serve --stdio
# ---------------------------------------------------------------------------
@app.command("serve")
def serve_cmd(
    stdio: Annotated[bool, typer.Option("--stdio", help="Use stdin/stdout for JSON request/response")] = True,
):
    """Start a stdio server that keeps one sheet in memory between requests.

    Each line is a JSON object: `{"id": "1", "command": "run", "args": {"instruction": "clear column d"}}`

    Commands: load, run, eval, grid, history, save, close.

    Example: `nlsheet serve --stdio`
    """
    from nlsheet.server.stdio import StdioServer

    server = StdioServer(Session(settings=Settings.from_env()))
    server.run()


# ---------------------------------------------------------------------------
# Entrypoint (for `python -m nlsheet`)
# ---------------------------------------------------------------------------
def main() -> None:
    try:
        app()
    except SystemExit:
        raise
    except Exception as exc:
        # Unhandled exceptions still produce a JSON envelope on stdout.
        env = error_envelope("unknown", "ERR_INTERNAL", str(exc))
        print_response(env)
        raise SystemExit(90) from exc


if __name__ == "__main__":
    main()
