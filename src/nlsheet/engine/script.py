"""Instruction script engine for ``nlsheet run``: executes YAML step lists."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from nlsheet.contracts.common import InstructionError
from nlsheet.contracts.responses import ScriptResult, StepResult
from nlsheet.contracts.script import InstructionScript
from nlsheet.engine.session import Session
from nlsheet.io.fileops import read_text_safe

_ALLOWED_KEYS = frozenset({"schema_version", "name", "target", "defaults", "steps"})


class ScriptValidationError(ValueError):
    """Raised when a script file is structurally invalid."""

    code = "ERR_SCRIPT_INVALID"

    def __init__(self, message: str, issues: list[str] | None = None) -> None:
        super().__init__(message)
        self.issues = issues or [message]


def parse_script(data: Any) -> InstructionScript:
    """Validate an already-decoded script mapping."""
    if not isinstance(data, dict):
        raise ScriptValidationError("Script YAML must be a mapping/object.")

    unknown_keys = sorted(set(data) - _ALLOWED_KEYS)
    if unknown_keys:
        raise ScriptValidationError(f"Unknown script keys: {', '.join(unknown_keys)}")

    steps = data.get("steps")
    if not isinstance(steps, list):
        raise ScriptValidationError("Script must define 'steps' as an array.")
    if not steps:
        raise ScriptValidationError("Script must contain at least one step.")

    try:
        script = InstructionScript(**data)
    except ValidationError as e:
        issues = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ScriptValidationError("Script failed validation.", issues) from e

    seen: set[str] = set()
    dupes: set[str] = set()
    for step in script.steps:
        if step.id in seen:
            dupes.add(step.id)
        seen.add(step.id)
    if dupes:
        raise ScriptValidationError(f"Duplicate step ids: {', '.join(sorted(dupes))}")
    return script


def load_script(path: str | Path) -> InstructionScript:
    """Load a script from a YAML file."""
    try:
        data = yaml.safe_load(read_text_safe(path))
    except yaml.YAMLError as e:
        raise ScriptValidationError(f"Cannot parse script YAML: {e}") from e
    return parse_script(data)


def execute_script(
    script: InstructionScript,
    session: Session,
    *,
    output_path: str | Path | None = None,
) -> ScriptResult:
    """Run each step through *session*, then save the grid when appropriate.

    *session* must already hold a grid. Steps are independent: each one is
    applied to the grid left by the previous successful step. The grid is
    written to *output_path* when the script is not a dry run, at least one
    step applied, and either every step passed or ``stop_on_error`` is off.
    """
    defaults = script.defaults
    result = ScriptResult(script=script.name, steps_total=len(script.steps))

    for step in script.steps:
        step_result = StepResult(step_id=step.id, instruction=step.instruction)
        try:
            mutation = session.run(step.instruction)
        except InstructionError as e:
            step_result.error = e.message
            step_result.code = e.code
            result.steps.append(step_result)
            if defaults.stop_on_error:
                break
            continue
        step_result.ok = True
        step_result.message = mutation.message
        result.steps.append(step_result)

    result.steps_passed = sum(1 for s in result.steps if s.ok)
    result.ok = result.steps_passed == result.steps_total

    should_save = (
        output_path is not None
        and not defaults.dry_run
        and result.steps_passed > 0
        and (result.ok or not defaults.stop_on_error)
    )
    if should_save:
        session.export(output_path)
        result.saved = True

    result.history = list(session.history)
    result.meta = session.meta()
    return result
