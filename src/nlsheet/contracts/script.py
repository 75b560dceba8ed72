"""Instruction script models for ``nlsheet run``."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class ScriptDefaults(BaseModel):
    dry_run: bool = False
    stop_on_error: bool = True


class ScriptTarget(BaseModel):
    file: str | None = None
    sheet: str | None = None
    sample: bool = False


class ScriptStep(BaseModel):
    id: str
    instruction: str

    @field_validator("instruction")
    @classmethod
    def validate_instruction(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Step instruction cannot be empty.")
        return v


class InstructionScript(BaseModel):
    schema_version: str = "1.0"
    name: str = ""
    target: ScriptTarget = Field(default_factory=ScriptTarget)
    defaults: ScriptDefaults = Field(default_factory=ScriptDefaults)
    steps: list[ScriptStep] = Field(default_factory=list)
