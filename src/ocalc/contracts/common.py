"""Common Pydantic models: response envelope, errors, warnings, metrics."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class OperationError(ValueError):
    """Raised when an operation request is malformed (unknown kind, missing params)."""


class DocumentReadError(Exception):
    """Raised when a document file cannot be decoded as text."""


class Target(BaseModel):
    """Identifies the target document/column/row for a command."""

    file: str | None = None
    column: str | None = None
    row: int | None = None


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


class RecalcInfo(BaseModel):
    """What the last save cycle recomputed."""

    performed: bool = False
    formula_columns: list[str] = Field(default_factory=list)
    totals: bool = False


class ChangeRecord(BaseModel):
    """Describes a single change made (or projected) by a mutating command."""

    op_id: str | None = None
    type: str
    target: str
    before: Any | None = None
    after: Any | None = None
    changed: bool = True
    warnings: list[WarningDetail] = Field(default_factory=list)


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
    recalc: RecalcInfo = Field(default_factory=RecalcInfo)
