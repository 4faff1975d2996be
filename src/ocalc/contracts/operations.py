"""Operation and plan models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

# Required parameters per operation kind
OPERATION_PARAMS: dict[str, tuple[str, ...]] = {
    "rename_column": ("column", "new_name"),
    "add_column": ("column",),
    "delete_column": ("column",),
    "move_column": ("from_index", "to_index"),
    "set_formula": ("column", "formula"),
    "toggle_total_column": ("column",),
    "toggle_total_row": (),
    "add_row": (),
    "delete_row": ("index",),
    "move_row": ("from_index", "to_index"),
    "edit_cell": ("row", "column", "value"),
}

OPERATION_KINDS = frozenset(OPERATION_PARAMS)


class Operation(BaseModel):
    """A single structural edit."""

    op_id: str | None = None
    kind: str
    # All remaining fields are kind-specific
    column: str | None = None
    new_name: str | None = None
    side: Literal["left", "right"] = "right"
    formula: str | None = None
    index: int | None = None  # add_row: insert position (None appends)
    from_index: int | None = None
    to_index: int | None = None
    row: int | None = None
    value: str | None = None

    @field_validator("kind")
    @classmethod
    def validate_kind(cls, v: str) -> str:
        if v not in OPERATION_KINDS:
            raise ValueError(
                f"Unknown operation kind: '{v}'. "
                f"Supported: {', '.join(sorted(OPERATION_KINDS))}"
            )
        return v

    @field_validator("value", "formula", "new_name", "column", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @model_validator(mode="after")
    def check_params(self) -> "Operation":
        missing = [p for p in OPERATION_PARAMS[self.kind] if getattr(self, p) is None]
        if missing:
            raise ValueError(f"Operation '{self.kind}' requires: {', '.join(missing)}")
        return self


class PlanTarget(BaseModel):
    """Target document for an operation plan."""

    file: str
    fingerprint: str | None = None


class OperationPlan(BaseModel):
    """An ordered list of operations applied to one document and written once."""

    schema_version: str = "1.0"
    plan_id: str = ""
    target: PlanTarget
    operations: list[Operation] = Field(default_factory=list)
