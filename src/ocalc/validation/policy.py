"""Policy engine: load and enforce ocalc-policy.yaml rules."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ocalc.contracts.document import Document
from ocalc.contracts.operations import Operation
from ocalc.io.fileops import read_text_safe

POLICY_FILENAME = "ocalc-policy.yaml"

# Operation kinds that touch a named column and are blocked on protected columns
_COLUMN_EDITS = frozenset({"rename_column", "delete_column", "set_formula", "edit_cell"})


class Policy:
    """Represents a loaded policy configuration."""

    def __init__(self, data: dict[str, Any]) -> None:
        self.protected_columns: list[str] = data.get("protected_columns") or []
        self.allowed_operations: list[str] = data.get("allowed_operations") or []
        self.mutation_thresholds: dict[str, int] = data.get("mutation_thresholds") or {}

    @classmethod
    def load(cls, path: str | Path) -> "Policy":
        """Load policy from a YAML file."""
        text = read_text_safe(path)
        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Policy file must contain a mapping: {path}")
        return cls(data)

    @classmethod
    def load_from_dir(cls, directory: str | Path) -> "Policy | None":
        """Try to load ocalc-policy.yaml from a directory. Returns None if not found."""
        path = Path(directory) / POLICY_FILENAME
        if path.exists():
            return cls.load(path)
        return None


def check_operation_policy(
    policy: Policy,
    document: Document,
    op: Operation,
) -> list[dict[str, Any]]:
    """Check one operation against policy rules. Returns list of violations."""
    violations: list[dict[str, Any]] = []

    if policy.allowed_operations and op.kind not in policy.allowed_operations:
        violations.append({
            "type": "operation_not_allowed",
            "severity": "error",
            "op_id": op.op_id,
            "message": f"Operation '{op.kind}' is not in allowed_operations",
        })

    if op.kind in _COLUMN_EDITS and op.column in policy.protected_columns:
        violations.append({
            "type": "protected_column",
            "severity": "error",
            "op_id": op.op_id,
            "message": f"Operation '{op.kind}' targets protected column '{op.column}'",
        })

    if op.kind == "move_column" and op.from_index is not None:
        if 0 <= op.from_index < len(document.columns):
            moved = document.columns[op.from_index]
            if moved in policy.protected_columns:
                violations.append({
                    "type": "protected_column",
                    "severity": "error",
                    "op_id": op.op_id,
                    "message": f"Operation 'move_column' moves protected column '{moved}'",
                })

    max_rows = policy.mutation_thresholds.get("max_rows")
    if max_rows and op.kind == "add_row" and len(document.rows) + 1 > max_rows:
        violations.append({
            "type": "mutation_threshold",
            "severity": "error",
            "op_id": op.op_id,
            "message": f"Adding a row would exceed max_rows of {max_rows}",
        })

    return violations
