"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from ocalc.engine import codec

SALES_RAW = """\
---
formulas:
  Total: '{Price} * {Qty}'
totals:
  showTotalRow: true
  targetColumns:
  - Qty
  - Total
---
Item,Price,Qty,Total
Apple,1.5,4,6
Pear,2,3,6
"""

PLAIN_RAW = "A,B\n2,3\n4,5\n"


@pytest.fixture()
def sales_raw() -> str:
    """Document with one formula column and a total row over Qty and Total."""
    return SALES_RAW


@pytest.fixture()
def sales_document():
    return codec.parse(SALES_RAW)


@pytest.fixture()
def plain_document():
    """Two numeric columns, no header."""
    return codec.parse(PLAIN_RAW)


@pytest.fixture()
def sales_file(tmp_path: Path) -> Path:
    path = tmp_path / "sales.ocalc"
    path.write_text(SALES_RAW, encoding="utf-8")
    return path


@pytest.fixture()
def plain_file(tmp_path: Path) -> Path:
    path = tmp_path / "plain.ocalc"
    path.write_text(PLAIN_RAW, encoding="utf-8")
    return path


@pytest.fixture()
def sample_plan(tmp_path: Path, sales_file: Path) -> Path:
    """Plan that adds a Tax column after Price and gives it a formula."""
    plan = {
        "schema_version": "1.0",
        "plan_id": "plan-tax",
        "target": {"file": str(sales_file)},
        "operations": [
            {"op_id": "op1", "kind": "add_column", "column": "Price"},
            {"op_id": "op2", "kind": "rename_column", "column": "NewCol", "new_name": "Tax"},
            {"op_id": "op3", "kind": "set_formula", "column": "Tax", "formula": "{Price} * 0.1"},
        ],
    }
    path = tmp_path / "plan.json"
    path.write_text(json.dumps(plan, indent=2))
    return path
