"""Tests for structural edits: cascades, no-ops, and immutability of the input."""

from __future__ import annotations

import pytest

from ocalc.contracts.document import Document, Metadata, Totals
from ocalc.contracts.operations import Operation
from ocalc.engine import editor


# ---------------------------------------------------------------------------
# rename_column
# ---------------------------------------------------------------------------


def test_rename_cascades(sales_document):
    doc = editor.rename_column(sales_document, "Price", "Cost")
    assert doc.columns == ["Item", "Cost", "Qty", "Total"]
    assert doc.rows[0]["Cost"] == "1.5"
    assert "Price" not in doc.rows[0]
    assert doc.metadata.formulas == {"Total": "{Cost} * {Qty}"}


def test_rename_formula_column_keeps_position():
    doc = Document(
        metadata=Metadata(formulas={"B": "{A} + 1", "C": "{B} * 2"}),
        columns=["A", "B", "C"],
        rows=[{"A": "1", "B": "2", "C": "4"}],
    )
    renamed = editor.rename_column(doc, "B", "Bee")
    assert list(renamed.metadata.formulas.items()) == [("Bee", "{A} + 1"), ("C", "{Bee} * 2")]


def test_rename_updates_target_columns(sales_document):
    doc = editor.rename_column(sales_document, "Qty", "Count")
    assert doc.metadata.totals.target_columns == ["Count", "Total"]


@pytest.mark.parametrize("old, new", [("Price", ""), ("Price", "Price"), ("Price", "Qty"), ("Nope", "X")])
def test_rename_noops(sales_document, old: str, new: str):
    assert editor.rename_column(sales_document, old, new) is None


def test_rename_does_not_mutate_input(sales_document):
    before = sales_document.model_copy(deep=True)
    editor.rename_column(sales_document, "Price", "Cost")
    assert sales_document == before


# ---------------------------------------------------------------------------
# add_column
# ---------------------------------------------------------------------------


def test_add_column_right_and_left(plain_document):
    right = editor.add_column(plain_document, "A", "right")
    assert right.columns == ["A", "NewCol", "B"]
    left = editor.add_column(plain_document, "A", "left")
    assert left.columns == ["NewCol", "A", "B"]
    assert all(row["NewCol"] == "" for row in left.rows)


def test_add_column_unique_names():
    doc = Document(columns=["NewCol"], rows=[{"NewCol": ""}])
    doc = editor.add_column(doc, "NewCol")
    assert doc.columns == ["NewCol", "NewCol1"]
    doc = editor.add_column(doc, "NewCol1")
    assert doc.columns == ["NewCol", "NewCol1", "NewCol2"]


def test_add_column_unknown_anchor(plain_document):
    assert editor.add_column(plain_document, "Z") is None


def test_unique_column_name():
    assert editor.unique_column_name(["A"]) == "NewCol"
    assert editor.unique_column_name(["NewCol", "NewCol1"]) == "NewCol2"


# ---------------------------------------------------------------------------
# delete_column
# ---------------------------------------------------------------------------


def test_delete_cascades(sales_document):
    doc = editor.delete_column(sales_document, "Total")
    assert doc.columns == ["Item", "Price", "Qty"]
    assert all("Total" not in row for row in doc.rows)
    assert "Total" not in doc.metadata.formulas
    assert doc.metadata.totals.target_columns == ["Qty"]


def test_delete_removes_total_target():
    doc = Document(
        metadata=Metadata(totals=Totals(target_columns=["Price", "Qty"])),
        columns=["Price", "Qty"],
        rows=[{"Price": "1", "Qty": "2"}],
    )
    assert editor.delete_column(doc, "Qty").metadata.totals.target_columns == ["Price"]


def test_delete_referenced_column_keeps_reference(sales_document):
    doc = editor.delete_column(sales_document, "Price")
    assert doc.metadata.formulas == {"Total": "{Price} * {Qty}"}


def test_delete_unknown_column(sales_document):
    assert editor.delete_column(sales_document, "Nope") is None


def test_delete_last_column_allowed():
    doc = editor.delete_column(Document(), "Column1")
    assert doc.columns == []


# ---------------------------------------------------------------------------
# move_column
# ---------------------------------------------------------------------------


def test_move_column(sales_document):
    doc = editor.move_column(sales_document, 3, 0)
    assert doc.columns == ["Total", "Item", "Price", "Qty"]


@pytest.mark.parametrize("src, dst", [(0, 0), (-1, 0), (0, 4), (9, 1)])
def test_move_column_noops(sales_document, src: int, dst: int):
    assert editor.move_column(sales_document, src, dst) is None


# ---------------------------------------------------------------------------
# set_formula
# ---------------------------------------------------------------------------


def test_set_formula_trims(plain_document):
    doc = editor.set_formula(plain_document, "B", "  {A} * 2  ")
    assert doc.metadata.formulas == {"B": "{A} * 2"}


def test_set_formula_blank_clears(sales_document):
    doc = editor.set_formula(sales_document, "Total", "   ")
    assert doc.metadata.formulas == {}


def test_set_formula_noops(sales_document, plain_document):
    assert editor.set_formula(sales_document, "Total", "{Price} * {Qty}") is None
    assert editor.set_formula(sales_document, "Nope", "1") is None
    assert editor.set_formula(plain_document, "A", "") is None


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------


def test_toggle_total_column(sales_document):
    doc = editor.toggle_total_column(sales_document, "Qty")
    assert doc.metadata.totals.target_columns == ["Total"]
    doc = editor.toggle_total_column(doc, "Price")
    assert doc.metadata.totals.target_columns == ["Total", "Price"]


def test_toggle_total_column_initializes_full_set(plain_document):
    doc = editor.toggle_total_column(plain_document, "A")
    assert doc.metadata.totals.show_total_row is True
    assert doc.metadata.totals.target_columns == ["B"]


def test_toggle_total_column_without_targets_list():
    doc = Document(
        metadata=Metadata(totals=Totals(show_total_row=False)),
        columns=["A", "B"],
        rows=[{"A": "", "B": ""}],
    )
    toggled = editor.toggle_total_column(doc, "B")
    assert toggled.metadata.totals.target_columns == ["A"]
    assert toggled.metadata.totals.show_total_row is False


def test_toggle_total_column_unknown(sales_document):
    assert editor.toggle_total_column(sales_document, "Nope") is None


def test_toggle_total_row(sales_document, plain_document):
    hidden = editor.toggle_total_row(sales_document)
    assert hidden.metadata.totals.show_total_row is False
    assert editor.toggle_total_row(hidden).metadata.totals.show_total_row is True
    # Absent totals means shown, so the first toggle hides it
    assert editor.toggle_total_row(plain_document).metadata.totals.show_total_row is False


# ---------------------------------------------------------------------------
# Rows and cells
# ---------------------------------------------------------------------------


def test_add_row_append_and_insert(plain_document):
    appended = editor.add_row(plain_document)
    assert appended.rows[-1] == {"A": "", "B": ""}
    assert len(appended.rows) == 3
    inserted = editor.add_row(plain_document, 0)
    assert inserted.rows[0] == {"A": "", "B": ""}
    assert inserted.rows[1] == {"A": "2", "B": "3"}


@pytest.mark.parametrize("index", [-1, 3])
def test_add_row_out_of_range(plain_document, index: int):
    assert editor.add_row(plain_document, index) is None


def test_delete_row(plain_document):
    doc = editor.delete_row(plain_document, 0)
    assert doc.rows == [{"A": "4", "B": "5"}]
    assert editor.delete_row(plain_document, 2) is None


def test_move_row(plain_document):
    doc = editor.move_row(plain_document, 1, 0)
    assert [row["A"] for row in doc.rows] == ["4", "2"]
    assert editor.move_row(plain_document, 0, 0) is None
    assert editor.move_row(plain_document, 0, 5) is None


def test_edit_cell(plain_document):
    doc = editor.edit_cell(plain_document, 1, "B", "50")
    assert doc.rows[1]["B"] == "50"
    assert plain_document.rows[1]["B"] == "5"


def test_edit_cell_formula_column_is_noop(sales_document):
    assert editor.edit_cell(sales_document, 0, "Total", "100") is None
    assert editor.edit_cell(sales_document, 0, "Qty", "5") is not None


@pytest.mark.parametrize("row, column, value", [(0, "A", "2"), (5, "A", "1"), (0, "Z", "1")])
def test_edit_cell_noops(plain_document, row: int, column: str, value: str):
    assert editor.edit_cell(plain_document, row, column, value) is None


# ---------------------------------------------------------------------------
# apply_operation
# ---------------------------------------------------------------------------


def test_apply_operation_dispatch(sales_document):
    op = Operation(kind="rename_column", column="Price", new_name="Cost")
    assert editor.apply_operation(sales_document, op).columns[1] == "Cost"


def test_apply_operation_add_row_default_appends(plain_document):
    doc = editor.apply_operation(plain_document, Operation(kind="add_row"))
    assert len(doc.rows) == 3
