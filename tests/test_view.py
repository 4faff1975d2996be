"""Tests for the table view model."""

from __future__ import annotations

from ocalc.contracts.document import Document, Metadata, Totals
from ocalc.engine import codec
from ocalc.engine.facade import recalculate
from ocalc.render.view import build_table_view, total_row


def test_headers_flag_formula_columns(sales_document):
    view = build_table_view(sales_document, title="sales")
    assert view.title == "sales"
    assert [h.name for h in view.headers] == ["Item", "Price", "Qty", "Total"]
    assert [h.has_formula for h in view.headers] == [False, False, False, True]
    assert view.headers[3].formula == "{Price} * {Qty}"
    assert view.rows[1] == ["Pear", "2", "3", "6"]


def test_total_row_values_blanks_and_marks(sales_document):
    doc = recalculate(sales_document)
    assert total_row(doc) == ["-", "-", "7", "12"]


def test_total_row_blank_without_numeric_data():
    doc = codec.parse("---\ntotals:\n  targetColumns: [Name, N]\n---\nName,N\nx,\n")
    assert total_row(recalculate(doc)) == ["", ""]


def test_total_row_hidden():
    doc = Document(metadata=Metadata(totals=Totals(show_total_row=False)))
    assert total_row(doc) is None
    assert build_table_view(doc).total_row is None


def test_total_row_without_totals_section():
    doc = codec.parse("A,B\n1,2\n")
    # No cached results yet: every column is a target, all blank
    assert total_row(doc) == ["", ""]


def test_embed_labels_first_cell(sales_document):
    view = build_table_view(recalculate(sales_document), embed=True)
    assert view.total_row == ["Total", "-", "7", "12"]


def test_total_row_formats_floats():
    doc = Document(
        metadata=Metadata(totals=Totals(results={"A": 0.3})),
        columns=["A"],
        rows=[{"A": "0.1"}, {"A": "0.2"}],
    )
    assert total_row(doc) == ["0.3"]
