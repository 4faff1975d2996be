"""Table view model for display adapters (editor grid, embedded preview)."""

from __future__ import annotations

from ocalc.contracts.document import Document
from ocalc.contracts.responses import HeaderCell, TableView
from ocalc.engine.expression import format_number

TOTAL_LABEL = "Total"
EXCLUDED_MARK = "-"


def total_row(document: Document, *, label: str | None = None) -> list[str] | None:
    """Cells of the total row, or ``None`` when it is hidden.

    A targeted column shows its cached total (blank when it has no numeric
    data); a column outside the target set shows ``-``. With *label*, the
    first cell carries the label instead.
    """
    totals = document.metadata.totals
    if totals is not None and not totals.shown:
        return None
    targets = document.columns if totals is None else totals.effective_targets(document.columns)
    results = (totals.results if totals is not None else None) or {}

    cells: list[str] = []
    for index, column in enumerate(document.columns):
        if label is not None and index == 0:
            cells.append(label)
        elif column in targets:
            value = results.get(column)
            cells.append("" if value is None else format_number(float(value)))
        else:
            cells.append(EXCLUDED_MARK)
    return cells


def build_table_view(document: Document, *, title: str = "", embed: bool = False) -> TableView:
    """Header, body and total row for *document*.

    ``embed`` mirrors the read-only preview, where the first total cell is
    the "Total" label.
    """
    headers = [
        HeaderCell(
            name=column,
            has_formula=document.metadata.formula_for(column) is not None,
            formula=document.metadata.formula_for(column),
        )
        for column in document.columns
    ]
    rows = [[row.get(column, "") for column in document.columns] for row in document.rows]
    return TableView(
        title=title,
        headers=headers,
        rows=rows,
        total_row=total_row(document, label=TOTAL_LABEL if embed else None),
    )
