"""Structural edits on a :class:`Document`.

Every function takes the current document and returns a new one, or
``None`` when the edit is invalid or would change nothing. The input
document is never modified.
"""

from __future__ import annotations

from ocalc.contracts.document import Document, Totals
from ocalc.contracts.operations import Operation
from ocalc.engine.expression import rename_placeholder

NEW_COLUMN_BASE = "NewCol"


def unique_column_name(columns: list[str], base: str = NEW_COLUMN_BASE) -> str:
    """First of ``base``, ``base1``, ``base2``, ... not already in *columns*."""
    name = base
    counter = 1
    while name in columns:
        name = f"{base}{counter}"
        counter += 1
    return name


def _in_range(index: int | None, length: int) -> bool:
    return index is not None and 0 <= index < length


# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------


def rename_column(document: Document, old: str, new: str) -> Document | None:
    if not new or new == old or new in document.columns or old not in document.columns:
        return None
    doc = document.model_copy(deep=True)
    doc.columns[doc.columns.index(old)] = new
    doc.rows = [{(new if k == old else k): v for k, v in row.items()} for row in doc.rows]

    meta = doc.metadata
    if meta.formulas:
        meta.formulas = {
            (new if col == old else col): rename_placeholder(text, old, new)
            for col, text in meta.formulas.items()
        }
    if meta.totals is not None and meta.totals.target_columns is not None:
        meta.totals.target_columns = [new if c == old else c for c in meta.totals.target_columns]
    return doc


def add_column(document: Document, anchor: str, side: str = "right") -> Document | None:
    if anchor not in document.columns:
        return None
    doc = document.model_copy(deep=True)
    name = unique_column_name(doc.columns)
    index = doc.columns.index(anchor) + (0 if side == "left" else 1)
    doc.columns.insert(index, name)
    for row in doc.rows:
        row[name] = ""
    return doc


def delete_column(document: Document, column: str) -> Document | None:
    """Remove *column* everywhere except formula text.

    Formulas that still reference ``{column}`` keep the reference, which
    then evaluates as 0.
    """
    if column not in document.columns:
        return None
    doc = document.model_copy(deep=True)
    doc.columns.remove(column)
    for row in doc.rows:
        row.pop(column, None)

    meta = doc.metadata
    if meta.formulas and column in meta.formulas:
        del meta.formulas[column]
    if meta.totals is not None and meta.totals.target_columns is not None:
        meta.totals.target_columns = [c for c in meta.totals.target_columns if c != column]
    return doc


def move_column(document: Document, from_index: int, to_index: int) -> Document | None:
    count = len(document.columns)
    if not (_in_range(from_index, count) and _in_range(to_index, count)) or from_index == to_index:
        return None
    doc = document.model_copy(deep=True)
    doc.columns.insert(to_index, doc.columns.pop(from_index))
    return doc


def set_formula(document: Document, column: str, formula: str) -> Document | None:
    """Set the formula of *column*; blank text clears it."""
    if column not in document.columns:
        return None
    text = formula.strip()
    current = (document.metadata.formulas or {}).get(column)
    if (text and current == text) or (not text and current is None):
        return None
    doc = document.model_copy(deep=True)
    meta = doc.metadata
    if meta.formulas is None:
        meta.formulas = {}
    if text:
        meta.formulas[column] = text
    else:
        meta.formulas.pop(column, None)
    return doc


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------


def toggle_total_column(document: Document, column: str) -> Document | None:
    """Include or exclude *column* from the total row.

    Without an explicit target list every column is a target, so the list is
    materialized from the current columns before toggling.
    """
    if column not in document.columns:
        return None
    doc = document.model_copy(deep=True)
    meta = doc.metadata
    if meta.totals is None:
        meta.totals = Totals(show_total_row=True)
    if meta.totals.target_columns is None:
        meta.totals.target_columns = list(doc.columns)
    targets = meta.totals.target_columns
    if column in targets:
        targets.remove(column)
    else:
        targets.append(column)
    return doc


def toggle_total_row(document: Document) -> Document:
    doc = document.model_copy(deep=True)
    meta = doc.metadata
    if meta.totals is None:
        meta.totals = Totals()
    meta.totals.show_total_row = not meta.totals.shown
    return doc


# ---------------------------------------------------------------------------
# Rows and cells
# ---------------------------------------------------------------------------


def add_row(document: Document, index: int | None = None) -> Document | None:
    """Insert an empty row before *index*; ``None`` appends."""
    if index is None:
        index = len(document.rows)
    if not 0 <= index <= len(document.rows):
        return None
    doc = document.model_copy(deep=True)
    doc.rows.insert(index, doc.empty_row())
    return doc


def delete_row(document: Document, index: int) -> Document | None:
    if not _in_range(index, len(document.rows)):
        return None
    doc = document.model_copy(deep=True)
    del doc.rows[index]
    return doc


def move_row(document: Document, from_index: int, to_index: int) -> Document | None:
    count = len(document.rows)
    if not (_in_range(from_index, count) and _in_range(to_index, count)) or from_index == to_index:
        return None
    doc = document.model_copy(deep=True)
    doc.rows.insert(to_index, doc.rows.pop(from_index))
    return doc


def edit_cell(document: Document, row: int, column: str, value: str) -> Document | None:
    if not _in_range(row, len(document.rows)) or column not in document.columns:
        return None
    if document.metadata.formula_for(column) is not None:
        return None
    if document.rows[row][column] == value:
        return None
    doc = document.model_copy(deep=True)
    doc.rows[row][column] = value
    return doc


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def apply_operation(document: Document, op: Operation) -> Document | None:
    """Run the edit described by *op* (already validated by the model)."""
    kind = op.kind
    if kind == "rename_column":
        return rename_column(document, op.column, op.new_name)
    if kind == "add_column":
        return add_column(document, op.column, op.side)
    if kind == "delete_column":
        return delete_column(document, op.column)
    if kind == "move_column":
        return move_column(document, op.from_index, op.to_index)
    if kind == "set_formula":
        return set_formula(document, op.column, op.formula)
    if kind == "toggle_total_column":
        return toggle_total_column(document, op.column)
    if kind == "toggle_total_row":
        return toggle_total_row(document)
    if kind == "add_row":
        return add_row(document, op.index)
    if kind == "delete_row":
        return delete_row(document, op.index)
    if kind == "move_row":
        return move_row(document, op.from_index, op.to_index)
    if kind == "edit_cell":
        return edit_cell(document, op.row, op.column, op.value)
    raise ValueError(f"Unknown operation kind: {kind}")
