"""Total row aggregation."""

from __future__ import annotations

from collections.abc import Sequence

from ocalc.contracts.document import Metadata
from ocalc.engine.expression import parse_number, round_significant, to_plain_number


def column_total(rows: Sequence[dict[str, str]], column: str) -> int | float | None:
    """Sum of the numeric cells of *column*; ``None`` when no cell is numeric."""
    total = 0.0
    numeric = False
    for row in rows:
        value = parse_number(row.get(column))
        if value is not None:
            total += value
            numeric = True
    if not numeric:
        return None
    return to_plain_number(round_significant(total))


def recompute_totals(
    metadata: Metadata,
    columns: Sequence[str],
    rows: Sequence[dict[str, str]],
) -> Metadata:
    """Return *metadata* with ``totals.results`` rebuilt from *rows*.

    Untouched when there is no ``totals`` section or the total row is
    switched off. Columns outside the target set, and columns without any
    numeric cell, get no entry.
    """
    totals = metadata.totals
    if totals is None or not totals.shown:
        return metadata

    targets = set(totals.effective_targets(list(columns)))
    results: dict[str, int | float] = {}
    for column in columns:
        if column not in targets:
            continue
        total = column_total(rows, column)
        if total is not None:
            results[column] = total

    return metadata.model_copy(
        update={"totals": totals.model_copy(update={"results": results})}
    )
