"""Document codec: ``---`` YAML header + CSV body <-> :class:`Document`."""

from __future__ import annotations

import csv
import io
import re
from typing import Any

import yaml

from ocalc.contracts.document import DEFAULT_COLUMN, Document, Metadata

DELIMITER = "---"
_OPEN = DELIMITER + "\n"
_CLOSE = "\n" + DELIMITER + "\n"
_LEADING_NEWLINES_RE = re.compile(r"^[\r\n]+")

# Cells have no length limit
csv.field_size_limit(2**31 - 1)


def split_header(raw: str) -> tuple[Any, str]:
    """Split *raw* into (parsed YAML or None, data block).

    A header is recognized only when the text starts with ``---\\n`` and a
    closing ``\\n---\\n`` follows. YAML that fails to load yields ``None``
    while the data block is still taken from after the closing delimiter.
    """
    if not raw.startswith(_OPEN):
        return None, raw
    end = raw.find(_CLOSE, len(_OPEN))
    if end == -1:
        return None, raw
    yaml_text = raw[len(_OPEN):end]
    data_text = _LEADING_NEWLINES_RE.sub("", raw[end + len(_CLOSE):])
    try:
        header = yaml.safe_load(yaml_text)
    except (yaml.YAMLError, ValueError, TypeError, RecursionError):
        header = None
    return header, data_text


def _unique_columns(fields: list[str]) -> list[str]:
    columns: list[str] = []
    for name in fields:
        candidate = name
        counter = 1
        while candidate in columns:
            candidate = f"{name}_{counter}"
            counter += 1
        columns.append(candidate)
    return columns


def parse_table(text: str) -> tuple[list[str], list[dict[str, str]]]:
    """Parse the CSV block into (columns, rows), synthesizing the minimal table."""
    records = list(csv.reader(io.StringIO(text, newline="")))

    while records and not records[0]:
        records.pop(0)
    while len(records) > 1 and not records[-1]:
        records.pop()

    columns = _unique_columns(records[0]) if records else []
    if not columns:
        columns = [DEFAULT_COLUMN]

    rows: list[dict[str, str]] = []
    for record in records[1:]:
        rows.append({col: record[i] if i < len(record) else "" for i, col in enumerate(columns)})
    if not rows:
        rows = [{col: "" for col in columns}]
    return columns, rows


def parse(raw: str) -> Document:
    """Parse raw document text. Never raises on malformed input."""
    header, data_text = split_header(raw or "")
    columns, rows = parse_table(data_text)
    return Document(metadata=Metadata.from_mapping(header), columns=columns, rows=rows)


def serialize_metadata(metadata: Metadata) -> str:
    return yaml.safe_dump(
        metadata.to_mapping(),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


def serialize_table(columns: list[str], rows: list[dict[str, str]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow([row.get(col, "") for col in columns])
    return buf.getvalue()


def serialize(document: Document) -> str:
    """Render *document* as header + CSV text."""
    return (
        f"{_OPEN}{serialize_metadata(document.metadata)}{DELIMITER}\n"
        f"{serialize_table(document.columns, document.rows)}"
    )
