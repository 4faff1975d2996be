"""DocumentSession: parse -> edit -> recompute -> serialize, behind one entry point."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from ocalc.contracts.common import OperationError
from ocalc.contracts.document import Document
from ocalc.contracts.operations import Operation, OperationPlan
from ocalc.contracts.responses import DocumentState, OperationResult
from ocalc.engine import codec, editor
from ocalc.engine.expression import recalculate_formulas
from ocalc.engine.totals import recompute_totals
from ocalc.observe.events import EventEmitter


def recalculate(document: Document) -> Document:
    """Recompute formula columns, then the total row over the fresh values."""
    document = recalculate_formulas(document)
    metadata = recompute_totals(document.metadata, document.columns, document.rows)
    if metadata is document.metadata:
        return document
    return document.model_copy(update={"metadata": metadata})


def to_operation(kind: str | Operation, params: dict[str, Any] | None = None) -> Operation:
    """Validate a (kind, params) request into an :class:`Operation`."""
    if isinstance(kind, Operation):
        return kind
    try:
        return Operation.model_validate({**(params or {}), "kind": kind})
    except ValidationError as e:
        raise OperationError(str(e)) from e


class DocumentSession:
    """Holds one open document and applies operations to it.

    Each call to :meth:`apply_operation` is atomic: the session's document
    and raw text are replaced only after the edit, the recompute and the
    serialization have all completed.
    """

    def __init__(self, raw: str = "", *, events: EventEmitter | None = None) -> None:
        self.events = events or EventEmitter()
        self.raw = ""
        self.document = Document()
        self.open_document(raw)

    def open_document(self, raw: str) -> DocumentState:
        """Load *raw* text for rendering. Nothing is recomputed."""
        self.raw = raw or ""
        self.document = codec.parse(self.raw)
        self.events.emit("document.opened", {
            "columns": len(self.document.columns),
            "rows": len(self.document.rows),
        })
        return self.state()

    def state(self) -> DocumentState:
        return DocumentState(
            metadata=self.document.metadata.to_mapping(),
            columns=list(self.document.columns),
            rows=[dict(row) for row in self.document.rows],
        )

    def result(self, *, changed: bool) -> OperationResult:
        return OperationResult(**self.state().model_dump(), raw=self.raw, changed=changed)

    def apply_operation(
        self,
        kind: str | Operation,
        params: dict[str, Any] | None = None,
    ) -> OperationResult:
        """Apply one edit and return the new raw text plus structured state.

        Raises :class:`OperationError` for unknown kinds or missing
        parameters. Edits that are invalid for the current document (unknown
        column, index out of range, duplicate name) leave it untouched and
        report ``changed=False``.
        """
        op = to_operation(kind, params)
        updated = editor.apply_operation(self.document, op)
        if updated is None:
            self.events.emit("operation.noop", {"kind": op.kind, "op_id": op.op_id})
            return self.result(changed=False)

        raw = codec.serialize(recalculate(updated))
        # Held state mirrors the serialized text, minimal table included
        self.document = codec.parse(raw)
        self.raw = raw
        self.events.emit("operation.applied", {
            "kind": op.kind,
            "op_id": op.op_id,
            "columns": len(self.document.columns),
            "rows": len(self.document.rows),
        })
        return self.result(changed=True)

    def apply_plan(self, plan: OperationPlan) -> list[OperationResult]:
        """Apply every operation of *plan* in order."""
        return [self.apply_operation(op) for op in plan.operations]


def open_document(raw: str) -> DocumentState:
    """Parse *raw* for an initial render."""
    return DocumentSession(raw).state()


def apply_operation(raw: str, kind: str, params: dict[str, Any] | None = None) -> OperationResult:
    """One-shot form of :meth:`DocumentSession.apply_operation` over raw text."""
    return DocumentSession(raw).apply_operation(kind, params)
