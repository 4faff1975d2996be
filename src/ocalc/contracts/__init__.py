"""Pydantic models for documents, operations, plans, and responses."""

from ocalc.contracts.common import (
    ChangeRecord,
    DocumentReadError,
    ErrorDetail,
    Metrics,
    OperationError,
    RecalcInfo,
    ResponseEnvelope,
    Target,
    WarningDetail,
)
from ocalc.contracts.document import Document, Metadata, Totals
from ocalc.contracts.operations import (
    OPERATION_KINDS,
    Operation,
    OperationPlan,
    PlanTarget,
)
from ocalc.contracts.responses import (
    ApplyResult,
    DocumentInfo,
    DocumentState,
    HeaderCell,
    OperationResult,
    TableView,
)

__all__ = [
    "OPERATION_KINDS",
    "ApplyResult",
    "ChangeRecord",
    "Document",
    "DocumentInfo",
    "DocumentReadError",
    "DocumentState",
    "ErrorDetail",
    "HeaderCell",
    "Metadata",
    "Metrics",
    "Operation",
    "OperationError",
    "OperationPlan",
    "OperationResult",
    "PlanTarget",
    "RecalcInfo",
    "ResponseEnvelope",
    "TableView",
    "Target",
    "Totals",
    "WarningDetail",
]
