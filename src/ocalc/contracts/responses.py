"""Command-specific result models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class DocumentState(BaseModel):
    """Structured document handed to a caller for rendering."""

    metadata: dict[str, Any] = Field(default_factory=dict)
    columns: list[str] = Field(default_factory=list)
    rows: list[dict[str, str]] = Field(default_factory=list)


class OperationResult(DocumentState):
    """Result of applying one operation: the new raw text plus the structured state."""

    raw: str = ""
    changed: bool = False


class DocumentInfo(BaseModel):
    """Summary returned by ``ocalc inspect``."""

    path: str
    fingerprint: str
    columns: list[str] = Field(default_factory=list)
    row_count: int = 0
    formula_columns: list[str] = Field(default_factory=list)
    total_row_shown: bool = True
    total_columns: list[str] = Field(default_factory=list)
    has_metadata: bool = False


class HeaderCell(BaseModel):
    name: str
    has_formula: bool = False
    formula: str | None = None


class TableView(BaseModel):
    """Render model for a document: header, body, optional total row."""

    title: str = ""
    headers: list[HeaderCell] = Field(default_factory=list)
    rows: list[list[str]] = Field(default_factory=list)
    total_row: list[str] | None = None


class ApplyResult(BaseModel):
    """Result of ``ocalc apply``."""

    applied: bool = False
    dry_run: bool = False
    backup_path: str | None = None
    operations_applied: int = 0
    operations_changed: int = 0
    fingerprint_before: str = ""
    fingerprint_after: str | None = None
