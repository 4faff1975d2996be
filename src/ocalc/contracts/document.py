"""Document models: metadata header, totals configuration, rows.

The YAML header is user-editable text, so every validator here is lenient:
values of the wrong shape are dropped rather than rejected, which keeps a
hand-edited header from making the whole document unreadable.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

DEFAULT_COLUMN = "Column1"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class Totals(BaseModel):
    """``totals`` section of the header."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    show_total_row: bool | None = Field(default=None, alias="showTotalRow")
    target_columns: list[str] | None = Field(default=None, alias="targetColumns")
    results: dict[str, int | float] | None = None

    @field_validator("show_total_row", mode="before")
    @classmethod
    def _bool_or_unset(cls, v: Any) -> Any:
        return v if isinstance(v, bool) else None

    @field_validator("target_columns", mode="before")
    @classmethod
    def _names(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return None
        return [str(name) for name in v if name is not None]

    @field_validator("results", mode="before")
    @classmethod
    def _numbers(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return None
        return {str(k): n for k, n in v.items() if _is_number(n)}

    @property
    def shown(self) -> bool:
        """An absent ``showTotalRow`` means the row is shown."""
        return self.show_total_row is not False

    def effective_targets(self, columns: list[str]) -> list[str]:
        if self.target_columns is None:
            return list(columns)
        return self.target_columns

    def to_mapping(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.show_total_row is not None:
            data["showTotalRow"] = self.show_total_row
        if self.target_columns is not None:
            data["targetColumns"] = list(self.target_columns)
        if self.results is not None:
            data["results"] = dict(self.results)
        data.update(self.model_extra or {})
        return data


class Metadata(BaseModel):
    """Structured header preceding the CSV block.

    Unknown top-level keys are kept as extras so they survive a save.
    """

    model_config = ConfigDict(extra="allow")

    formulas: dict[str, str] | None = None
    totals: Totals | None = None

    @field_validator("formulas", mode="before")
    @classmethod
    def _string_formulas(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return None
        return {str(k): f for k, f in v.items() if isinstance(f, str)}

    @field_validator("totals", mode="before")
    @classmethod
    def _totals_mapping(cls, v: Any) -> Any:
        if isinstance(v, Totals):
            return v
        if not isinstance(v, dict):
            return None
        return {str(k): val for k, val in v.items()}

    @classmethod
    def from_mapping(cls, data: Any) -> "Metadata":
        """Build metadata from a parsed YAML value; anything but a mapping is empty."""
        if not isinstance(data, dict):
            return cls()
        try:
            return cls.model_validate({str(k): v for k, v in data.items()})
        except ValidationError:
            return cls()

    def to_mapping(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.formulas is not None:
            data["formulas"] = dict(self.formulas)
        if self.totals is not None:
            data["totals"] = self.totals.to_mapping()
        data.update(self.model_extra or {})
        return data

    def formula_for(self, column: str) -> str | None:
        if not self.formulas:
            return None
        return self.formulas.get(column) or None


class Document(BaseModel):
    """Parsed document: metadata, ordered column names, and rows keyed by name."""

    metadata: Metadata = Field(default_factory=Metadata)
    columns: list[str] = Field(default_factory=lambda: [DEFAULT_COLUMN])
    rows: list[dict[str, str]] = Field(default_factory=list)

    @field_validator("rows", mode="before")
    @classmethod
    def _string_cells(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return v
        return [
            {str(k): "" if cell is None else str(cell) for k, cell in row.items()}
            if isinstance(row, dict) else row
            for row in v
        ]

    @model_validator(mode="after")
    def _rows_match_columns(self) -> "Document":
        if len(set(self.columns)) != len(self.columns):
            raise ValueError(f"Duplicate column names: {self.columns}")
        self.rows = [{col: row.get(col, "") for col in self.columns} for row in self.rows]
        return self

    def empty_row(self) -> dict[str, str]:
        return {col: "" for col in self.columns}
