"""Command dispatch and response envelope helpers."""

from __future__ import annotations

import sys
from typing import Any, TextIO

import orjson

from ocalc.contracts.common import (
    ChangeRecord,
    ErrorDetail,
    Metrics,
    RecalcInfo,
    ResponseEnvelope,
    Target,
)

EXIT_CODES = {
    "success": 0,
    "validation": 10,
    "protection": 20,
    "conflict": 40,
    "io": 50,
    "internal": 90,
}

# Checked in order against the first error code; the first class with a
# matching marker wins and anything unmatched is internal.
EXIT_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("protection", ("PROTECTED", "POLICY")),
    ("conflict", ("FINGERPRINT", "CONFLICT")),
    ("validation", ("VALIDATION", "INVALID_ARGUMENT", "PLAN_INVALID", "MISSING_")),
    ("io", ("ERR_IO", "LOCK", "NOT_FOUND", "FILE_EXISTS", "UNREADABLE")),
)


def _envelope(
    command: str,
    ok: bool,
    target: Target | None,
    duration_ms: int,
    **fields: Any,
) -> ResponseEnvelope:
    return ResponseEnvelope(
        ok=ok,
        command=command,
        target=target or Target(),
        metrics=Metrics(duration_ms=duration_ms),
        **fields,
    )


def success_envelope(
    command: str,
    result: Any,
    *,
    target: Target | None = None,
    changes: list | None = None,
    warnings: list | None = None,
    duration_ms: int = 0,
    recalc: RecalcInfo | None = None,
) -> ResponseEnvelope:
    return _envelope(
        command, True, target, duration_ms,
        result=result,
        changes=changes or [],
        warnings=warnings or [],
        recalc=recalc or RecalcInfo(),
    )


def error_envelope(
    command: str,
    code: str,
    message: str,
    *,
    target: Target | None = None,
    details: dict | None = None,
    duration_ms: int = 0,
) -> ResponseEnvelope:
    error = ErrorDetail(code=code, message=message, details=details)
    return _envelope(command, False, target, duration_ms, errors=[error])


def summarize_changes(changes: list[ChangeRecord]) -> dict:
    """Counts of operations per kind, and how many actually changed the document."""
    by_type: dict[str, int] = {}
    changed = 0
    for change in changes:
        by_type[change.type] = by_type.get(change.type, 0) + 1
        if change.changed:
            changed += 1
    return {
        "total_operations": len(changes),
        "changed_operations": changed,
        "by_type": by_type,
    }


def output_json(envelope: ResponseEnvelope) -> str:
    """Serialize envelope to JSON string using orjson."""
    data = envelope.model_dump(mode="json")
    return orjson.dumps(data, option=orjson.OPT_INDENT_2).decode()


def print_response(envelope: ResponseEnvelope, stream: TextIO | None = None) -> None:
    """Write the envelope as JSON to *stream* (stdout by default)."""
    (stream or sys.stdout).write(output_json(envelope) + "\n")


def exit_code_for(envelope: ResponseEnvelope) -> int:
    if envelope.ok:
        return EXIT_CODES["success"]
    if not envelope.errors:
        return EXIT_CODES["internal"]
    code = envelope.errors[0].code.upper()
    for exit_class, markers in EXIT_RULES:
        if any(marker in code for marker in markers):
            return EXIT_CODES[exit_class]
    return EXIT_CODES["internal"]
