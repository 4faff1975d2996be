"""Typer CLI application: top-level commands and subcommand groups."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Optional

import portalocker
import typer
import yaml

import ocalc
from ocalc.contracts.common import (
    ChangeRecord,
    DocumentReadError,
    OperationError,
    RecalcInfo,
    Target,
)
from ocalc.contracts.operations import Operation, OperationPlan
from ocalc.contracts.responses import ApplyResult, DocumentInfo
from ocalc.engine.dispatcher import (
    error_envelope,
    exit_code_for,
    print_response,
    success_envelope,
    summarize_changes,
)
from ocalc.engine.facade import DocumentSession
from ocalc.io.fileops import read_text_safe
from ocalc.observe.events import EventEmitter, Timer

# ---------------------------------------------------------------------------
# App & subcommand groups
# ---------------------------------------------------------------------------

_MAIN_HELP = """\
Edit .ocalc documents: CSV tables with a YAML header holding per-column
formulas and a total row.

**Document format:**

```
---
formulas:
  Total: '{Price} * {Qty}'
totals:
  showTotalRow: true
  targetColumns: [Qty, Total]
---
Item,Price,Qty,Total
Apple,1.5,4,6
```

**Every command** returns a JSON `ResponseEnvelope`:
`{"ok": bool, "command": "...", "result": {...}, "errors": [...], "metrics": {"duration_ms": N}}`

**Every edit** recomputes formula columns, then totals, and rewrites the file
atomically. Edits that do not apply (unknown column, duplicate name, index out
of range) leave the file untouched and report `"changed": false`.

**Exit codes:** 0=success, 10=validation, 20=protection, 40=conflict, 50=io, 90=internal
"""

_COLUMN_EPILOG = """\
**Examples:**

`ocalc column rename -f costs.ocalc -c Price -n Cost`  (also rewrites `{Price}` in formulas)

`ocalc column add -f costs.ocalc -c Qty --side left`  (inserts NewCol, NewCol1, ...)

`ocalc column formula -f costs.ocalc -c Total --formula "{Cost} * {Qty}"`

`ocalc column formula -f costs.ocalc -c Total --formula ""`  (clears the formula)

`ocalc column total -f costs.ocalc -c Qty`  (include/exclude Qty in the total row)
"""

_ROW_EPILOG = """\
**Examples:**

`ocalc row add -f costs.ocalc`  (append an empty row)

`ocalc row add -f costs.ocalc --index 0`  (insert above the first row)

`ocalc row move -f costs.ocalc --from 3 --to 0`
"""

_APPLY_EPILOG = """\
**Plan file:**

```
{"target": {"file": "costs.ocalc", "fingerprint": "sha256:..."},
 "operations": [{"kind": "add_column", "column": "Qty"},
                {"kind": "rename_column", "column": "NewCol", "new_name": "Tax"}]}
```

The fingerprint is optional; when present a mismatch fails with `ERR_FINGERPRINT_CONFLICT`.
"""


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(ocalc.__version__)
        raise typer.Exit()


app = typer.Typer(
    name="ocalc",
    help=_MAIN_HELP,
    no_args_is_help=True,
    rich_markup_mode="markdown",
)

column_app = typer.Typer(
    name="column", help="Rename, add, delete, move columns; set formulas and total membership.",
    epilog=_COLUMN_EPILOG,
    no_args_is_help=True, rich_markup_mode="markdown",
)
row_app = typer.Typer(
    name="row", help="Add, delete and move rows.",
    epilog=_ROW_EPILOG,
    no_args_is_help=True, rich_markup_mode="markdown",
)
cell_app = typer.Typer(
    name="cell", help="Edit individual cell values.",
    no_args_is_help=True, rich_markup_mode="markdown",
)
totals_app = typer.Typer(
    name="totals", help="Total row visibility.",
    no_args_is_help=True, rich_markup_mode="markdown",
)

app.add_typer(column_app)
app.add_typer(row_app)
app.add_typer(cell_app)
app.add_typer(totals_app)


@app.callback(invoke_without_command=True)
def main_callback(
    version: Annotated[
        bool, typer.Option("--version", "-V", help="Print version and exit.", is_eager=True)
    ] = False,
) -> None:
    if version:
        _version_callback(True)


# Type aliases for common options
FilePath = Annotated[str, typer.Option("--file", "-f", help="Path to the .ocalc document")]
ColumnOpt = Annotated[str, typer.Option("--column", "-c", help="Column name")]
BackupFlag = Annotated[bool, typer.Option("--backup", help="Create timestamped .bak copy before writing")]
DryRunFlag = Annotated[bool, typer.Option("--dry-run", help="Compute the result without writing to disk")]
EventsFlag = Annotated[bool, typer.Option("--events", help="Emit NDJSON lifecycle events to stderr")]
LockTimeout = Annotated[float, typer.Option("--lock-timeout", help="Seconds to wait for the document lock (0 = fail fast)")]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _emit(envelope, code=None):
    print_response(envelope)
    raise typer.Exit(code if code is not None else exit_code_for(envelope))


def _read_or_emit(file: str, cmd: str) -> str:
    """Read a document's text, or emit an error envelope."""
    path = Path(file)
    if not path.is_file():
        _emit(error_envelope(cmd, "ERR_DOCUMENT_NOT_FOUND", f"File not found: {file}", target=Target(file=file)))
    try:
        return read_text_safe(path)
    except DocumentReadError as e:
        _emit(error_envelope(cmd, "ERR_DOCUMENT_UNREADABLE", str(e), target=Target(file=file)))
    raise AssertionError("unreachable")


def _describe(op: Operation) -> str:
    if op.kind == "edit_cell":
        return f"{op.column}[{op.row}]"
    if op.column is not None:
        return op.column
    if op.from_index is not None:
        return f"{op.from_index}->{op.to_index}"
    if op.index is not None:
        return f"row {op.index}"
    return op.kind


def _recalc_info(session: DocumentSession, performed: bool) -> RecalcInfo:
    meta = session.document.metadata
    return RecalcInfo(
        performed=performed,
        formula_columns=[c for c in (meta.formulas or {}) if c in session.document.columns],
        totals=meta.totals is not None and meta.totals.shown,
    )


def _mutate(
    cmd: str,
    file: str,
    operations: list[Operation],
    *,
    backup: bool,
    dry_run: bool,
    events: bool,
    lock_timeout: float,
    expected_fingerprint: str | None = None,
) -> tuple[DocumentSession, list[ChangeRecord], str | None, str, Timer]:
    """Lock, read, apply *operations*, and write back when anything changed.

    Emits an error envelope (and exits) on any failure.
    """
    from ocalc.io.fileops import DocumentLock, fingerprint, write_text_atomic
    from ocalc.io.fileops import backup as make_backup
    from ocalc.validation.policy import Policy, check_operation_policy

    target = Target(file=file, column=operations[0].column if len(operations) == 1 else None)
    path = Path(file)
    with Timer() as t:
        if not path.is_file():
            _emit(error_envelope(cmd, "ERR_DOCUMENT_NOT_FOUND", f"File not found: {file}", target=target))
        try:
            policy = Policy.load_from_dir(path.resolve().parent)
        except (yaml.YAMLError, ValueError, DocumentReadError) as e:
            _emit(error_envelope(cmd, "ERR_POLICY_INVALID", f"Cannot load policy: {e}", target=target))

        try:
            with DocumentLock(path, timeout=lock_timeout):
                fp_before = fingerprint(path)
                if expected_fingerprint and expected_fingerprint != fp_before:
                    _emit(error_envelope(
                        cmd, "ERR_FINGERPRINT_CONFLICT",
                        "Document changed since the plan was made",
                        target=target,
                        details={"expected": expected_fingerprint, "actual": fp_before},
                    ))
                session = DocumentSession(read_text_safe(path), events=EventEmitter(enabled=events))

                changes: list[ChangeRecord] = []
                for op in operations:
                    if policy is not None:
                        violations = check_operation_policy(policy, session.document, op)
                        if violations:
                            _emit(error_envelope(
                                cmd, "ERR_POLICY_VIOLATION", violations[0]["message"],
                                target=target, details={"violations": violations},
                            ))
                    result = session.apply_operation(op)
                    changes.append(ChangeRecord(
                        op_id=op.op_id,
                        type=op.kind,
                        target=_describe(op),
                        changed=result.changed,
                    ))

                backup_path = None
                if any(c.changed for c in changes) and not dry_run:
                    if backup:
                        backup_path = make_backup(path)
                    write_text_atomic(path, session.raw)
        except portalocker.LockException:
            _emit(error_envelope(cmd, "ERR_LOCK_HELD", f"Document is locked by another process: {file}", target=target))
        except DocumentReadError as e:
            _emit(error_envelope(cmd, "ERR_DOCUMENT_UNREADABLE", str(e), target=target))
        except OperationError as e:
            _emit(error_envelope(cmd, "ERR_INVALID_ARGUMENT", str(e), target=target))

    return session, changes, backup_path, fp_before, t


def _run_single(
    cmd: str,
    file: str,
    kind: str,
    params: dict,
    *,
    backup: bool,
    dry_run: bool,
    events: bool,
    lock_timeout: float,
) -> None:
    try:
        op = Operation.model_validate({**params, "kind": kind})
    except ValueError as e:
        _emit(error_envelope(cmd, "ERR_INVALID_ARGUMENT", str(e), target=Target(file=file)))

    session, changes, backup_path, _, t = _mutate(
        cmd, file, [op],
        backup=backup, dry_run=dry_run, events=events, lock_timeout=lock_timeout,
    )
    changed = changes[0].changed
    result = session.result(changed=changed).model_dump()
    result.update({"dry_run": dry_run, "backup_path": backup_path})
    env = success_envelope(
        cmd,
        result,
        target=Target(file=file, column=op.column, row=op.row),
        changes=changes,
        duration_ms=t.elapsed_ms,
        recalc=_recalc_info(session, changed),
    )
    _emit(env)


# ---------------------------------------------------------------------------
# ocalc version / new / inspect / show / source / lock-status
# ---------------------------------------------------------------------------
@app.command()
def version():
    """Print the ocalc version.

    Example: `ocalc version`
    """
    env = success_envelope("version", {"version": ocalc.__version__})
    _emit(env)


@app.command("new")
def new_cmd(
    directory: Annotated[str, typer.Option("--dir", "-d", help="Directory to create the document in")] = ".",
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="File name (default: first free Untitled.ocalc)")] = None,
):
    """Create a new document from the starter template.

    Example: `ocalc new --dir notes`  (creates Untitled.ocalc, Untitled 1.ocalc, ...)
    """
    from ocalc.io.fileops import create_document

    with Timer() as t:
        try:
            path = create_document(directory, name)
        except FileExistsError as e:
            _emit(error_envelope("new", "ERR_FILE_EXISTS", str(e), target=Target(file=name)))
        except OSError as e:
            _emit(error_envelope("new", "ERR_IO_WRITE", str(e), target=Target(file=name)))
    env = success_envelope("new", {"path": str(path)}, target=Target(file=str(path)), duration_ms=t.elapsed_ms)
    _emit(env)


@app.command("inspect")
def inspect_cmd(file: FilePath):
    """Summarize a document: columns, row count, formulas, totals, fingerprint.

    Example: `ocalc inspect -f costs.ocalc`
    """
    from ocalc.engine.codec import split_header
    from ocalc.io.fileops import fingerprint

    with Timer() as t:
        raw = _read_or_emit(file, "inspect")
        session = DocumentSession(raw)
        doc = session.document
        header, _ = split_header(raw)
        totals = doc.metadata.totals
        info = DocumentInfo(
            path=str(Path(file).resolve()),
            fingerprint=fingerprint(file),
            columns=doc.columns,
            row_count=len(doc.rows),
            formula_columns=[c for c in (doc.metadata.formulas or {}) if c in doc.columns],
            total_row_shown=totals is None or totals.shown,
            total_columns=doc.columns if totals is None else [
                c for c in totals.effective_targets(doc.columns) if c in doc.columns
            ],
            has_metadata=isinstance(header, dict),
        )
    env = success_envelope("inspect", info.model_dump(), target=Target(file=file), duration_ms=t.elapsed_ms)
    _emit(env)


@app.command("show")
def show_cmd(
    file: FilePath,
    embed: Annotated[bool, typer.Option("--embed", help="Label the first total cell 'Total' as in embedded previews")] = False,
):
    """Render the document as a table view (headers, rows, total row).

    Example: `ocalc show -f costs.ocalc`
    """
    from ocalc.render.view import build_table_view

    with Timer() as t:
        raw = _read_or_emit(file, "show")
        session = DocumentSession(raw)
        view = build_table_view(session.document, title=Path(file).stem, embed=embed)
    env = success_envelope("show", view.model_dump(), target=Target(file=file), duration_ms=t.elapsed_ms)
    _emit(env)


@app.command("source")
def source_cmd(file: FilePath):
    """Print the raw document text inside the envelope.

    Example: `ocalc source -f costs.ocalc`
    """
    with Timer() as t:
        raw = _read_or_emit(file, "source")
    env = success_envelope("source", {"raw": raw}, target=Target(file=file), duration_ms=t.elapsed_ms)
    _emit(env)


@app.command("lock-status")
def lock_status_cmd(file: FilePath):
    """Check whether another process holds the document lock.

    Example: `ocalc lock-status -f costs.ocalc`
    """
    from ocalc.io.fileops import check_lock

    env = success_envelope("lock_status", check_lock(file), target=Target(file=file))
    _emit(env)


# ---------------------------------------------------------------------------
# ocalc column ...
# ---------------------------------------------------------------------------
@column_app.command("rename")
def column_rename_cmd(
    file: FilePath,
    column: ColumnOpt,
    new_name: Annotated[str, typer.Option("--new-name", "-n", help="New column name")],
    backup: BackupFlag = False,
    dry_run: DryRunFlag = False,
    events: EventsFlag = False,
    lock_timeout: LockTimeout = 0,
):
    """Rename a column. Mutating.

    Moves the column's formula, rewrites `{old}` references in every formula,
    and updates the total row's target columns. A blank, unchanged or
    already-used name is a no-op.

    Example: `ocalc column rename -f costs.ocalc -c Price -n Cost`
    """
    _run_single(
        "column.rename", file, "rename_column", {"column": column, "new_name": new_name},
        backup=backup, dry_run=dry_run, events=events, lock_timeout=lock_timeout,
    )


@column_app.command("add")
def column_add_cmd(
    file: FilePath,
    column: Annotated[str, typer.Option("--column", "-c", help="Anchor column the new one is placed next to")],
    side: Annotated[str, typer.Option("--side", help="'left' or 'right' of the anchor")] = "right",
    backup: BackupFlag = False,
    dry_run: DryRunFlag = False,
    events: EventsFlag = False,
    lock_timeout: LockTimeout = 0,
):
    """Insert an empty column named NewCol (NewCol1, NewCol2, ... if taken). Mutating.

    Example: `ocalc column add -f costs.ocalc -c Qty --side left`
    """
    _run_single(
        "column.add", file, "add_column", {"column": column, "side": side},
        backup=backup, dry_run=dry_run, events=events, lock_timeout=lock_timeout,
    )


@column_app.command("delete")
def column_delete_cmd(
    file: FilePath,
    column: ColumnOpt,
    backup: BackupFlag = False,
    dry_run: DryRunFlag = False,
    events: EventsFlag = False,
    lock_timeout: LockTimeout = 0,
):
    """Delete a column with its formula and total-row membership. Mutating.

    Formulas in other columns that reference it keep the reference, which
    then evaluates as 0.

    Example: `ocalc column delete -f costs.ocalc -c Notes`
    """
    _run_single(
        "column.delete", file, "delete_column", {"column": column},
        backup=backup, dry_run=dry_run, events=events, lock_timeout=lock_timeout,
    )


@column_app.command("move")
def column_move_cmd(
    file: FilePath,
    from_index: Annotated[int, typer.Option("--from", help="Current 0-based column position")],
    to_index: Annotated[int, typer.Option("--to", help="New 0-based column position")],
    backup: BackupFlag = False,
    dry_run: DryRunFlag = False,
    events: EventsFlag = False,
    lock_timeout: LockTimeout = 0,
):
    """Move a column to another position. Mutating.

    Example: `ocalc column move -f costs.ocalc --from 3 --to 0`
    """
    _run_single(
        "column.move", file, "move_column", {"from_index": from_index, "to_index": to_index},
        backup=backup, dry_run=dry_run, events=events, lock_timeout=lock_timeout,
    )


@column_app.command("formula")
def column_formula_cmd(
    file: FilePath,
    column: ColumnOpt,
    formula: Annotated[str, typer.Option("--formula", help="Formula such as '{Price} * {Qty}'; empty clears it")],
    backup: BackupFlag = False,
    dry_run: DryRunFlag = False,
    events: EventsFlag = False,
    lock_timeout: LockTimeout = 0,
):
    """Set or clear a column formula. Mutating.

    Placeholders `{Column}` take the numeric value of that column in the same
    row (0 when empty or not a number). Supports `+ - * / % ^`, parentheses
    and functions such as `round`, `min`, `max`, `sqrt`, `abs`.

    Example: `ocalc column formula -f costs.ocalc -c Total --formula "round({Price} * {Qty}, 2)"`
    """
    _run_single(
        "column.formula", file, "set_formula", {"column": column, "formula": formula},
        backup=backup, dry_run=dry_run, events=events, lock_timeout=lock_timeout,
    )


@column_app.command("total")
def column_total_cmd(
    file: FilePath,
    column: ColumnOpt,
    backup: BackupFlag = False,
    dry_run: DryRunFlag = False,
    events: EventsFlag = False,
    lock_timeout: LockTimeout = 0,
):
    """Toggle whether a column is summed in the total row. Mutating.

    Example: `ocalc column total -f costs.ocalc -c Qty`
    """
    _run_single(
        "column.total", file, "toggle_total_column", {"column": column},
        backup=backup, dry_run=dry_run, events=events, lock_timeout=lock_timeout,
    )


# ---------------------------------------------------------------------------
# ocalc row ...
# ---------------------------------------------------------------------------
@row_app.command("add")
def row_add_cmd(
    file: FilePath,
    index: Annotated[Optional[int], typer.Option("--index", "-i", help="Insert before this 0-based row (default: append)")] = None,
    backup: BackupFlag = False,
    dry_run: DryRunFlag = False,
    events: EventsFlag = False,
    lock_timeout: LockTimeout = 0,
):
    """Insert an empty row. Mutating.

    Example: `ocalc row add -f costs.ocalc --index 0`
    """
    _run_single(
        "row.add", file, "add_row", {"index": index},
        backup=backup, dry_run=dry_run, events=events, lock_timeout=lock_timeout,
    )


@row_app.command("delete")
def row_delete_cmd(
    file: FilePath,
    index: Annotated[int, typer.Option("--index", "-i", help="0-based row to delete")],
    backup: BackupFlag = False,
    dry_run: DryRunFlag = False,
    events: EventsFlag = False,
    lock_timeout: LockTimeout = 0,
):
    """Delete a row. Mutating.

    Example: `ocalc row delete -f costs.ocalc --index 2`
    """
    _run_single(
        "row.delete", file, "delete_row", {"index": index},
        backup=backup, dry_run=dry_run, events=events, lock_timeout=lock_timeout,
    )


@row_app.command("move")
def row_move_cmd(
    file: FilePath,
    from_index: Annotated[int, typer.Option("--from", help="Current 0-based row position")],
    to_index: Annotated[int, typer.Option("--to", help="New 0-based row position")],
    backup: BackupFlag = False,
    dry_run: DryRunFlag = False,
    events: EventsFlag = False,
    lock_timeout: LockTimeout = 0,
):
    """Move a row to another position. Mutating.

    Example: `ocalc row move -f costs.ocalc --from 3 --to 0`
    """
    _run_single(
        "row.move", file, "move_row", {"from_index": from_index, "to_index": to_index},
        backup=backup, dry_run=dry_run, events=events, lock_timeout=lock_timeout,
    )


# ---------------------------------------------------------------------------
# ocalc cell set / ocalc totals toggle-row
# ---------------------------------------------------------------------------
@cell_app.command("set")
def cell_set_cmd(
    file: FilePath,
    row: Annotated[int, typer.Option("--row", "-r", help="0-based row index")],
    column: ColumnOpt,
    value: Annotated[str, typer.Option("--value", help="New cell text")],
    backup: BackupFlag = False,
    dry_run: DryRunFlag = False,
    events: EventsFlag = False,
    lock_timeout: LockTimeout = 0,
):
    """Set a cell's text. Mutating; an unchanged value is a no-op.

    Cells of formula columns are computed and cannot be set.

    Example: `ocalc cell set -f costs.ocalc -r 0 -c Qty --value 4`
    """
    _run_single(
        "cell.set", file, "edit_cell", {"row": row, "column": column, "value": value},
        backup=backup, dry_run=dry_run, events=events, lock_timeout=lock_timeout,
    )


@totals_app.command("toggle-row")
def totals_toggle_row_cmd(
    file: FilePath,
    backup: BackupFlag = False,
    dry_run: DryRunFlag = False,
    events: EventsFlag = False,
    lock_timeout: LockTimeout = 0,
):
    """Show or hide the total row. Mutating.

    Example: `ocalc totals toggle-row -f costs.ocalc`
    """
    _run_single(
        "totals.toggle_row", file, "toggle_total_row", {},
        backup=backup, dry_run=dry_run, events=events, lock_timeout=lock_timeout,
    )


# ---------------------------------------------------------------------------
# ocalc apply
# ---------------------------------------------------------------------------
def _load_plan(plan_path: str) -> OperationPlan:
    """Load and validate an operation plan JSON file."""
    try:
        data = json.loads(read_text_safe(plan_path))
    except (OSError, json.JSONDecodeError, DocumentReadError) as e:
        raise ValueError(f"Cannot parse plan: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Plan file must contain a JSON object.")

    missing = [k for k in ("target", "operations") if k not in data]
    if missing:
        raise ValueError(f"Plan file missing required keys: {', '.join(missing)}")

    try:
        return OperationPlan(**data)
    except Exception as e:
        raise ValueError(f"Cannot parse plan: {e}") from e


@app.command("apply", epilog=_APPLY_EPILOG)
def apply_cmd(
    file: FilePath,
    plan: Annotated[str, typer.Option("--plan", "-p", help="Path to operation plan JSON")],
    backup: BackupFlag = False,
    dry_run: DryRunFlag = False,
    events: EventsFlag = False,
    lock_timeout: LockTimeout = 0,
):
    """Apply a JSON plan of operations in order and write the document once. Mutating.

    Example: `ocalc apply -f costs.ocalc --plan plan.json --dry-run`
    """
    from ocalc.io.fileops import fingerprint

    try:
        plan_obj = _load_plan(plan)
    except ValueError as e:
        _emit(error_envelope("apply", "ERR_PLAN_INVALID", str(e), target=Target(file=file)))
    if not plan_obj.operations:
        _emit(error_envelope("apply", "ERR_PLAN_INVALID", "Plan has no operations", target=Target(file=file)))

    session, changes, backup_path, fp_before, t = _mutate(
        "apply", file, plan_obj.operations,
        backup=backup, dry_run=dry_run, events=events, lock_timeout=lock_timeout,
        expected_fingerprint=plan_obj.target.fingerprint,
    )
    changed = sum(1 for c in changes if c.changed)
    result = ApplyResult(
        applied=bool(changed) and not dry_run,
        dry_run=dry_run,
        backup_path=backup_path,
        operations_applied=len(changes),
        operations_changed=changed,
        fingerprint_before=fp_before,
        fingerprint_after=fingerprint(file),
    )
    payload = result.model_dump()
    payload["summary"] = summarize_changes(changes)
    payload["document"] = session.state().model_dump()
    env = success_envelope(
        "apply",
        payload,
        target=Target(file=file),
        changes=changes,
        duration_ms=t.elapsed_ms,
        recalc=_recalc_info(session, bool(changed)),
    )
    _emit(env)


# ---------------------------------------------------------------------------
# ocalc serve --stdio
# ---------------------------------------------------------------------------
@app.command("serve")
def serve_cmd(
    stdio: Annotated[bool, typer.Option("--stdio", help="Use stdin/stdout for JSON request/response")] = True,
    events: EventsFlag = False,
):
    """Start the stdio server for editor integration.

    Each line is a JSON object: `{"id": "1", "command": "apply", "args": {"file": "costs.ocalc", "kind": "add_row"}}`

    Example: `ocalc serve --stdio`
    """
    from ocalc.server.stdio import StdioServer
    server = StdioServer(events=EventEmitter(enabled=events))
    server.run()


# ---------------------------------------------------------------------------
# Entrypoint (for `python -m ocalc`)
# ---------------------------------------------------------------------------
def main() -> None:
    try:
        app()
    except SystemExit:
        raise
    except Exception as exc:
        # Machine consumers always get an envelope, never a traceback
        env = error_envelope(
            "unknown",
            "ERR_INTERNAL",
            str(exc),
        )
        print_response(env)
        raise SystemExit(90) from exc


if __name__ == "__main__":
    main()
