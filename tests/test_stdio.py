"""Tests for the JSON-lines stdio server."""

from __future__ import annotations

import io
import json
from pathlib import Path

from ocalc.engine import codec
from ocalc.server.stdio import StdioServer
from ocalc.validation.policy import POLICY_FILENAME


def _run(lines: list[str]) -> list[dict]:
    stdout = io.StringIO()
    StdioServer().run(stdin=io.StringIO("\n".join(lines) + "\n"), stdout=stdout)
    return [json.loads(line) for line in stdout.getvalue().splitlines()]


def test_open_raw_and_apply_in_memory():
    server = StdioServer()
    opened = server.handle_request({"id": "1", "command": "open", "args": {"raw": "A,B\n2,3\n"}})
    assert opened["ok"] is True
    assert opened["result"]["columns"] == ["A", "B"]

    applied = server.handle_request({
        "id": "2",
        "command": "apply",
        "args": {"kind": "set_formula", "params": {"column": "B", "formula": "{A} * 2"}},
    })
    assert applied["ok"] is True
    assert applied["result"]["changed"] is True
    assert applied["result"]["rows"] == [{"A": "2", "B": "4"}]
    assert applied["result"]["saved"] is False


def test_apply_opens_file_on_demand(sales_file: Path):
    server = StdioServer()
    response = server.handle_request({
        "id": "1",
        "command": "apply",
        "args": {"file": str(sales_file), "kind": "add_row"},
    })
    assert response["ok"] is True
    assert len(response["result"]["rows"]) == 3


def test_apply_save_writes_file(sales_file: Path):
    server = StdioServer()
    server.handle_request({
        "id": "1",
        "command": "apply",
        "args": {
            "file": str(sales_file),
            "kind": "edit_cell",
            "params": {"row": 1, "column": "Qty", "value": "5"},
            "save": True,
        },
    })
    doc = codec.parse(sales_file.read_text(encoding="utf-8"))
    assert doc.rows[1]["Total"] == "10"
    assert doc.metadata.totals.results == {"Qty": 9, "Total": 16}


def test_apply_without_save_leaves_file(sales_file: Path, sales_raw: str):
    server = StdioServer()
    server.handle_request({"id": "1", "command": "apply", "args": {"file": str(sales_file), "kind": "add_row"}})
    assert sales_file.read_text(encoding="utf-8") == sales_raw


def test_apply_respects_policy(sales_file: Path, sales_raw: str):
    (sales_file.parent / POLICY_FILENAME).write_text("protected_columns: [Price]\n", encoding="utf-8")
    server = StdioServer()
    blocked = server.handle_request({
        "id": "1",
        "command": "apply",
        "args": {"file": str(sales_file), "kind": "delete_column", "params": {"column": "Price"}, "save": True},
    })
    assert blocked["ok"] is False
    assert blocked["violations"][0]["type"] == "protected_column"
    assert sales_file.read_text(encoding="utf-8") == sales_raw
    source = server.handle_request({"id": "2", "command": "source", "args": {"file": str(sales_file)}})
    assert source["result"]["raw"] == sales_raw

    allowed = server.handle_request({
        "id": "3",
        "command": "apply",
        "args": {"file": str(sales_file), "kind": "delete_column", "params": {"column": "Item"}, "save": True},
    })
    assert allowed["ok"] is True
    assert allowed["result"]["saved"] is True


def test_view_and_source(sales_file: Path, sales_raw: str):
    server = StdioServer()
    view = server.handle_request({"id": "1", "command": "view", "args": {"file": str(sales_file), "embed": True}})
    assert view["result"]["title"] == "sales"
    assert view["result"]["total_row"][0] == "Total"
    source = server.handle_request({"id": "2", "command": "source", "args": {"file": str(sales_file)}})
    assert source["result"]["raw"] == sales_raw


def test_errors_are_responses(sales_file: Path):
    server = StdioServer()
    missing = server.handle_request({"id": "1", "command": "view", "args": {}})
    assert missing["ok"] is False
    unknown = server.handle_request({"id": "2", "command": "explode", "args": {}})
    assert unknown == {"id": "2", "ok": False, "error": "Unknown command: explode"}
    bad_kind = server.handle_request({
        "id": "3",
        "command": "apply",
        "args": {"file": str(sales_file), "kind": "explode"},
    })
    assert bad_kind["ok"] is False
    assert "Unknown operation kind" in bad_kind["error"]


def test_close(sales_file: Path):
    server = StdioServer()
    server.handle_request({"id": "1", "command": "open", "args": {"file": str(sales_file)}})
    closed = server.handle_request({"id": "2", "command": "close", "args": {"file": str(sales_file)}})
    assert closed["result"] == {"closed": [str(sales_file)]}


def test_run_loop_survives_bad_lines():
    responses = _run([
        "not json",
        "",
        "[1, 2]",
        json.dumps({"id": "a", "command": "open", "args": {"raw": ""}}),
        json.dumps({"id": "b", "command": "source", "args": {}}),
    ])
    assert len(responses) == 4
    assert responses[0]["ok"] is False
    assert responses[0]["error"].startswith("Invalid JSON")
    assert responses[1]["ok"] is False
    assert responses[2]["result"]["columns"] == ["Column1"]
    assert responses[3] == {"id": "b", "ok": True, "result": {"raw": ""}}
