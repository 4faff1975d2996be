"""stdio server mode: JSON line-delimited protocol over stdin/stdout."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, TextIO

from ocalc.engine.facade import DocumentSession, to_operation
from ocalc.io.fileops import DocumentLock, read_text_safe, write_text_atomic
from ocalc.observe.events import EventEmitter
from ocalc.render.view import build_table_view
from ocalc.validation.policy import Policy, check_operation_policy

MEMORY_KEY = "<memory>"


class StdioServer:
    """Simple JSON-RPC-like server over stdin/stdout.

    Sessions are keyed by the ``file`` argument; a session opened from
    ``raw`` text without a file lives under ``<memory>``.
    """

    def __init__(self, *, events: EventEmitter | None = None) -> None:
        self._sessions: dict[str, DocumentSession] = {}
        self._events = events or EventEmitter()

    def _get_session(self, file: str) -> DocumentSession:
        key = file or MEMORY_KEY
        if key not in self._sessions:
            if key == MEMORY_KEY:
                raise KeyError("No document is open; send 'open' with 'raw' or 'file' first")
            self._sessions[key] = DocumentSession(read_text_safe(file), events=self._events)
        return self._sessions[key]

    def _close(self, file: str | None) -> list[str]:
        if file:
            return [file] if self._sessions.pop(file, None) is not None else []
        closed = list(self._sessions)
        self._sessions.clear()
        return closed

    def handle_request(self, request: dict[str, Any]) -> dict[str, Any]:
        req_id = request.get("id", "")
        command = request.get("command", "")
        args = request.get("args") or {}

        try:
            file = args.get("file", "")

            if command == "open":
                raw = args.get("raw")
                if raw is None:
                    if not file:
                        return {"id": req_id, "ok": False, "error": "Missing 'file' or 'raw' in args"}
                    raw = read_text_safe(file)
                session = DocumentSession(raw, events=self._events)
                self._sessions[file or MEMORY_KEY] = session
                return {"id": req_id, "ok": True, "result": session.state().model_dump()}

            elif command == "apply":
                kind = args.get("kind", "")
                if not kind:
                    return {"id": req_id, "ok": False, "error": "Missing 'kind' in args"}
                session = self._get_session(file)
                op = to_operation(kind, args.get("params") or {})
                if file:
                    policy = Policy.load_from_dir(Path(file).resolve().parent)
                    violations = check_operation_policy(policy, session.document, op) if policy else []
                    if violations:
                        return {
                            "id": req_id,
                            "ok": False,
                            "error": violations[0]["message"],
                            "violations": violations,
                        }
                result = session.apply_operation(op)
                payload = result.model_dump()
                saved = False
                if args.get("save") and file and result.changed:
                    with DocumentLock(Path(file)):
                        write_text_atomic(file, session.raw)
                    saved = True
                payload["saved"] = saved
                return {"id": req_id, "ok": True, "result": payload}

            elif command == "view":
                session = self._get_session(file)
                title = Path(file).stem if file else ""
                view = build_table_view(session.document, title=title, embed=bool(args.get("embed")))
                return {"id": req_id, "ok": True, "result": view.model_dump()}

            elif command == "source":
                session = self._get_session(file)
                return {"id": req_id, "ok": True, "result": {"raw": session.raw}}

            elif command == "close":
                return {"id": req_id, "ok": True, "result": {"closed": self._close(file)}}

            else:
                return {"id": req_id, "ok": False, "error": f"Unknown command: {command}"}

        except Exception as e:
            return {"id": req_id, "ok": False, "error": str(e)}

    def run(self, stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
        """Main server loop: read JSON lines from stdin, write responses to stdout."""
        stdin = stdin or sys.stdin
        stdout = stdout or sys.stdout
        for line in stdin:
            line = line.strip()
            if not line:
                continue
            try:
                request = json.loads(line)
            except json.JSONDecodeError as e:
                response = {"ok": False, "error": f"Invalid JSON: {e}"}
                stdout.write(json.dumps(response) + "\n")
                stdout.flush()
                continue

            if not isinstance(request, dict):
                response = {"ok": False, "error": "Request must be a JSON object"}
            else:
                response = self.handle_request(request)
            stdout.write(json.dumps(response, default=str) + "\n")
            stdout.flush()

        self._close(None)
