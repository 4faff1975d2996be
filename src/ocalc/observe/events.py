"""Lifecycle event emission and timing."""

from __future__ import annotations

import sys
import time
from datetime import datetime, timezone
from typing import Any, TextIO

import orjson


class Timer:
    """Context manager measuring a command's duration in whole milliseconds.

    Inside the block ``elapsed_ms`` is the time so far; after the block it
    is frozen at the total.
    """

    def __init__(self) -> None:
        self._started_ns = 0
        self._stopped_ns: int | None = None

    def __enter__(self) -> "Timer":
        self._started_ns = time.perf_counter_ns()
        self._stopped_ns = None
        return self

    def __exit__(self, *exc: object) -> None:
        self._stopped_ns = time.perf_counter_ns()

    @property
    def elapsed_ms(self) -> int:
        end = self._stopped_ns if self._stopped_ns is not None else time.perf_counter_ns()
        return (end - self._started_ns) // 1_000_000


class EventEmitter:
    """Writes one NDJSON line per lifecycle event, to stderr unless another stream is given.

    Events carry a per-emitter sequence number so a consumer reading an
    interleaved stream can order them.
    """

    def __init__(self, enabled: bool = False, stream: TextIO | None = None) -> None:
        self.enabled = enabled
        self._stream = stream
        self._seq = 0

    def emit(self, event: str, data: dict[str, Any] | None = None) -> None:
        if not self.enabled:
            return
        self._seq += 1
        line = orjson.dumps(
            {
                "event": event,
                "seq": self._seq,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "data": data or {},
            },
            default=str,
            option=orjson.OPT_APPEND_NEWLINE,
        )
        stream = self._stream or sys.stderr
        stream.write(line.decode())
        stream.flush()
