"""File operations: fingerprinting, backup, atomic write, locking, new documents."""

from __future__ import annotations

import hashlib
import os
import shutil
import tempfile
import time
from datetime import datetime, timezone
from io import TextIOWrapper
from pathlib import Path

import portalocker

from ocalc.contracts.common import DocumentReadError

EXTENSION = ".ocalc"

NEW_DOCUMENT_TEMPLATE = """\
---
formulas: {}
totals:
  showTotalRow: true
  targetColumns: []
---
Column1
"""


def fingerprint(path: str | Path) -> str:
    """Compute SHA-256 fingerprint of a file."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return f"sha256:{h.hexdigest()}"


def backup(path: str | Path) -> str:
    """Create a timestamped backup of a file. Returns backup path."""
    path = Path(path)
    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    backup_name = f"{path.stem}.{ts}.bak{path.suffix}"
    backup_path = path.parent / backup_name
    shutil.copy2(path, backup_path)
    return str(backup_path)


def atomic_write(target: str | Path, data: bytes) -> None:
    """Write data to target atomically via temp file + rename."""
    target = Path(target)
    fd, tmp_path = tempfile.mkstemp(
        dir=target.parent, suffix=target.suffix, prefix=".ocalc_tmp_"
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        shutil.move(tmp_path, target)
    except Exception:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def write_text_atomic(target: str | Path, text: str) -> None:
    atomic_write(target, text.encode("utf-8"))


class DocumentLock:
    """Exclusive sidecar lock for document mutation.

    Uses a ``<file>.lock`` sidecar next to the document to prevent concurrent
    read-modify-write cycles from interleaving. On process crash the OS
    releases the file lock; the stale sidecar is simply re-acquired.
    """

    def __init__(self, document_path: str | Path, *, timeout: float = 0) -> None:
        self.document_path = Path(document_path).resolve()
        self.timeout = timeout
        self._lock_path = self.document_path.parent / (self.document_path.name + ".lock")
        self._lock_file: TextIOWrapper | None = None

    @property
    def lock_path(self) -> Path:
        return self._lock_path

    def __enter__(self) -> "DocumentLock":
        self._lock_file = open(self._lock_path, "a+")  # noqa: SIM115
        try:
            if self.timeout <= 0:
                portalocker.lock(self._lock_file, portalocker.LOCK_EX | portalocker.LOCK_NB)
            else:
                deadline = time.monotonic() + self.timeout
                interval = min(0.1, max(0.01, self.timeout / 20))
                while True:
                    try:
                        portalocker.lock(self._lock_file, portalocker.LOCK_EX | portalocker.LOCK_NB)
                        break
                    except portalocker.LockException:
                        if time.monotonic() >= deadline:
                            raise
                        time.sleep(interval)
        except portalocker.LockException:
            if self._lock_file is not None:
                self._lock_file.close()
                self._lock_file = None
            raise

        # PID + timestamp for lock diagnostics
        self._lock_file.seek(0)
        self._lock_file.truncate()
        self._lock_file.write(f"pid={os.getpid()}\n")
        self._lock_file.write(f"time={datetime.now(timezone.utc).isoformat()}\n")
        self._lock_file.flush()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        if self._lock_file is not None:
            try:
                portalocker.unlock(self._lock_file)
            finally:
                self._lock_file.close()
                self._lock_file = None


def check_lock(path: str | Path) -> dict:
    """Best-effort check whether another process holds the document lock."""
    path = Path(path).resolve()
    lock_path = path.parent / (path.name + ".lock")
    exists = path.exists()

    if not lock_path.exists():
        return {"exists": exists, "locked": False, "lock_file": str(lock_path)}

    try:
        fd = open(lock_path, "a+")  # noqa: SIM115
        try:
            portalocker.lock(fd, portalocker.LOCK_EX | portalocker.LOCK_NB)
            portalocker.unlock(fd)
        finally:
            fd.close()
        return {"exists": exists, "locked": False, "lock_file": str(lock_path)}
    except portalocker.LockException:
        holder: dict[str, str] = {}
        try:
            for line in lock_path.read_text().strip().splitlines():
                if "=" in line:
                    k, v = line.split("=", 1)
                    holder[k.strip()] = v.strip()
        except OSError:
            pass
        return {"exists": exists, "locked": True, "lock_file": str(lock_path), "holder": holder}


def read_text_safe(path: str | Path) -> str:
    """Read a document with UTF-8 BOM tolerance.

    ``newline=""`` keeps line endings as stored, so a file written by another
    tool with CRLF endings is parsed as it is on disk.
    """
    try:
        with open(path, encoding="utf-8-sig", newline="") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise DocumentReadError(f"Cannot decode {path} as UTF-8: {e}") from e


def untitled_path(directory: str | Path, stem: str = "Untitled") -> Path:
    """First free ``Untitled.ocalc``, ``Untitled 1.ocalc``, ``Untitled 2.ocalc``, ..."""
    directory = Path(directory)
    candidate = directory / f"{stem}{EXTENSION}"
    number = 1
    while candidate.exists():
        candidate = directory / f"{stem} {number}{EXTENSION}"
        number += 1
    return candidate


def create_document(directory: str | Path, name: str | None = None) -> Path:
    """Create a new document from the starter template. Raises FileExistsError."""
    if name:
        path = Path(directory) / (name if name.endswith(EXTENSION) else name + EXTENSION)
        if path.exists():
            raise FileExistsError(f"File already exists: {path}")
    else:
        path = untitled_path(directory)
    write_text_atomic(path, NEW_DOCUMENT_TEMPLATE)
    return path
