"""Atomic file writes.

Persisted outputs are written to a temporary file in the destination
directory and moved into place with ``os.replace``. A reader therefore sees
either the previous file or the complete new one, never a partial write, even
if the writer is interrupted.

Example:
    >>> atomic_write_json(Path("out/manifest.json"), manifest.to_json_dict())
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def atomic_write_bytes(path: str | Path, data: bytes, mode: int | None = None) -> Path:
    """Write ``data`` to ``path`` atomically; optional file ``mode`` (e.g. 0o600)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        if mode is not None:
            os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        # Interrupted or failed: the destination is untouched
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    return path


def atomic_write_json(path: str | Path, payload: Any) -> Path:
    """Pretty-printed JSON, atomically."""
    text = json.dumps(payload, indent=2) + "\n"
    return atomic_write_bytes(path, text.encode("utf-8"))
