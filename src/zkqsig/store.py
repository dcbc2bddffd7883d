"""Content-addressed artifact storage.

Ciphertexts are stored under their artifact hash (sha256), so components pass
digests to each other rather than sharing a staging directory. Reads re-hash
the stored bytes and refuse content that no longer matches its address.
"""

from __future__ import annotations

import hashlib
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from zkqsig.errors import IntegrityMismatchError
from zkqsig.models.validators import normalize_hex_digest
from zkqsig.observability import get_logger
from zkqsig.utils.files import atomic_write_bytes

logger = get_logger(__name__)


@runtime_checkable
class ArtifactStore(Protocol):
    """Protocol for content-addressed storage implementations."""

    def put(self, data: bytes) -> str:
        """Store ``data`` and return its hex sha256 digest."""
        ...

    def get(self, digest: str) -> bytes:
        """Return the bytes stored under ``digest``.

        Raises:
            KeyError: nothing is stored under ``digest``
            IntegrityMismatchError: stored bytes no longer hash to ``digest``
        """
        ...

    def contains(self, digest: str) -> bool:
        ...


def _check(digest: str, data: bytes) -> bytes:
    actual = hashlib.sha256(data).hexdigest()
    if actual != digest:
        raise IntegrityMismatchError(
            expected=digest,
            actual=actual,
            message="Stored artifact does not match its content address",
        )
    return data


class InMemoryArtifactStore:
    """In-memory ArtifactStore; thread-safe using RLock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._blobs: dict[str, bytes] = {}

    def put(self, data: bytes) -> str:
        digest = hashlib.sha256(data).hexdigest()
        with self._lock:
            self._blobs[digest] = bytes(data)
        return digest

    def get(self, digest: str) -> bytes:
        digest = normalize_hex_digest(digest)
        with self._lock:
            data = self._blobs[digest]
        return _check(digest, data)

    def contains(self, digest: str) -> bool:
        with self._lock:
            return normalize_hex_digest(digest) in self._blobs


class FileArtifactStore:
    """Directory-backed ArtifactStore: ``<root>/<hh>/<digest>``, written atomically."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, digest: str) -> Path:
        digest = normalize_hex_digest(digest)
        return self.root / digest[:2] / digest

    def put(self, data: bytes) -> str:
        digest = hashlib.sha256(data).hexdigest()
        path = self._path(digest)
        if not path.exists():
            atomic_write_bytes(path, bytes(data))
            logger.debug("zkqsig.store.put", digest=digest, size=len(data))
        return digest

    def get(self, digest: str) -> bytes:
        path = self._path(digest)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            raise KeyError(digest) from None
        return _check(normalize_hex_digest(digest), data)

    def contains(self, digest: str) -> bool:
        return self._path(digest).is_file()
