"""SHA-256 helpers for local files and in-memory buffers."""

from __future__ import annotations

import hashlib
import re
from pathlib import Path

_CHUNK_SIZE = 64 * 1024
_SHA256_RE = re.compile(r"[0-9a-fA-F]{64}")


def sha256_file(path: str | Path) -> str:
    """Return the lowercase hex SHA-256 of a file, read in chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def is_sha256(value: str) -> bool:
    """Whether ``value`` looks like a hex-encoded SHA-256 digest."""
    return _SHA256_RE.fullmatch(value) is not None
