"""Checksum helpers for stored artifacts and build-info records."""

from __future__ import annotations

import hashlib
import json
from typing import Any

_CHUNK = 1024 * 1024


def sha1_hex(data: bytes) -> str:
    """Return the SHA-1 hex digest of raw bytes (the build-info identity)."""
    return hashlib.sha1(data).hexdigest()


def md5_hex(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


def file_checksums(path) -> tuple[str, str]:
    """Stream a file and return its (sha1, md5) hex digests."""
    sha1 = hashlib.sha1()
    md5 = hashlib.md5()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK), b""):
            sha1.update(chunk)
            md5.update(chunk)
    return sha1.hexdigest(), md5.hexdigest()


def canonical_json_bytes(obj: Any) -> bytes:
    """Deterministic JSON bytes with sorted keys and compact separators."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")
