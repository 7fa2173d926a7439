"""Hashing helpers for fingerprints, thumbprints, and upload keys.

The fingerprint is the MD5 hex digest of the payload: for a single-part
upload S3 reports the same value as the object's ETag, which is what makes
the ``If-None-Match`` existence check work.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

SHORT_FINGERPRINT_LENGTH = 16
S3_SCHEME = "s3:"


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def md5_hex(data: bytes) -> str:
    """Return the MD5 hex digest of raw bytes."""
    return hashlib.md5(data, usedforsecurity=False).hexdigest()


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def short_fingerprint(
    fingerprint: str,
    thumbprint: str | None = None,
    length: int = SHORT_FINGERPRINT_LENGTH,
) -> str:
    """Return the key suffix for an artifact.

    A packer-supplied thumbprint takes precedence over the content
    fingerprint.
    """
    return (thumbprint or fingerprint)[:length]


def upload_key(logical_id: str, short: str, prefix: str | None = None) -> str:
    """Build the storage key ``{prefix/}{logical_id}-{short}``."""
    name = f"{logical_id}-{short}"
    if prefix is None:
        return name
    return f"{prefix}/{name}"


def s3_location(bucket: str, key: str) -> str:
    """Return the ``s3://bucket/key`` string written into the template."""
    return f"s3://{bucket}/{key}"


def is_remote_location(value: str) -> bool:
    """Whether an artifact reference already points at object storage."""
    return value.startswith(S3_SCHEME)
