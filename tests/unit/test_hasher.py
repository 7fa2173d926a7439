"""Tests for fingerprints, short fingerprints and upload keys."""

from __future__ import annotations

import hashlib

from cfn_package.core.hasher import (
    canonical_json_bytes,
    is_remote_location,
    md5_hex,
    s3_location,
    sha256_hex,
    short_fingerprint,
    upload_key,
)


class TestFingerprints:
    def test_md5_matches_hashlib(self):
        assert md5_hex(b"hello") == hashlib.md5(b"hello").hexdigest()

    def test_deterministic(self):
        assert md5_hex(b"same bytes") == md5_hex(b"same bytes")
        assert sha256_hex(b"same bytes") == sha256_hex(b"same bytes")

    def test_one_byte_difference(self):
        assert md5_hex(b"payload-1") != md5_hex(b"payload-2")

    def test_canonical_json_is_order_independent(self):
        assert canonical_json_bytes({"b": 1, "a": [1, 2]}) == canonical_json_bytes({"a": [1, 2], "b": 1})
        assert canonical_json_bytes({"a": 1}) == b'{"a":1}'


class TestShortFingerprint:
    def test_uses_first_sixteen_chars(self):
        fingerprint = md5_hex(b"x")
        assert short_fingerprint(fingerprint) == fingerprint[:16]

    def test_thumbprint_takes_precedence(self):
        assert short_fingerprint("a" * 32, "b" * 64) == "b" * 16


class TestUploadKey:
    def test_without_prefix(self):
        assert upload_key("MyFunction", "0123456789abcdef") == "MyFunction-0123456789abcdef"

    def test_with_prefix(self):
        assert upload_key("MyFunction", "0123456789abcdef", "builds/dev") == (
            "builds/dev/MyFunction-0123456789abcdef"
        )

    def test_s3_location(self):
        assert s3_location("bucket", "k/ey") == "s3://bucket/k/ey"

    def test_remote_location_prefix(self):
        assert is_remote_location("s3://bucket/key")
        assert is_remote_location("s3:whatever")
        assert not is_remote_location("./src")
        assert not is_remote_location("https://bucket.s3.amazonaws.com/key")
