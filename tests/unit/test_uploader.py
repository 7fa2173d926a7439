"""Tests for ConditionalUploader — skip-if-unchanged semantics and status handling."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from cfn_package.core.errors import TransportError, UnexpectedStatusError
from cfn_package.core.hasher import md5_hex
from cfn_package.core.uploader import ConditionalUploader
from cfn_package.models.artifacts import PackedArtifact


def _artifact(body: bytes = b"artifact-bytes", thumbprint: str | None = None) -> PackedArtifact:
    return PackedArtifact(body=body, source=Path("/tmp/artifact"), thumbprint=thumbprint)


class TestConditionalUploader:
    def test_absent_object_is_uploaded(self, storage):
        uploader = ConditionalUploader(storage, "bucket", "pre")
        outcome = asyncio.run(uploader.upload("Fn", _artifact()))

        fingerprint = md5_hex(b"artifact-bytes")
        assert outcome.uploaded is True
        assert outcome.key == f"pre/Fn-{fingerprint[:16]}"
        assert outcome.location == f"s3://bucket/pre/Fn-{fingerprint[:16]}"
        assert storage.heads == [("bucket", outcome.key, fingerprint)]
        assert storage.puts == [("bucket", outcome.key, b"artifact-bytes")]

    def test_unchanged_object_is_not_uploaded(self, storage):
        uploader = ConditionalUploader(storage, "bucket")
        first = asyncio.run(uploader.upload("Fn", _artifact()))
        second = asyncio.run(uploader.upload("Fn", _artifact()))

        assert second.uploaded is False
        assert second.key == first.key
        assert len(storage.heads) == 2
        assert len(storage.puts) == 1

    def test_changed_object_is_overwritten(self, storage):
        uploader = ConditionalUploader(storage, "bucket")
        thumbprint = "c" * 64
        asyncio.run(uploader.upload("Fn", _artifact(b"v1", thumbprint)))
        outcome = asyncio.run(uploader.upload("Fn", _artifact(b"v2", thumbprint)))

        # Same thumbprint, different bytes: key is shared, HEAD reports 200.
        assert outcome.uploaded is True
        assert storage.objects[("bucket", outcome.key)] == b"v2"
        assert len(storage.puts) == 2

    def test_thumbprint_drives_key(self, storage):
        uploader = ConditionalUploader(storage, "bucket")
        outcome = asyncio.run(uploader.upload("Fn", _artifact(thumbprint="abcdef0123456789ffff")))
        assert outcome.key == "Fn-abcdef0123456789"
        # Existence check still uses the content fingerprint.
        assert storage.heads[0][2] == md5_hex(b"artifact-bytes")

    def test_explicit_fingerprint(self, storage):
        uploader = ConditionalUploader(storage, "bucket")
        outcome = asyncio.run(uploader.upload("Fn", _artifact(), "0123456789abcdef0123456789abcdef"))
        assert outcome.key == "Fn-0123456789abcdef"
        assert outcome.fingerprint == "0123456789abcdef0123456789abcdef"

    @pytest.mark.parametrize("status", [200, 404])
    def test_upload_statuses(self, make_storage: Callable, status: int):
        storage = make_storage(head_status=status)
        outcome = asyncio.run(ConditionalUploader(storage, "bucket").upload("Fn", _artifact()))
        assert outcome.uploaded is True
        assert len(storage.puts) == 1

    @pytest.mark.parametrize("status", [403, 412, 500, 503])
    def test_unexpected_head_status(self, make_storage: Callable, status: int):
        storage = make_storage(head_status=status)
        with pytest.raises(UnexpectedStatusError) as excinfo:
            asyncio.run(ConditionalUploader(storage, "bucket").upload("Fn", _artifact()))
        assert excinfo.value.status_code == status
        assert str(status) in str(excinfo.value)
        assert isinstance(excinfo.value, TransportError)
        assert storage.puts == []

    def test_failed_put(self, make_storage: Callable):
        storage = make_storage(put_status=500)
        with pytest.raises(UnexpectedStatusError, match="500"):
            asyncio.run(ConditionalUploader(storage, "bucket").upload("Fn", _artifact()))

    def test_logs_progress(self, storage, caplog: pytest.LogCaptureFixture):
        run_logger = logging.getLogger("test.uploader.run")
        uploader = ConditionalUploader(storage, "bucket", run_logger=run_logger)
        with caplog.at_level(logging.INFO, logger="test.uploader.run"):
            asyncio.run(uploader.upload("Fn", _artifact()))
            asyncio.run(uploader.upload("Fn", _artifact()))
        messages = [r.getMessage() for r in caplog.records if r.name == "test.uploader.run"]
        assert any("is uploading to s3://bucket/Fn-" in m for m in messages)
        assert any("of resource Fn not modified" in m for m in messages)
