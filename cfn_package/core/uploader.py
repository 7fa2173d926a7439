"""Conditional, content-addressed upload of packed artifacts.

The storage key embeds a short fingerprint of the content, and the
existence check sends the full fingerprint as ``If-None-Match``. Storage
answers 304 when the stored object already has that content, in which case
no upload happens. Re-running with unchanged artifacts therefore costs one
HEAD request per artifact.
"""

from __future__ import annotations

import logging

from cfn_package.bridge.transport import ObjectStorage
from cfn_package.core.errors import UnexpectedStatusError
from cfn_package.core.hasher import md5_hex, s3_location, short_fingerprint, upload_key
from cfn_package.models.artifacts import PackedArtifact, UploadOutcome

logger = logging.getLogger(__name__)

NOT_MODIFIED = 304
UPLOAD_REQUIRED = frozenset({200, 404})


class ConditionalUploader:
    """Uploads artifacts to one bucket/prefix, skipping unchanged content.

    Parameters
    ----------
    storage:
        Object storage transport.
    bucket:
        Destination bucket.
    prefix:
        Optional key prefix.
    run_logger:
        Logger receiving per-artifact progress messages.
    """

    def __init__(
        self,
        storage: ObjectStorage,
        bucket: str,
        prefix: str | None = None,
        *,
        run_logger: logging.Logger | None = None,
    ) -> None:
        self._storage = storage
        self.bucket = bucket
        self.prefix = prefix
        self._log = run_logger or logger

    def key_for(self, logical_id: str, fingerprint: str, thumbprint: str | None = None) -> str:
        return upload_key(logical_id, short_fingerprint(fingerprint, thumbprint), self.prefix)

    async def upload(
        self,
        logical_id: str,
        artifact: PackedArtifact,
        fingerprint: str | None = None,
    ) -> UploadOutcome:
        """Upload *artifact* for *logical_id* unless storage already holds it.

        Raises
        ------
        UnexpectedStatusError
            If the existence check or the upload answers with a status
            outside the handled set.
        """
        fingerprint = fingerprint or md5_hex(artifact.body)
        key = self.key_for(logical_id, fingerprint, artifact.thumbprint)
        location = s3_location(self.bucket, key)

        head = await self._storage.head_object(self.bucket, key, if_none_match=fingerprint)

        if head.status_code == NOT_MODIFIED:
            self._log.info(
                "Artifact %s of resource %s not modified", artifact.source, logical_id
            )
            return UploadOutcome(key=key, location=location, fingerprint=fingerprint, uploaded=False)

        if head.status_code not in UPLOAD_REQUIRED:
            raise UnexpectedStatusError("S3", head.status_code, head.reason)

        self._log.info(
            "Artifact %s of resource %s is uploading to %s", artifact.source, logical_id, location
        )
        put = await self._storage.put_object(self.bucket, key, artifact.body)
        if not put.ok:
            raise UnexpectedStatusError("S3", put.status_code, put.reason)

        return UploadOutcome(key=key, location=location, fingerprint=fingerprint, uploaded=True)
