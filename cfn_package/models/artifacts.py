"""Packed artifact and upload result models."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class ArtifactKind(str, Enum):
    """How an artifact payload was produced."""

    FILE = "file"
    FUNCTION = "function"
    DIRECTORY = "directory"


class PackedArtifact(BaseModel):
    """The byte payload of a local artifact, ready for upload.

    ``thumbprint`` is set when the packer derives a stable identity that is
    independent of incidental archive bytes; it replaces the content
    fingerprint in the storage key.
    """

    model_config = ConfigDict(frozen=True)

    body: bytes
    source: Path
    kind: ArtifactKind = ArtifactKind.FILE
    thumbprint: str | None = None

    @property
    def size_bytes(self) -> int:
        return len(self.body)


class UploadOutcome(BaseModel):
    """Result of a conditional upload."""

    model_config = ConfigDict(frozen=True)

    key: str
    location: str
    fingerprint: str
    uploaded: bool


class UploadResult(BaseModel):
    """Per-task result recorded by the packager."""

    model_config = ConfigDict(frozen=True)

    logical_id: str
    property_name: str
    artifact_path: Path
    key: str
    location: str
    uploaded: bool
    function_updated: bool = False
