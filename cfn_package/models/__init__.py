"""cfn-package data models — all Pydantic v2, all frozen (immutable)."""

from cfn_package.models.artifacts import (
    ArtifactKind,
    PackedArtifact,
    UploadOutcome,
    UploadResult,
)
from cfn_package.models.options import PackageOptions
from cfn_package.models.resources import (
    ARTIFACT_PROPERTIES,
    FUNCTION_TYPES,
    ResourceType,
    StackResource,
)

__all__ = [
    # artifacts
    "ArtifactKind",
    "PackedArtifact",
    "UploadOutcome",
    "UploadResult",
    # options
    "PackageOptions",
    # resources
    "ARTIFACT_PROPERTIES",
    "FUNCTION_TYPES",
    "ResourceType",
    "StackResource",
]
