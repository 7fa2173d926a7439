"""Turns a local artifact path into a single byte payload.

- regular file: raw bytes, no thumbprint;
- function directory: delegated to the dependency packer (archive + thumbprint);
- any other directory: a fresh archive of the whole tree, no caching.
"""

from __future__ import annotations

import asyncio
import logging
import zipfile
from pathlib import Path

from cfn_package.bridge.transport import DependencyPacker
from cfn_package.core.dependency_cache import build_zip, collect_files
from cfn_package.core.errors import ArtifactNotFoundError, PackagingError
from cfn_package.models.artifacts import ArtifactKind, PackedArtifact
from cfn_package.models.resources import FUNCTION_TYPES, ResourceType

logger = logging.getLogger(__name__)


def pack_directory(directory: Path) -> PackedArtifact:
    """Archive every file under *directory*, hidden files included."""
    try:
        archive = build_zip(directory, collect_files(directory, include_ignored=True))
    except (OSError, zipfile.BadZipFile) as exc:
        raise PackagingError(f"Packing {directory} failed: {exc}") from exc
    return PackedArtifact(body=archive, source=directory, kind=ArtifactKind.DIRECTORY)


def read_file(path: Path) -> PackedArtifact:
    return PackedArtifact(body=path.read_bytes(), source=path, kind=ArtifactKind.FILE)


class ArtifactPacker:
    """Chooses how to pack an artifact path based on what it is on disk.

    Parameters
    ----------
    dependency_packer:
        Packer used for directories of function resources.
    """

    def __init__(self, dependency_packer: DependencyPacker) -> None:
        self._dependency_packer = dependency_packer

    async def pack(self, path: Path, resource_type: ResourceType | None = None) -> PackedArtifact:
        """Return the payload for *path*.

        Raises
        ------
        ArtifactNotFoundError
            If *path* does not exist.
        PackagingError
            If a directory cannot be archived or its manifest is invalid.
        """
        if path.is_dir():
            if resource_type in FUNCTION_TYPES:
                logger.debug("Packing function directory %s", path)
                return await self._dependency_packer.pack(path)
            logger.debug("Archiving directory %s", path)
            return await asyncio.to_thread(pack_directory, path)

        if not path.exists():
            raise ArtifactNotFoundError(f"Artifact {path} does not exist")

        return await asyncio.to_thread(read_file, path)
