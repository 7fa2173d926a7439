"""Cached dependency packer for function directories.

A function directory is identified by its *thumbprint*: the SHA-256 of its
manifest's material fields plus the content hash of every packed file.
File timestamps and editor/VCS metadata never contribute, so touching a
file or opening the directory in an IDE does not invalidate the cache.

Storage layout: {cache_dir}/{thumbprint[0:2]}/{thumbprint}.zip

Entries are written to a temporary file and moved into place with
``os.replace``. Two runs packing the same thumbprint concurrently write
identical bytes, so the last writer wins without corrupting the entry.
"""

from __future__ import annotations

import asyncio
import fnmatch
import io
import json
import logging
import os
import tempfile
import zipfile
from pathlib import Path
from typing import Any

from cfn_package.core.errors import ManifestError, PackagingError
from cfn_package.core.hasher import canonical_json_bytes, sha256_hex
from cfn_package.models.artifacts import ArtifactKind, PackedArtifact

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_NAME = "package.json"

# Manifest fields that change what ends up in the deployed bundle.
MATERIAL_MANIFEST_FIELDS = (
    "name",
    "version",
    "main",
    "dependencies",
    "bundledDependencies",
    "files",
)

# Path components and file name patterns that are never packed.
IGNORED_DIRECTORIES = frozenset({".git", ".svn", ".hg", ".idea", ".vscode"})
IGNORED_FILE_PATTERNS = (".DS_Store", "Thumbs.db", "*.swp", "*.swo", "*~")

# Fixed timestamp for archive entries (the earliest the zip format allows).
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


def is_ignored(relative: Path) -> bool:
    """Whether a path (relative to the packed directory) is editor or VCS metadata."""
    if any(part in IGNORED_DIRECTORIES for part in relative.parts[:-1]):
        return True
    return any(fnmatch.fnmatch(relative.name, pattern) for pattern in IGNORED_FILE_PATTERNS)


def collect_files(directory: Path, *, include_ignored: bool = False) -> list[Path]:
    """Return every regular file under *directory*, sorted, as relative paths.

    Hidden files are included. Symlinked directories are not followed.
    """
    files = []
    for root, dirnames, filenames in os.walk(directory):
        root_path = Path(root)
        if not include_ignored:
            dirnames[:] = [d for d in dirnames if d not in IGNORED_DIRECTORIES]
        for filename in filenames:
            path = root_path / filename
            if not path.is_file():
                continue
            relative = path.relative_to(directory)
            if not include_ignored and is_ignored(relative):
                continue
            files.append(relative)
    return sorted(files, key=lambda p: p.as_posix())


def build_zip(directory: Path, files: list[Path]) -> bytes:
    """Archive *files* (relative to *directory*) with maximum DEFLATE compression.

    Entries carry a fixed timestamp and keep their permission bits, so the
    same tree always yields the same bytes.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        for relative in files:
            path = directory / relative
            info = zipfile.ZipInfo(relative.as_posix(), date_time=ZIP_EPOCH)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = (path.stat().st_mode & 0o777 | 0o100000) << 16
            archive.writestr(info, path.read_bytes(), compresslevel=9)
    return buffer.getvalue()


class CachedDependencyPacker:
    """Packs function directories, reusing archives from a persistent cache.

    Parameters
    ----------
    cache_dir:
        Root directory of the pack cache.
    manifest_name:
        File name of the manifest every function directory must contain.
    """

    def __init__(self, cache_dir: Path, manifest_name: str = DEFAULT_MANIFEST_NAME) -> None:
        self._base = Path(cache_dir).expanduser()
        self.manifest_name = manifest_name

    def _cache_path(self, thumbprint: str) -> Path:
        return self._base / thumbprint[:2] / f"{thumbprint}.zip"

    # ------------------------------------------------------------------
    # Manifest and thumbprint
    # ------------------------------------------------------------------

    def read_manifest(self, directory: Path) -> dict[str, Any]:
        """Read and validate the manifest of a function directory."""
        manifest_path = directory / self.manifest_name
        try:
            raw = manifest_path.read_bytes()
        except FileNotFoundError as exc:
            raise ManifestError(f"Manifest {manifest_path} not found") from exc
        except OSError as exc:
            raise ManifestError(f"Manifest {manifest_path} is unreadable: {exc}") from exc
        try:
            manifest = json.loads(raw)
        except ValueError as exc:
            raise ManifestError(f"Manifest {manifest_path} is not valid JSON: {exc}") from exc
        if not isinstance(manifest, dict):
            raise ManifestError(f"Manifest {manifest_path} must be a JSON object")
        return manifest

    def compute_thumbprint(
        self, directory: Path, manifest: dict[str, Any], files: list[Path]
    ) -> str:
        """SHA-256 over the material manifest fields and the packed files.

        Each file contributes its path, permission bits and content hash, the
        same attributes ``build_zip`` writes into the archive.
        """
        payload = {
            "manifest": {
                field: manifest[field]
                for field in MATERIAL_MANIFEST_FIELDS
                if field in manifest
            },
            "files": [
                [
                    relative.as_posix(),
                    (directory / relative).stat().st_mode & 0o777,
                    sha256_hex((directory / relative).read_bytes()),
                ]
                for relative in files
            ],
        }
        return sha256_hex(canonical_json_bytes(payload))

    # ------------------------------------------------------------------
    # Cache access
    # ------------------------------------------------------------------

    def lookup(self, thumbprint: str) -> bytes | None:
        """Return the cached archive for a thumbprint, if any."""
        path = self._cache_path(thumbprint)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def store(self, thumbprint: str, archive: bytes) -> Path:
        """Write an archive into the cache atomically."""
        path = self._cache_path(thumbprint)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{thumbprint[:8]}-", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(archive)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return path

    # ------------------------------------------------------------------
    # Packing
    # ------------------------------------------------------------------

    def pack_sync(self, directory: Path) -> PackedArtifact:
        """Blocking implementation of ``pack``."""
        directory = Path(directory)
        manifest = self.read_manifest(directory)
        try:
            files = collect_files(directory)
            thumbprint = self.compute_thumbprint(directory, manifest, files)
            archive = self.lookup(thumbprint)
            if archive is None:
                logger.debug("Pack cache miss for %s (%s)", directory, thumbprint[:16])
                archive = build_zip(directory, files)
                self.store(thumbprint, archive)
            else:
                logger.debug("Pack cache hit for %s (%s)", directory, thumbprint[:16])
        except (OSError, zipfile.BadZipFile) as exc:
            raise PackagingError(f"Packing {directory} failed: {exc}") from exc

        return PackedArtifact(
            body=archive,
            source=directory,
            kind=ArtifactKind.FUNCTION,
            thumbprint=thumbprint,
        )

    async def pack(self, directory: Path) -> PackedArtifact:
        """Pack a function directory into (archive, thumbprint)."""
        return await asyncio.to_thread(self.pack_sync, directory)
