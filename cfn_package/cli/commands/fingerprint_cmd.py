"""``cfn-package fingerprint PATH`` — show the identity an artifact would upload with."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from cfn_package.config import Settings
from cfn_package.core.dependency_cache import CachedDependencyPacker
from cfn_package.core.errors import PackageError
from cfn_package.core.hasher import md5_hex, short_fingerprint
from cfn_package.core.packer import ArtifactPacker
from cfn_package.models.resources import ResourceType

console = Console()


def fingerprint_cmd(
    path: Path = typer.Argument(..., help="Local artifact file or directory."),
    function: bool = typer.Option(
        False,
        "--function",
        "-f",
        help="Pack a directory as a function (manifest + pack cache).",
    ),
) -> None:
    """Pack a local artifact and print its fingerprint and key suffix."""
    settings = Settings()
    packer = ArtifactPacker(
        CachedDependencyPacker(settings.resolved_cache_dir, settings.manifest_name)
    )
    resource_type = ResourceType.SERVERLESS_FUNCTION if function else None

    try:
        artifact = asyncio.run(packer.pack(path.resolve(), resource_type))
    except (PackageError, OSError) as exc:
        console.print(f"[bold red]Packing failed:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    fingerprint = md5_hex(artifact.body)
    table = Table(title=str(path))
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Kind", artifact.kind.value)
    table.add_row("Size", f"{artifact.size_bytes} bytes")
    table.add_row("Fingerprint", fingerprint)
    table.add_row("Thumbprint", artifact.thumbprint or "-")
    table.add_row("Key suffix", short_fingerprint(fingerprint, artifact.thumbprint))
    console.print(table)
