"""``cfn-package package TEMPLATE`` — upload local artifacts and rewrite the template.

Every resource property that references a local file or directory is
packed, uploaded to ``s3://BUCKET/[PREFIX/]LOGICAL_ID-HASH`` unless an
identical object is already there, and replaced by that location. The
resulting template goes to ``--output-template-file`` or to stdout.
"""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from cfn_package.cli.logging_setup import configure_logging
from cfn_package.config import Settings
from cfn_package.core.errors import PackageError
from cfn_package.core.packager import TemplatePackager
from cfn_package.models.options import PackageOptions
from cfn_package.templates import dump_template

console = Console(stderr=True)


def package_cmd(
    template_file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="Path to the CloudFormation / SAM template.",
    ),
    s3_bucket: str = typer.Option(
        ...,
        "--s3-bucket",
        "-b",
        help="Bucket that receives the artifacts.",
    ),
    s3_prefix: str = typer.Option(
        None,
        "--s3-prefix",
        "-p",
        help="Key prefix for uploaded artifacts.",
    ),
    output_template_file: Path = typer.Option(
        None,
        "--output-template-file",
        "-o",
        help="Where to write the packaged template (stdout if omitted).",
    ),
    basedir: Path = typer.Option(
        None,
        "--basedir",
        help="Directory that artifact paths resolve against (template directory by default).",
    ),
    use_json: bool = typer.Option(
        False,
        "--use-json",
        help="Write the packaged template as JSON instead of YAML.",
    ),
    update_functions: bool = typer.Option(
        False,
        "--update-functions",
        help="Also point the stack's deployed functions at the new code.",
    ),
    stack_name: str = typer.Option(
        None,
        "--stack-name",
        "-s",
        help="Stack whose functions are updated (required with --update-functions).",
    ),
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Log level (defaults to CFN_PACKAGE_LOG_LEVEL or INFO).",
    ),
) -> None:
    """Package the local artifacts of a template."""
    settings = Settings()
    configure_logging(log_level or settings.log_level, console=console)

    try:
        options = PackageOptions(
            bucket=s3_bucket,
            prefix=s3_prefix,
            template_file=template_file,
            basedir=basedir,
            update_functions=update_functions,
            stack_name=stack_name,
        )
    except ValidationError as exc:
        for error in exc.errors():
            console.print(f"[bold red]Invalid options:[/bold red] {error['msg']}")
        raise typer.Exit(code=2) from exc

    packager = TemplatePackager(options, settings=settings)
    try:
        template = packager.run_sync()
    except (PackageError, OSError) as exc:
        console.print(f"[bold red]Packaging failed:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    rendered = dump_template(template, "json" if use_json else "yaml")
    if output_template_file is None:
        typer.echo(rendered, nl=False)
    else:
        output_template_file.write_text(rendered, encoding="utf-8")
        console.print(
            f"[bold green]Packaged template written to[/bold green] {output_template_file}"
        )

    uploaded = sum(1 for result in packager.results if result.uploaded)
    console.print(
        f"[dim]{len(packager.results)} artifact(s), {uploaded} uploaded, "
        f"{len(packager.results) - uploaded} unchanged.[/dim]"
    )
