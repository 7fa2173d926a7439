"""Main Typer application — imports and registers all CLI commands.

Entry point: ``cfn-package`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from cfn_package.cli.commands.fingerprint_cmd import fingerprint_cmd
from cfn_package.cli.commands.package_cmd import package_cmd

app = typer.Typer(
    name="cfn-package",
    help="cfn-package: upload local template artifacts to S3 and rewrite the template.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

app.command(name="package", help="Upload local artifacts and rewrite the template.")(package_cmd)
app.command(name="fingerprint", help="Show the fingerprint of a local artifact.")(fingerprint_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
