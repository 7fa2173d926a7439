"""cfn-package CLI — Typer-based command-line interface.

Provides the ``cfn-package`` command with subcommands for packaging a
template and for inspecting the fingerprint of a local artifact.

All output uses Rich for formatted terminal display.
"""
