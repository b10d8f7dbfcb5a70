"""Command line interface for notebridge.

Configuration is read from ``NOTEBRIDGE_*`` environment variables (see
:meth:`NotebridgeConfig.from_env`).
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from notebridge import __version__
from notebridge.config import NotebridgeConfig
from notebridge.models import OperationResult
from notebridge.pipeline import publish_note, unpublish_note

app = typer.Typer(
    name="notebridge",
    help="Publish Markdown notes and their images to a content service.",
    no_args_is_help=True,
)

NoteArg = Annotated[
    Path,
    typer.Argument(
        help="Path to the Markdown note",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
]

VaultOpt = Annotated[
    Path | None,
    typer.Option(
        "--vault",
        help="Root folder of the note collection (default: the note's folder)",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
]


def _load_config() -> NotebridgeConfig:
    try:
        return NotebridgeConfig.from_env()
    except ValueError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(2) from exc


def _report(result: OperationResult, failure_prefix: str) -> None:
    if result.success:
        typer.echo(result.message)
        return
    typer.echo(f"{failure_prefix}: {result.message}", err=True)
    raise typer.Exit(1)


@app.command()
def publish(note: NoteArg, vault: VaultOpt = None) -> None:
    """Upload a note and its images."""
    result = publish_note(note, _load_config(), vault_root=vault)
    _report(result, "Upload failed")


@app.command()
def unpublish(note: NoteArg, vault: VaultOpt = None) -> None:
    """Remove a published note."""
    result = unpublish_note(note, _load_config(), vault_root=vault)
    _report(result, "Unpublish failed")


@app.command()
def version() -> None:
    """Show the notebridge version."""
    typer.echo(__version__)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
