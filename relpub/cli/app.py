from __future__ import annotations

import os
from pathlib import Path

import typer

from relpub import __version__
from relpub.cli.commands.check_ref import check_ref
from relpub.cli.commands.matrix_cmd import matrix
from relpub.cli.commands.publish import publish
from relpub.cli.context import CONFIG_ENV_VAR


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


app.command()(publish)
app.command()(matrix)
app.command("check-ref")(check_ref)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_print_version,
        is_eager=True,
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Path to relpub.toml (default: ./relpub.toml if present)",
    ),
) -> None:
    del version
    if config is not None:
        os.environ[CONFIG_ENV_VAR] = str(config.expanduser().resolve())


def main() -> None:
    app()
