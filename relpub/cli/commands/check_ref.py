from __future__ import annotations

import typer

from relpub.core.errors import ErrorCode
from relpub.core.result import Err, Ok
from relpub.release.trigger import parse_ref


def check_ref(
    ref: str = typer.Argument(..., help="Pushed ref (refs/tags/v1.2.3) or tag (v1.2.3)"),
) -> None:
    """Exit 0 if REF is a release tag, 1 otherwise."""
    match parse_ref(ref):
        case Ok(trigger):
            typer.echo(trigger.tag)
        case Err(mismatch):
            typer.echo(f"not a release tag: {mismatch.pretty()}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))
