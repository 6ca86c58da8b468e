from __future__ import annotations

import typer

from relpub.cli.commands._helpers import resolve_repo_name
from relpub.cli.context import build_context
from relpub.output.console import Style
from relpub.release.matrix import MATRIX


def matrix(
    name: str | None = typer.Option(None, "--name", help="Binary name (default: from config)"),
    repo: str | None = typer.Option(None, "--repo", help="GitHub repo owner/name"),
) -> None:
    """Show the build matrix and the asset name of each platform."""
    ctx = build_context()
    repo_name = resolve_repo_name(name=name, repo=repo, config=ctx.config) or "<repo-name>"

    ctx.console.print(f"{'platform':<9} {'target':<26} {'binary':<24} asset", Style.BOLD)
    for entry in MATRIX:
        ctx.console.print(
            f"{str(entry.platform):<9} {entry.target_triple:<26} "
            f"{entry.artifact_file_name(repo_name):<24} {entry.asset_name(repo_name)}"
        )
