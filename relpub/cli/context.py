from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from relpub.core.config import Config, resolve_config
from relpub.core.errors import ErrorCode
from relpub.core.result import Err
from relpub.output.console import ConsoleProtocol, RichConsole

CONFIG_ENV_VAR = "RELPUB_CONFIG"


@dataclass(frozen=True, slots=True)
class CLIContext:
    cwd: Path
    config: Config
    console: ConsoleProtocol


def build_context() -> CLIContext:
    cwd = Path.cwd()
    explicit = os.environ.get(CONFIG_ENV_VAR)
    config_path = Path(explicit).expanduser() if explicit else None

    config_result = resolve_config(config_path, cwd=cwd)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(cwd=cwd, config=config_result.value, console=RichConsole())
