"""Build collaborator: turn a source tree into one release binary per target.

The build runs ``cargo build --release --locked`` so dependency versions come
from the tree's ``Cargo.lock`` and are never upgraded implicitly.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from relpub.core.result import Err, Ok, Result
from relpub.output.console import ConsoleProtocol, Style
from relpub.platform.process import run_streamed
from relpub.release.errors import BuildFailed
from relpub.release.matrix import MatrixEntry
from relpub.release.timeouts import BUILD_TIMEOUT_SECONDS

__all__ = ["BuildResult", "Builder", "CargoBuilder"]


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Output of building one matrix entry.

    ``success`` is False only for a dry run, where ``binary_path`` is where the
    binary would have been written.
    """

    entry: MatrixEntry
    binary_path: Path
    success: bool = True


class Builder(Protocol):
    def build(
        self,
        *,
        entry: MatrixEntry,
        source_tree: Path,
        repo_name: str,
        dry_run: bool = False,
    ) -> Result[BuildResult, BuildFailed]: ...


class CargoBuilder:
    def __init__(
        self,
        *,
        console: ConsoleProtocol,
        cargo: str = "cargo",
        timeout: float = BUILD_TIMEOUT_SECONDS,
    ) -> None:
        self._console = console
        self._cargo = cargo
        self._timeout = timeout

    def command(self, entry: MatrixEntry) -> list[str]:
        return [
            self._cargo,
            "build",
            "--release",
            "--locked",
            "--verbose",
            "--target",
            entry.target_triple,
        ]

    @staticmethod
    def output_path(entry: MatrixEntry, *, source_tree: Path, repo_name: str) -> Path:
        """Deterministic location of the binary cargo produces for ``entry``."""
        return (
            source_tree
            / "target"
            / entry.target_triple
            / "release"
            / entry.artifact_file_name(repo_name)
        )

    def build(
        self,
        *,
        entry: MatrixEntry,
        source_tree: Path,
        repo_name: str,
        dry_run: bool = False,
    ) -> Result[BuildResult, BuildFailed]:
        cmd = self.command(entry)
        binary = self.output_path(entry, source_tree=source_tree, repo_name=repo_name)

        self._console.print(" ".join(cmd), Style.DIM)
        if dry_run:
            return Ok(BuildResult(entry=entry, binary_path=binary, success=False))

        if shutil.which(self._cargo) is None:
            return Err(
                BuildFailed(
                    platform=entry.platform,
                    message=f"{self._cargo}: missing",
                    hint="Install Rust: https://rustup.rs/",
                )
            )

        env = os.environ.copy()
        env["CARGO_TERM_COLOR"] = "always"
        result = run_streamed(cmd, cwd=source_tree, env=env, timeout=self._timeout)
        if isinstance(result, Err):
            e = result.error
            if e.timed_out:
                return Err(BuildFailed(platform=entry.platform, message=e.stderr))
            hint = e.stderr.strip() or f"missing target? rustup target add {entry.target_triple}"
            return Err(
                BuildFailed(
                    platform=entry.platform,
                    message=f"cargo build --target {entry.target_triple}",
                    returncode=e.returncode,
                    hint=hint,
                )
            )

        if not binary.is_file():
            return Err(
                BuildFailed(
                    platform=entry.platform,
                    message=f"output not found: {binary}",
                )
            )

        return Ok(BuildResult(entry=entry, binary_path=binary))
