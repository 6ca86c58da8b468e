"""Source checkout: a clean tree at the release tag, one per matrix entry."""

from __future__ import annotations

import os
import shutil
import stat
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from relpub.core.result import Err, Ok, Result
from relpub.output.console import ConsoleProtocol, Style
from relpub.platform.process import run as run_process
from relpub.release.errors import CheckoutFailed
from relpub.release.matrix import MatrixEntry
from relpub.release.timeouts import CHECKOUT_TIMEOUT_SECONDS

__all__ = ["Checkout", "GitCheckout"]


def _remove_readonly(_func: Callable[[str], object], path: str, exc: BaseException) -> None:
    """Handle read-only files on Windows (e.g. .git/objects/pack/*.idx)."""
    if isinstance(exc, PermissionError):
        os.chmod(path, stat.S_IWRITE)
        os.unlink(path)
    else:
        raise exc


class Checkout(Protocol):
    def checkout(
        self,
        *,
        entry: MatrixEntry,
        tag: str,
        dest: Path,
        dry_run: bool = False,
    ) -> Result[Path, CheckoutFailed]:
        """Materialize the source tree at ``tag`` under ``dest``."""
        ...


class GitCheckout:
    """Shallow ``git clone`` of a single tag.

    ``source`` is anything git can clone from: a URL or a local repository path.
    """

    def __init__(
        self,
        *,
        source: str,
        console: ConsoleProtocol,
        timeout: float = CHECKOUT_TIMEOUT_SECONDS,
    ) -> None:
        self._source = source
        self._console = console
        self._timeout = timeout

    def command(self, *, tag: str, dest: Path) -> list[str]:
        return [
            "git",
            "-c",
            "advice.detachedHead=false",
            "clone",
            "--quiet",
            "--depth",
            "1",
            "--branch",
            tag,
            self._source,
            str(dest),
        ]

    def checkout(
        self,
        *,
        entry: MatrixEntry,
        tag: str,
        dest: Path,
        dry_run: bool = False,
    ) -> Result[Path, CheckoutFailed]:
        cmd = self.command(tag=tag, dest=dest)
        self._console.print(" ".join(cmd), Style.DIM)
        if dry_run:
            return Ok(dest)

        if shutil.which("git") is None:
            return Err(
                CheckoutFailed(
                    platform=entry.platform,
                    message="git: missing",
                    hint="Install git: https://git-scm.com/downloads",
                )
            )

        # A reused work directory must not leak a previous run's tree.
        try:
            if dest.exists():
                shutil.rmtree(dest, onexc=_remove_readonly)
            dest.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Err(
                CheckoutFailed(
                    platform=entry.platform,
                    message=f"cannot prepare {dest}",
                    hint=str(e),
                )
            )

        result = run_process(cmd, cwd=dest.parent, timeout=self._timeout)
        if isinstance(result, Err):
            e = result.error
            return Err(
                CheckoutFailed(
                    platform=entry.platform,
                    message=f"cannot clone {self._source} at {tag}",
                    hint=e.stderr.strip() or str(e),
                )
            )
        return Ok(dest)
