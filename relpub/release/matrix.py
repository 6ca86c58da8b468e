"""Static build matrix and the asset naming convention.

All per-platform naming lives here:

    | Platform | Binary file name   | Published asset name          |
    |----------|--------------------|-------------------------------|
    | linux    | <name>             | <name>-linux-amd64            |
    | windows  | <name>.exe         | <name>-windows-amd64.exe      |
    | macos    | <name>             | <name>-macos-amd64            |

Adding a platform means adding one row to ``MATRIX``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from relpub.core.result import Err, Ok, Result
from relpub.release.errors import UnknownPlatform

__all__ = [
    "MATRIX",
    "MatrixEntry",
    "Platform",
    "platform_labels",
    "select_entries",
]


class Platform(Enum):
    """Target operating system; the value is the label used in asset names."""

    LINUX = "linux"
    WINDOWS = "windows"
    MACOS = "macos"

    def __str__(self) -> str:
        return self.value

    @property
    def exe_suffix(self) -> str:
        return ".exe" if self == Platform.WINDOWS else ""

    def exe_name(self, name: str) -> str:
        """Executable file name: ``exe_name("widget")`` is ``widget.exe`` on Windows."""
        return f"{name}{self.exe_suffix}"


@dataclass(frozen=True, slots=True)
class MatrixEntry:
    """One platform target of the release.

    Attributes:
        platform: Target operating system.
        target_triple: Rust target passed to ``cargo build --target``.
        arch: Architecture label used in the asset name.
    """

    platform: Platform
    target_triple: str
    arch: str = "amd64"

    @property
    def label(self) -> str:
        return f"{self.platform}/{self.arch}"

    def artifact_file_name(self, repo_name: str) -> str:
        return self.platform.exe_name(repo_name)

    def asset_name(self, repo_name: str) -> str:
        return self.platform.exe_name(f"{repo_name}-{self.platform}-{self.arch}")


MATRIX: tuple[MatrixEntry, ...] = (
    MatrixEntry(platform=Platform.LINUX, target_triple="x86_64-unknown-linux-gnu"),
    MatrixEntry(platform=Platform.WINDOWS, target_triple="x86_64-pc-windows-msvc"),
    MatrixEntry(platform=Platform.MACOS, target_triple="x86_64-apple-darwin"),
)


def platform_labels() -> tuple[str, ...]:
    return tuple(str(entry.platform) for entry in MATRIX)


def select_entries(labels: Iterable[str]) -> Result[tuple[MatrixEntry, ...], UnknownPlatform]:
    """Restrict the matrix to the given platform labels.

    An empty selection means the whole matrix. Order follows ``MATRIX``.
    """
    wanted = {label.strip().lower() for label in labels if label.strip()}
    if not wanted:
        return Ok(MATRIX)

    available = platform_labels()
    for label in sorted(wanted):
        if label not in available:
            return Err(UnknownPlatform(label=label, available=available))

    return Ok(tuple(entry for entry in MATRIX if str(entry.platform) in wanted))
