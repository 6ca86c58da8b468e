"""Release store: the remote release a tag's assets are attached to.

``GhReleaseStore`` drives the GitHub CLI; ``MemoryReleaseStore`` keeps
releases in memory for tests. Both honour the same contract:

- at most one asset per ``(tag, asset_name)``; uploading again replaces it;
- creating a release that already exists is not an error.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from threading import Lock
from typing import Protocol

from relpub.core.result import Err, Ok, Result
from relpub.output.console import ConsoleProtocol, Style
from relpub.platform.process import ProcessError
from relpub.platform.process import run as run_process
from relpub.release.errors import StoreError
from relpub.release.timeouts import GH_TIMEOUT_SECONDS, UPLOAD_TIMEOUT_SECONDS

__all__ = [
    "GhReleaseStore",
    "MemoryReleaseStore",
    "ReleaseStore",
    "UploadRecord",
    "is_transient_gh_error",
]


@dataclass(frozen=True, slots=True)
class UploadRecord:
    """An asset attached to a release, keyed by ``(tag, asset_name)``."""

    tag: str
    asset_name: str
    size: int
    uploaded_at: datetime


class ReleaseStore(Protocol):
    def ensure_release(
        self, *, tag: str, make_latest: bool, dry_run: bool = False
    ) -> Result[None, StoreError]:
        """Create the release for ``tag`` unless it already exists."""
        ...

    def upload_asset(
        self, *, tag: str, path: Path, asset_name: str, dry_run: bool = False
    ) -> Result[UploadRecord, StoreError]:
        """Attach ``path`` as ``asset_name``, replacing a previous asset of that name."""
        ...

    def mark_latest(self, *, tag: str, dry_run: bool = False) -> Result[None, StoreError]: ...


def is_transient_gh_error(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    markers = (
        "timed out",
        "timeout",
        "connection reset",
        "connection refused",
        "temporarily unavailable",
        "service unavailable",
        "bad gateway",
        "gateway timeout",
        "tls handshake timeout",
        "network is unreachable",
        "unexpected eof",
        "http 429",
        "http 500",
        "http 502",
        "http 503",
        "http 504",
    )
    if error.timed_out:
        return True
    return any(marker in text for marker in markers)


def _is_not_found(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    return "release not found" in text or "http 404" in text


class GhReleaseStore:
    """GitHub releases through ``gh``.

    The token, if any, is handed to gh as ``GH_TOKEN``; without one gh falls
    back to its own stored credentials.
    """

    def __init__(
        self,
        *,
        repo: str,
        console: ConsoleProtocol,
        token: str | None = None,
        cwd: Path | None = None,
        upload_timeout: float = UPLOAD_TIMEOUT_SECONDS,
    ) -> None:
        self._repo = repo
        self._console = console
        self._token = token
        self._cwd = cwd or Path.cwd()
        self._upload_timeout = upload_timeout

    @property
    def repo(self) -> str:
        return self._repo

    def ensure_release(
        self, *, tag: str, make_latest: bool, dry_run: bool = False
    ) -> Result[None, StoreError]:
        view_cmd = ["gh", "release", "view", tag, "--repo", self._repo, "--json", "tagName"]
        create_cmd = [
            "gh",
            "release",
            "create",
            tag,
            "--repo",
            self._repo,
            "--verify-tag",
            "--title",
            tag,
            "--notes",
            "",
            f"--latest={'true' if make_latest else 'false'}",
        ]

        if dry_run:
            self._console.print(" ".join(view_cmd), Style.DIM)
            self._console.print(f"{' '.join(create_cmd)}  # if missing", Style.DIM)
            return Ok(None)

        available = self._ensure_gh()
        if isinstance(available, Err):
            return available

        viewed = self._gh(view_cmd)
        if isinstance(viewed, Ok):
            return Ok(None)
        if not _is_not_found(viewed.error):
            return Err(self._store_error(f"cannot query release {tag}", viewed.error))

        self._console.print(" ".join(create_cmd), Style.DIM)
        created = self._gh(create_cmd)
        if isinstance(created, Ok):
            return Ok(None)

        # Another entry may have created it between our view and create.
        if isinstance(self._gh(view_cmd), Ok):
            return Ok(None)
        return Err(self._store_error(f"cannot create release {tag}", created.error))

    def upload_asset(
        self, *, tag: str, path: Path, asset_name: str, dry_run: bool = False
    ) -> Result[UploadRecord, StoreError]:
        try:
            with tempfile.TemporaryDirectory(prefix="relpub-stage-") as staging:
                return self._upload_staged(tag, path, asset_name, Path(staging), dry_run=dry_run)
        except OSError as e:
            return Err(StoreError(message="cannot create staging directory", detail=str(e)))

    def _upload_staged(
        self, tag: str, path: Path, asset_name: str, staging: Path, *, dry_run: bool
    ) -> Result[UploadRecord, StoreError]:
        # gh names an asset after its file, so stage the binary under the asset name.
        staged = staging / asset_name
        cmd = ["gh", "release", "upload", tag, str(staged), "--repo", self._repo, "--clobber"]
        self._console.print(" ".join(cmd), Style.DIM)
        if dry_run:
            return Ok(UploadRecord(tag, asset_name, 0, datetime.now(UTC)))

        try:
            shutil.copy2(path, staged)
            size = staged.stat().st_size
        except OSError as e:
            return Err(StoreError(message=f"cannot stage {path}", detail=str(e)))

        result = self._gh(cmd, timeout=self._upload_timeout)
        if isinstance(result, Err):
            return Err(self._store_error(f"cannot upload {asset_name}", result.error))

        return Ok(UploadRecord(tag, asset_name, size, datetime.now(UTC)))

    def mark_latest(self, *, tag: str, dry_run: bool = False) -> Result[None, StoreError]:
        cmd = ["gh", "release", "edit", tag, "--repo", self._repo, "--latest"]
        self._console.print(" ".join(cmd), Style.DIM)
        if dry_run:
            return Ok(None)

        result = self._gh(cmd)
        if isinstance(result, Err):
            return Err(self._store_error(f"cannot mark {tag} as latest", result.error))
        return Ok(None)

    def _ensure_gh(self) -> Result[None, StoreError]:
        if shutil.which("gh") is None:
            return Err(
                StoreError(
                    message="gh: missing",
                    detail="Install GitHub CLI: https://cli.github.com/",
                )
            )
        return Ok(None)

    def _env(self) -> dict[str, str]:
        env = os.environ.copy()
        if self._token:
            env["GH_TOKEN"] = self._token
        env.setdefault("GH_PROMPT_DISABLED", "1")
        return env

    def _gh(
        self, cmd: list[str], *, timeout: float = GH_TIMEOUT_SECONDS
    ) -> Result[str, ProcessError]:
        return run_process(cmd, cwd=self._cwd, env=self._env(), timeout=timeout)

    @staticmethod
    def _store_error(message: str, error: ProcessError) -> StoreError:
        return StoreError(
            message=message,
            detail=error.stderr.strip() or str(error),
            transient=is_transient_gh_error(error),
        )


@dataclass
class _MemoryRelease:
    assets: dict[str, bytes] = field(default_factory=dict)
    records: dict[str, UploadRecord] = field(default_factory=dict)


@dataclass
class MemoryReleaseStore:
    """In-memory release store for tests.

    ``failures`` queues errors returned by the next uploads of an asset name,
    which lets tests exercise retry and per-platform isolation.
    """

    releases: dict[str, _MemoryRelease] = field(default_factory=dict)
    latest: str | None = None
    failures: dict[str, list[StoreError]] = field(default_factory=dict)
    upload_calls: list[tuple[str, str]] = field(default_factory=list)
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    def ensure_release(
        self, *, tag: str, make_latest: bool, dry_run: bool = False
    ) -> Result[None, StoreError]:
        if dry_run:
            return Ok(None)
        with self._lock:
            if tag not in self.releases:
                self.releases[tag] = _MemoryRelease()
                if make_latest:
                    self.latest = tag
        return Ok(None)

    def upload_asset(
        self, *, tag: str, path: Path, asset_name: str, dry_run: bool = False
    ) -> Result[UploadRecord, StoreError]:
        if dry_run:
            return Ok(UploadRecord(tag, asset_name, 0, datetime.now(UTC)))

        try:
            content = path.read_bytes()
        except OSError as e:
            return Err(StoreError(message=f"cannot read {path}", detail=str(e)))
        with self._lock:
            self.upload_calls.append((tag, asset_name))
            queued = self.failures.get(asset_name)
            if queued:
                return Err(queued.pop(0))

            release = self.releases.get(tag)
            if release is None:
                return Err(StoreError(message=f"release not found: {tag}"))

            record = UploadRecord(tag, asset_name, len(content), datetime.now(UTC))
            release.assets[asset_name] = content
            release.records[asset_name] = record
        return Ok(record)

    def mark_latest(self, *, tag: str, dry_run: bool = False) -> Result[None, StoreError]:
        if dry_run:
            return Ok(None)
        if tag not in self.releases:
            return Err(StoreError(message=f"release not found: {tag}"))
        self.latest = tag
        return Ok(None)

    # Test helpers

    def asset_names(self, tag: str) -> list[str]:
        release = self.releases.get(tag)
        if release is None:
            return []
        return sorted(release.assets)

    def asset_content(self, tag: str, asset_name: str) -> bytes | None:
        release = self.releases.get(tag)
        if release is None:
            return None
        return release.assets.get(asset_name)
