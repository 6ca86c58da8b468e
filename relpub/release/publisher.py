"""Release publisher: checkout, build and upload every matrix entry for a tag.

Entries are independent. A failure is recorded against its platform and the
remaining entries still run, so a release can end up with only some of its
assets; ``PublishReport`` makes that partial state explicit.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from time import sleep
from typing import Literal

from relpub.core.result import Err, Ok, Result
from relpub.output.console import ConsoleProtocol
from relpub.release.builder import Builder
from relpub.release.checkout import Checkout
from relpub.release.errors import (
    BuildFailed,
    CheckoutFailed,
    PublishError,
    StoreError,
    UploadFailed,
)
from relpub.release.matrix import MATRIX, MatrixEntry
from relpub.release.store import ReleaseStore, UploadRecord
from relpub.release.trigger import ReleaseTrigger

__all__ = [
    "EntryReport",
    "EntryStatus",
    "PublishOptions",
    "PublishReport",
    "Publisher",
]


EntryStatus = Literal[
    "published",
    "checkout_failed",
    "build_failed",
    "upload_failed",
    "skipped",
]


@dataclass(frozen=True, slots=True)
class PublishOptions:
    """Knobs for one publish run.

    Attributes:
        repo_name: Name used for binaries and asset names.
        make_latest: Mark the release as the repository's latest.
        upload_retry_attempts: Total upload attempts per entry (1 = no retry).
        upload_retry_delay_seconds: Base delay; attempt n waits ``delay * n``.
        jobs: Entries processed concurrently (1 = sequential).
        dry_run: Print commands only.
    """

    repo_name: str
    make_latest: bool = True
    upload_retry_attempts: int = 1
    upload_retry_delay_seconds: float = 2.0
    jobs: int = 1
    dry_run: bool = False


@dataclass(frozen=True, slots=True)
class EntryReport:
    entry: MatrixEntry
    asset_name: str
    status: EntryStatus
    error: PublishError | None = None
    record: UploadRecord | None = None

    @property
    def ok(self) -> bool:
        return self.status in ("published", "skipped")


@dataclass(frozen=True, slots=True)
class PublishReport:
    trigger: ReleaseTrigger
    entries: tuple[EntryReport, ...]
    latest_marked: bool = False
    latest_error: StoreError | None = None

    @property
    def published(self) -> tuple[EntryReport, ...]:
        return tuple(r for r in self.entries if r.status == "published")

    @property
    def failed(self) -> tuple[EntryReport, ...]:
        return tuple(r for r in self.entries if not r.ok)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def partial(self) -> bool:
        return bool(self.published) and bool(self.failed)


class Publisher:
    def __init__(
        self,
        *,
        checkout: Checkout,
        builder: Builder,
        store: ReleaseStore,
        console: ConsoleProtocol,
        options: PublishOptions,
    ) -> None:
        self._checkout = checkout
        self._builder = builder
        self._store = store
        self._console = console
        self._options = options

    def publish(
        self,
        trigger: ReleaseTrigger,
        *,
        workdir: Path,
        entries: tuple[MatrixEntry, ...] = MATRIX,
    ) -> PublishReport:
        """Publish every entry's binary to the release for ``trigger``."""
        jobs = max(1, min(self._options.jobs, len(entries) or 1))

        def run_one(entry: MatrixEntry) -> EntryReport:
            return self._run_entry(trigger, entry, workdir=workdir / str(entry.platform))

        if jobs == 1:
            reports = tuple(run_one(entry) for entry in entries)
        else:
            with ThreadPoolExecutor(max_workers=jobs, thread_name_prefix="relpub") as pool:
                reports = tuple(pool.map(run_one, entries))

        latest_marked = False
        latest_error: StoreError | None = None
        published = any(r.status == "published" for r in reports)
        if self._options.make_latest and (published or self._options.dry_run):
            marked = self._store.mark_latest(tag=trigger.tag, dry_run=self._options.dry_run)
            if isinstance(marked, Err):
                latest_error = marked.error
                self._console.warning(marked.error.pretty())
            else:
                latest_marked = not self._options.dry_run

        return PublishReport(
            trigger=trigger,
            entries=reports,
            latest_marked=latest_marked,
            latest_error=latest_error,
        )

    def _run_entry(
        self, trigger: ReleaseTrigger, entry: MatrixEntry, *, workdir: Path
    ) -> EntryReport:
        opts = self._options
        asset_name = entry.asset_name(opts.repo_name)
        self._console.header(f"{entry.label} -> {asset_name}")

        tree = self._checkout.checkout(
            entry=entry, tag=trigger.tag, dest=workdir / "src", dry_run=opts.dry_run
        )
        if isinstance(tree, Err):
            return self._failed(entry, asset_name, "checkout_failed", tree.error)

        built = self._builder.build(
            entry=entry,
            source_tree=tree.value,
            repo_name=opts.repo_name,
            dry_run=opts.dry_run,
        )
        if isinstance(built, Err):
            return self._failed(entry, asset_name, "build_failed", built.error)

        uploaded = self._upload(trigger, entry, built.value.binary_path, asset_name)
        if isinstance(uploaded, Err):
            return self._failed(entry, asset_name, "upload_failed", uploaded.error)

        if opts.dry_run or not built.value.success:
            return EntryReport(entry=entry, asset_name=asset_name, status="skipped")

        self._console.success(f"{entry.platform}: {asset_name} attached to {trigger.tag}")
        return EntryReport(
            entry=entry,
            asset_name=asset_name,
            status="published",
            record=uploaded.value,
        )

    def _upload(
        self,
        trigger: ReleaseTrigger,
        entry: MatrixEntry,
        binary: Path,
        asset_name: str,
    ) -> Result[UploadRecord, UploadFailed]:
        opts = self._options
        attempts = max(1, opts.upload_retry_attempts)

        for attempt in range(1, attempts + 1):
            result = self._upload_once(trigger.tag, binary, asset_name)
            if isinstance(result, Ok):
                return result

            error = result.error
            if attempt < attempts and error.transient:
                delay = opts.upload_retry_delay_seconds * attempt
                self._console.warning(
                    f"{entry.platform}: {error.message}; retrying in {delay:g}s "
                    f"({attempt}/{attempts})"
                )
                sleep(delay)
                continue

            return Err(
                UploadFailed(
                    platform=entry.platform,
                    message=error.message,
                    attempts=attempt,
                    hint=error.detail,
                )
            )

        raise AssertionError("unreachable: upload loop always returns")

    def _upload_once(
        self, tag: str, binary: Path, asset_name: str
    ) -> Result[UploadRecord, StoreError]:
        dry_run = self._options.dry_run
        ensured = self._store.ensure_release(
            tag=tag, make_latest=self._options.make_latest, dry_run=dry_run
        )
        if isinstance(ensured, Err):
            return ensured
        return self._store.upload_asset(
            tag=tag, path=binary, asset_name=asset_name, dry_run=dry_run
        )

    def _failed(
        self,
        entry: MatrixEntry,
        asset_name: str,
        status: EntryStatus,
        error: CheckoutFailed | BuildFailed | UploadFailed,
    ) -> EntryReport:
        self._console.error(error.pretty())
        return EntryReport(entry=entry, asset_name=asset_name, status=status, error=error)
