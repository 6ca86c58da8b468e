from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any

import pytest

from relpub.core.result import Ok
from relpub.output.console import MockConsole
from relpub.release import checkout as checkout_mod
from relpub.release import publisher as publisher_mod
from relpub.release.checkout import Checkout, GitCheckout
from relpub.release.errors import BuildFailed, CheckoutFailed, StoreError, UploadFailed
from relpub.release.matrix import MATRIX, Platform
from relpub.release.publisher import PublishOptions, Publisher
from relpub.release.store import MemoryReleaseStore
from relpub.release.trigger import ReleaseTrigger

from ._fakes import FakeBuilder, FakeCheckout

V123 = ReleaseTrigger("v1.2.3", 1, 2, 3)


def _publisher(
    *,
    store: MemoryReleaseStore,
    checkout: Checkout | None = None,
    builder: FakeBuilder | None = None,
    console: MockConsole | None = None,
    **options: object,
) -> Publisher:
    return Publisher(
        checkout=checkout or FakeCheckout(),
        builder=builder or FakeBuilder(),
        store=store,
        console=console or MockConsole(),
        options=PublishOptions(repo_name="widget", **options),  # type: ignore[arg-type]
    )


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    delays: list[float] = []
    monkeypatch.setattr(publisher_mod, "sleep", delays.append)
    return delays


def test_publishes_all_three_assets_and_marks_latest(tmp_path: Path) -> None:
    store = MemoryReleaseStore()

    report = _publisher(store=store).publish(V123, workdir=tmp_path)

    assert report.ok
    assert [r.status for r in report.entries] == ["published"] * 3
    assert store.asset_names("v1.2.3") == [
        "widget-linux-amd64",
        "widget-macos-amd64",
        "widget-windows-amd64.exe",
    ]
    assert store.latest == "v1.2.3"
    assert report.latest_marked


def test_each_entry_gets_its_own_checkout(tmp_path: Path) -> None:
    checkout = FakeCheckout()

    _publisher(store=MemoryReleaseStore(), checkout=checkout).publish(V123, workdir=tmp_path)

    assert checkout.dests == [tmp_path / str(e.platform) / "src" for e in MATRIX]


def test_build_failure_does_not_stop_other_platforms(tmp_path: Path) -> None:
    store = MemoryReleaseStore()
    builder = FakeBuilder(fail_on={Platform.WINDOWS})
    console = MockConsole()

    report = _publisher(store=store, builder=builder, console=console).publish(
        V123, workdir=tmp_path
    )

    assert builder.built == [Platform.LINUX, Platform.WINDOWS, Platform.MACOS]
    assert store.asset_names("v1.2.3") == ["widget-linux-amd64", "widget-macos-amd64"]
    assert not report.ok
    assert report.partial
    (failed,) = report.failed
    assert failed.status == "build_failed"
    assert failed.asset_name == "widget-windows-amd64.exe"
    assert isinstance(failed.error, BuildFailed)
    assert console.find("[windows] build failed")
    assert store.latest == "v1.2.3"


def test_checkout_failure_skips_build_for_that_platform(tmp_path: Path) -> None:
    builder = FakeBuilder()

    report = _publisher(
        store=MemoryReleaseStore(),
        checkout=FakeCheckout(fail_on={Platform.MACOS}),
        builder=builder,
    ).publish(V123, workdir=tmp_path)

    assert Platform.MACOS not in builder.built
    assert [r.status for r in report.entries] == ["published", "published", "checkout_failed"]


def test_republishing_same_tag_replaces_assets(tmp_path: Path) -> None:
    store = MemoryReleaseStore()

    _publisher(store=store, builder=FakeBuilder(content=b"first")).publish(
        V123, workdir=tmp_path / "run1"
    )
    report = _publisher(store=store, builder=FakeBuilder(content=b"second")).publish(
        V123, workdir=tmp_path / "run2"
    )

    assert report.ok
    assert len(store.asset_names("v1.2.3")) == 3
    assert store.asset_content("v1.2.3", "widget-linux-amd64") == b"second-linux"


def test_upload_fails_fast_by_default(tmp_path: Path, no_sleep: list[float]) -> None:
    store = MemoryReleaseStore(
        failures={"widget-linux-amd64": [StoreError(message="HTTP 503", transient=True)]}
    )

    report = _publisher(store=store).publish(V123, workdir=tmp_path)

    linux = report.entries[0]
    assert linux.status == "upload_failed"
    assert isinstance(linux.error, UploadFailed)
    assert linux.error.attempts == 1
    assert store.upload_calls.count(("v1.2.3", "widget-linux-amd64")) == 1
    assert no_sleep == []
    assert [r.status for r in report.entries[1:]] == ["published", "published"]


def test_upload_retries_transient_errors_with_backoff(
    tmp_path: Path, no_sleep: list[float]
) -> None:
    transient = StoreError(message="cannot upload", detail="HTTP 502", transient=True)
    store = MemoryReleaseStore(failures={"widget-macos-amd64": [transient, transient]})

    report = _publisher(
        store=store,
        upload_retry_attempts=3,
        upload_retry_delay_seconds=1.5,
    ).publish(V123, workdir=tmp_path)

    assert report.ok
    assert no_sleep == [1.5, 3.0]
    assert store.upload_calls.count(("v1.2.3", "widget-macos-amd64")) == 3


def test_upload_does_not_retry_permanent_errors(tmp_path: Path, no_sleep: list[float]) -> None:
    store = MemoryReleaseStore(
        failures={"widget-linux-amd64": [StoreError(message="HTTP 401", transient=False)]}
    )

    report = _publisher(store=store, upload_retry_attempts=5).publish(V123, workdir=tmp_path)

    assert report.entries[0].status == "upload_failed"
    assert no_sleep == []


def test_upload_gives_up_after_bounded_attempts(tmp_path: Path) -> None:
    transient = StoreError(message="cannot upload", transient=True)
    store = MemoryReleaseStore(failures={"widget-linux-amd64": [transient] * 5})

    report = _publisher(store=store, upload_retry_attempts=2).publish(V123, workdir=tmp_path)

    error = report.entries[0].error
    assert isinstance(error, UploadFailed)
    assert error.attempts == 2
    assert error.pretty() == "[linux] upload failed: cannot upload (after 2 attempts)"


def test_no_latest(tmp_path: Path) -> None:
    store = MemoryReleaseStore()

    report = _publisher(store=store, make_latest=False).publish(V123, workdir=tmp_path)

    assert report.ok
    assert store.latest is None
    assert not report.latest_marked


def test_latest_not_marked_when_nothing_published(tmp_path: Path) -> None:
    store = MemoryReleaseStore()
    builder = FakeBuilder(fail_on=set(Platform))

    report = _publisher(store=store, builder=builder).publish(V123, workdir=tmp_path)

    assert report.published == ()
    assert not report.partial
    assert store.latest is None
    assert not report.latest_marked


def test_dry_run_skips_everything(tmp_path: Path) -> None:
    store = MemoryReleaseStore()

    report = _publisher(store=store, dry_run=True).publish(V123, workdir=tmp_path)

    assert report.ok
    assert [r.status for r in report.entries] == ["skipped"] * 3
    assert store.releases == {}
    assert not report.latest_marked


def test_subset_of_entries(tmp_path: Path) -> None:
    store = MemoryReleaseStore()
    windows = tuple(e for e in MATRIX if e.platform == Platform.WINDOWS)

    report = _publisher(store=store).publish(V123, workdir=tmp_path, entries=windows)

    assert len(report.entries) == 1
    assert store.asset_names("v1.2.3") == ["widget-windows-amd64.exe"]


def test_parallel_jobs_keep_matrix_order(tmp_path: Path) -> None:
    store = MemoryReleaseStore()
    builder = FakeBuilder(fail_on={Platform.LINUX})

    report = _publisher(store=store, builder=builder, jobs=3).publish(V123, workdir=tmp_path)

    assert [r.entry for r in report.entries] == list(MATRIX)
    assert [r.status for r in report.entries] == ["build_failed", "published", "published"]
    assert store.asset_names("v1.2.3") == ["widget-macos-amd64", "widget-windows-amd64.exe"]


def _git_checkout(monkeypatch: pytest.MonkeyPatch) -> GitCheckout:
    """A real GitCheckout whose clone just creates the destination directory."""

    def fake_clone(cmd: list[str], *, cwd: Path, timeout: float | None = None) -> Ok[str]:
        del cwd, timeout
        Path(cmd[-1]).mkdir()
        return Ok("")

    monkeypatch.setattr(checkout_mod.shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(checkout_mod, "run_process", fake_clone)
    return GitCheckout(source="/src/widget", console=MockConsole())


def test_locked_stale_tree_fails_only_its_platform(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    for entry in MATRIX:
        (tmp_path / str(entry.platform) / "src" / ".git").mkdir(parents=True)
    real_rmtree = shutil.rmtree

    def rmtree(path: str | Path, **kwargs: Any) -> None:
        if Path(path).parent.name == "windows":
            raise PermissionError(13, "Access is denied", str(path))
        real_rmtree(path, **kwargs)

    checkout = _git_checkout(monkeypatch)
    monkeypatch.setattr(checkout_mod.shutil, "rmtree", rmtree)
    store = MemoryReleaseStore()

    report = _publisher(store=store, checkout=checkout).publish(V123, workdir=tmp_path)

    assert [r.status for r in report.entries] == ["published", "checkout_failed", "published"]
    assert isinstance(report.entries[1].error, CheckoutFailed)
    assert store.asset_names("v1.2.3") == ["widget-linux-amd64", "widget-macos-amd64"]


def test_workdir_collision_fails_only_its_platform(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / "linux").write_text("in the way", encoding="utf-8")
    store = MemoryReleaseStore()

    report = _publisher(store=store, checkout=_git_checkout(monkeypatch)).publish(
        V123, workdir=tmp_path
    )

    assert len(report.entries) == 3
    assert [r.status for r in report.entries] == ["checkout_failed", "published", "published"]
    assert store.asset_names("v1.2.3") == ["widget-macos-amd64", "widget-windows-amd64.exe"]
    assert store.latest == "v1.2.3"
