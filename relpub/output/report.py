"""Publish report presentation and exit code mapping."""

from __future__ import annotations

from typing import TYPE_CHECKING

from relpub.core.errors import ErrorCode
from relpub.output.console import Style
from relpub.release.errors import BuildFailed, CheckoutFailed, UploadFailed

if TYPE_CHECKING:
    from relpub.output.console import ConsoleProtocol
    from relpub.release.publisher import PublishReport

__all__ = ["print_publish_report", "publish_exit_code"]

_STATUS_STYLE = {
    "published": Style.SUCCESS,
    "skipped": Style.DIM,
    "checkout_failed": Style.ERROR,
    "build_failed": Style.ERROR,
    "upload_failed": Style.ERROR,
}


def print_publish_report(report: PublishReport, console: ConsoleProtocol) -> None:
    """Print one status line per platform, then the overall outcome."""
    console.header(f"Release {report.trigger.tag}")
    for entry in report.entries:
        line = f"{str(entry.entry.platform):<8} {entry.status:<16} {entry.asset_name}"
        console.print(line, _STATUS_STYLE.get(entry.status, Style.DEFAULT))
        if entry.error is not None and entry.error.hint:
            console.print(f"         hint: {entry.error.hint}", Style.DIM)

    if report.latest_marked:
        console.print(f"{report.trigger.tag} marked as latest release", Style.INFO)

    total = len(report.entries)
    published = len(report.published)
    if report.ok:
        if published:
            console.success(f"{published}/{total} assets published")
        return

    if report.partial:
        console.warning(f"partial release: {published}/{total} assets published")
    else:
        console.error(f"no assets published for {report.trigger.tag}")


def publish_exit_code(report: PublishReport) -> int:
    """Exit code for a finished run.

    Checkout and build failures dominate upload failures.
    """
    errors = [entry.error for entry in report.failed]
    if any(isinstance(e, CheckoutFailed | BuildFailed) for e in errors):
        return int(ErrorCode.BUILD_ERROR)
    if any(isinstance(e, UploadFailed) for e in errors):
        return int(ErrorCode.NETWORK_ERROR)
    return int(ErrorCode.OK)
