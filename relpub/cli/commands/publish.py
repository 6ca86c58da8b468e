from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from typing import NoReturn

import typer

from relpub.cli.commands._helpers import repo_name_from_slug, resolve_repo_name
from relpub.cli.context import CLIContext, build_context
from relpub.core.errors import ErrorCode
from relpub.core.result import Err
from relpub.output.console import Style
from relpub.output.report import print_publish_report, publish_exit_code
from relpub.release.builder import CargoBuilder
from relpub.release.checkout import GitCheckout
from relpub.release.matrix import MatrixEntry, select_entries
from relpub.release.publisher import PublishOptions, PublishReport, Publisher
from relpub.release.store import GhReleaseStore
from relpub.release.trigger import ReleaseTrigger, parse_ref

REQUIRED_TOOLS: tuple[tuple[str, str], ...] = (
    ("git", "Install git: https://git-scm.com/downloads"),
    ("cargo", "Install Rust: https://rustup.rs/"),
    ("gh", "Install GitHub CLI: https://cli.github.com/"),
)


def _missing_tools() -> list[tuple[str, str]]:
    return [(tool, hint) for tool, hint in REQUIRED_TOOLS if shutil.which(tool) is None]


def _fail(ctx: CLIContext, message: str, code: ErrorCode, hint: str | None = None) -> NoReturn:
    ctx.console.error(message)
    if hint:
        ctx.console.print(f"hint: {hint}", Style.DIM)
    raise typer.Exit(code=int(code))


def _run(
    ctx: CLIContext,
    *,
    trigger: ReleaseTrigger,
    entries: tuple[MatrixEntry, ...],
    repo: str,
    source: str,
    token: str | None,
    options: PublishOptions,
    workdir: Path,
) -> PublishReport:
    publisher = Publisher(
        checkout=GitCheckout(source=source, console=ctx.console),
        builder=CargoBuilder(console=ctx.console),
        store=GhReleaseStore(repo=repo, console=ctx.console, token=token, cwd=ctx.cwd),
        console=ctx.console,
        options=options,
    )
    return publisher.publish(trigger, workdir=workdir, entries=entries)


def publish(
    ref: str | None = typer.Option(
        None,
        "--ref",
        envvar="GITHUB_REF",
        help="Pushed ref or tag; non-release refs are skipped.",
    ),
    repo: str | None = typer.Option(
        None,
        "--repo",
        envvar="GITHUB_REPOSITORY",
        help="Release store repo owner/name.",
    ),
    name: str | None = typer.Option(None, "--name", help="Binary name (default: repo name)."),
    source: str | None = typer.Option(
        None,
        "--source",
        help="Clone URL or local path (default: https://github.com/<repo>.git).",
    ),
    platform: list[str] = typer.Option(
        [],
        "--platform",
        "-p",
        help="Only these platforms (linux, windows, macos). Repeatable.",
    ),
    jobs: int = typer.Option(1, "--jobs", "-j", min=1, help="Platforms built concurrently."),
    upload_retries: int | None = typer.Option(
        None,
        "--upload-retries",
        min=1,
        help="Total upload attempts per asset (default: config, else 1).",
    ),
    no_latest: bool = typer.Option(False, "--no-latest", help="Do not mark as latest release."),
    workdir: Path | None = typer.Option(
        None,
        "--workdir",
        help="Keep checkouts and builds here instead of a temporary directory.",
    ),
    token: str | None = typer.Option(
        None,
        "--token",
        envvar=["GITHUB_TOKEN", "GH_TOKEN"],
        show_envvar=False,
        show_default=False,
        help="GitHub token (default: $GITHUB_TOKEN, $GH_TOKEN, else gh auth).",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without running them."),
) -> None:
    """Build every platform binary for a release tag and upload it to the release."""
    ctx = build_context()
    cfg = ctx.config

    if not ref:
        _fail(ctx, "no ref given", ErrorCode.USER_ERROR, "Pass --ref or set GITHUB_REF")

    parsed = parse_ref(ref)
    if isinstance(parsed, Err):
        ctx.console.info(f"not a release tag, skipping: {parsed.error.pretty()}")
        return
    trigger = parsed.value

    slug = repo or cfg.release.repo
    if not slug:
        _fail(ctx, "no repo given", ErrorCode.USER_ERROR, "Pass --repo owner/name")
    if repo_name_from_slug(slug) is None:
        _fail(ctx, f"invalid repo: {slug}", ErrorCode.USER_ERROR, "Expected owner/name")

    repo_name = resolve_repo_name(name=name, repo=slug, config=cfg)
    if repo_name is None:
        _fail(ctx, "cannot determine binary name", ErrorCode.USER_ERROR, "Pass --name")

    selected = select_entries(platform)
    if isinstance(selected, Err):
        _fail(ctx, selected.error.pretty(), ErrorCode.USER_ERROR)
    entries = selected.value

    if not dry_run:
        missing = _missing_tools()
        if missing:
            tool, hint = missing[0]
            _fail(ctx, f"{tool}: missing", ErrorCode.ENV_ERROR, hint)

    options = PublishOptions(
        repo_name=repo_name,
        make_latest=cfg.release.make_latest and not no_latest,
        upload_retry_attempts=upload_retries or cfg.upload.retry_attempts,
        upload_retry_delay_seconds=cfg.upload.retry_delay_seconds,
        jobs=jobs,
        dry_run=dry_run,
    )
    clone_source = source or cfg.release.source or f"https://github.com/{slug}.git"

    def run_in(path: Path) -> PublishReport:
        return _run(
            ctx,
            trigger=trigger,
            entries=entries,
            repo=slug,
            source=clone_source,
            token=token,
            options=options,
            workdir=path,
        )

    ctx.console.print(f"publishing {trigger.tag} to {slug} as {repo_name}", Style.INFO)
    if workdir is not None:
        workdir.mkdir(parents=True, exist_ok=True)
        report = run_in(workdir.resolve())
    else:
        with tempfile.TemporaryDirectory(prefix="relpub-") as tmp:
            report = run_in(Path(tmp))

    print_publish_report(report, ctx.console)
    code = publish_exit_code(report)
    if code != int(ErrorCode.OK):
        raise typer.Exit(code=code)
