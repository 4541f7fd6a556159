# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Command-line interface for building and inspecting snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table
from rich.text import Text

from .builder import BuildReport, EntryResult, EntryStatus
from .config import SnapshotConfig, load_config
from .errors import HtmlSnapError
from .logging import configure_verbose_logging, get_console, section
from .logging import fail as log_fail
from .logging import info as log_info
from .logging import ok as log_ok
from .logging import warn as log_warn
from .manifest import BuildManifest
from .patterns import ResponseKind
from .pipeline import run_build
from .runtime import RuntimeBridge, request_path

app = typer.Typer(
    name="htmlsnap",
    help="Build and resolve pre-rendered HTML snapshots for UI tests.",
    no_args_is_help=True,
    add_completion=False,
)


class CLIError(RuntimeError):
    """Error raised when a CLI command fails and should exit with a status code."""

    def __init__(self, message: str, *, exit_code: int = 1) -> None:
        """Initialise the error with a message and exit code.

        Args:
            message: Human-readable error message shown to the user.
            exit_code: Exit status associated with the failure.
        """

        super().__init__(message)
        self.exit_code = exit_code


@dataclass(slots=True)
class CLILogger:
    """Adapter around the logging helpers honouring CLI presentation flags."""

    use_emoji: bool
    use_color: bool

    def fail(self, message: str) -> None:
        """Report an error that stops the command.

        Args:
            message: Text printed after the failure marker.
        """

        log_fail(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def warn(self, message: str) -> None:
        """Report a problem the command continues past.

        Args:
            message: Text printed after the warning marker.
        """

        log_warn(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def ok(self, message: str) -> None:
        """Report a completed step.

        Args:
            message: Text printed after the success marker.
        """

        log_ok(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def info(self, message: str) -> None:
        """Report progress.

        Args:
            message: Text printed after the info marker.
        """

        log_info(message, use_emoji=self.use_emoji, use_color=self.use_color)


RootOption = Annotated[
    Path,
    typer.Option("--root", help="Project root containing the htmlsnap configuration.", file_okay=False),
]
EmojiOption = Annotated[bool, typer.Option("--emoji/--no-emoji", help="Decorate output with emoji.")]
ColorOption = Annotated[bool, typer.Option("--color/--no-color", help="Colourise terminal output.")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Stream debug logging to stderr.")]


def _load(root: Path, **overrides: object) -> SnapshotConfig:
    try:
        return load_config(root, overrides=overrides)
    except HtmlSnapError as exc:
        raise CLIError(str(exc)) from exc


def _report_result(logger: CLILogger, result: EntryResult) -> None:
    label = f"{result.entry.pattern.full} ({result.entry.kind.value})"
    if result.status is EntryStatus.RENDERED:
        logger.ok(f"rendered {label}")
    elif result.status is EntryStatus.FAILED:
        logger.fail(f"failed {label}")


def _summarise(logger: CLILogger, report: BuildReport) -> None:
    section("Snapshot build", use_color=logger.use_color)
    for problem in report.problems:
        logger.fail(str(problem))
    for error in report.load_errors:
        logger.fail(str(error))
    for result in report.failed:
        logger.fail(str(result.error))
    for key in report.removed:
        logger.warn(f"removed orphan {key}")
    summary = (
        f"{len(report.rendered)} rendered, {len(report.fresh)} fresh, "
        f"{len(report.failed)} failed, {len(report.removed)} removed"
    )
    if report.ok:
        logger.ok(summary)
    else:
        logger.fail(summary)


@app.command("build")
def build_command(
    root: RootOption = Path("."),
    workers: Annotated[
        int | None,
        typer.Option("--workers", "-j", min=1, help="Entries rendered concurrently."),
    ] = None,
    force: Annotated[bool, typer.Option("--force", help="Re-render every snapshot.")] = False,
    verbose: VerboseOption = False,
    emoji: EmojiOption = True,
    color: ColorOption = True,
) -> None:
    """Render snapshots whose generator sources changed since the last build."""

    logger = CLILogger(use_emoji=emoji, use_color=color)
    if verbose:
        configure_verbose_logging()
    try:
        config = _load(root, worker_count=workers)
        run = run_build(config, force=force, on_result=lambda result: _report_result(logger, result))
    except CLIError as exc:
        logger.fail(str(exc))
        raise typer.Exit(code=exc.exit_code) from exc
    except HtmlSnapError as exc:
        logger.fail(str(exc))
        raise typer.Exit(code=1) from exc

    _summarise(logger, run.report)
    raise typer.Exit(code=0 if run.ok else 1)


@app.command("resolve")
def resolve_command(
    path: Annotated[str, typer.Argument(help="Concrete request path or URL.")],
    kind: Annotated[
        ResponseKind,
        typer.Option("--kind", "-k", case_sensitive=False, help="Response kind to resolve."),
    ] = ResponseKind.DOCUMENT,
    key_only: Annotated[bool, typer.Option("--key-only", help="Print the artifact key only.")] = False,
    root: RootOption = Path("."),
    emoji: EmojiOption = True,
) -> None:
    """Print the snapshot served for PATH."""

    logger = CLILogger(use_emoji=emoji, use_color=False)
    try:
        bridge = RuntimeBridge.from_config(_load(root))
        if key_only:
            typer.echo(bridge.matcher.resolve_match(request_path(path), kind).key.value)
        else:
            typer.echo(bridge.load_for_path(path, kind).decode("utf-8"), nl=False)
    except CLIError as exc:
        logger.fail(str(exc))
        raise typer.Exit(code=exc.exit_code) from exc
    except HtmlSnapError as exc:
        logger.fail(str(exc))
        raise typer.Exit(code=1) from exc


@app.command("list")
def list_command(
    root: RootOption = Path("."),
    emoji: EmojiOption = True,
) -> None:
    """List built snapshots in the order paths are matched."""

    logger = CLILogger(use_emoji=emoji, use_color=False)
    try:
        config = _load(root)
    except CLIError as exc:
        logger.fail(str(exc))
        raise typer.Exit(code=exc.exit_code) from exc

    manifest = BuildManifest.load(BuildManifest.path_in(config.snapshot_path))
    if not len(manifest):
        logger.info("no snapshots built yet")
        return
    table = Table("#", "pattern", "kind", "key", "source")
    for position, record in enumerate(manifest, start=1):
        table.add_row(
            str(position),
            Text(record.pattern),
            record.kind.value,
            Text(record.key),
            Text(record.source or "-"),
        )
    get_console(color=False, emoji=emoji).print(table)


def main() -> None:
    """Entry point for the ``htmlsnap`` console script."""

    app()


__all__ = ["CLIError", "CLILogger", "app", "main"]
