"""CLI entry point for applying file-operation batches to a workspace."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Annotated, Any

import structlog
import typer
from rich.console import Console

from workspace_apply.chains.apply_chain import ApplyChain
from workspace_apply.core.events import StructlogEmitter
from workspace_apply.core.extract import extract_operations
from workspace_apply.routes.schemas import ApplyOptions

app = typer.Typer(help="Apply planner file operations to a workspace safely.")


OpsFileArgument = Annotated[
    Path,
    typer.Argument(
        help="JSON (or model output containing JSON) with the operations; "
        "'-' reads stdin.",
        allow_dash=True,
    ),
]
RootOption = Annotated[
    Path,
    typer.Option("--root", help="Existing workspace root to mutate."),
]
DryRunFlag = Annotated[
    bool,
    typer.Option("--dry-run", help="Report outcomes without touching disk."),
]
NoBackupFlag = Annotated[
    bool,
    typer.Option("--no-backup", help="Do not back up updated/deleted files."),
]
NoRollbackFlag = Annotated[
    bool,
    typer.Option("--no-rollback", help="Keep going after a failed operation."),
]
StrictUpdateFlag = Annotated[
    bool,
    typer.Option("--strict-update", help="Fail updates of missing files."),
]
JsonFlag = Annotated[
    bool,
    typer.Option("--json", help="Emit the ApplyResult as JSON on stdout."),
]
VerboseFlag = Annotated[
    bool,
    typer.Option("--verbose", help="Log engine events to stderr."),
]


def _make_logger(verbose: bool) -> Any:
    return structlog.wrap_logger(
        structlog.PrintLogger(sys.stderr),
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.INFO if verbose else logging.WARNING
        ),
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
    )


def _read_source(source: Path) -> str:
    if str(source) == "-":
        return sys.stdin.read()
    return source.read_text(encoding="utf-8")


def apply_batch(  # noqa: D401
    ops_file: OpsFileArgument,
    root: RootOption,
    dry_run: DryRunFlag = False,
    no_backup: NoBackupFlag = False,
    no_rollback: NoRollbackFlag = False,
    strict_update: StrictUpdateFlag = False,
    json_output: JsonFlag = False,
    verbose: VerboseFlag = False,
) -> None:
    """Apply the operations in OPS_FILE to --root."""

    if not root.is_dir():
        typer.secho(
            f"Workspace root does not exist: {root}", err=True, fg=typer.colors.RED
        )
        raise typer.Exit(code=2)

    try:
        text = _read_source(ops_file)
    except OSError as exc:
        typer.secho(f"Cannot read {ops_file}: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=2) from exc

    operations = extract_operations(text)
    if not operations:
        typer.secho("No file operations found.", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)

    options = ApplyOptions(
        dry_run=dry_run,
        backup=not no_backup,
        rollback_on_error=not no_rollback,
        strict_update=strict_update,
    )
    logger = _make_logger(verbose)
    chain = ApplyChain(
        logger=logger,
        ui=Console(stderr=json_output),
        emitter=StructlogEmitter(logger) if verbose else None,
        show_progress=not json_output,
    )
    result = chain.apply(operations, root, options)

    if json_output:
        typer.echo(result.model_dump_json(indent=2))
    else:
        colour = typer.colors.GREEN if result.ok else typer.colors.RED
        typer.secho(
            f"applied: {result.applied_count}  skipped: {result.skipped_count}  "
            f"failed: {result.failed_count}  "
            f"attempted: {len(result.results)}/{result.total_operations}",
            fg=colour,
        )
        if result.backup_folder:
            typer.echo(f"backup folder: {result.backup_folder}")

    if result.failed_count:
        raise typer.Exit(code=1)


def extract_batch(
    source: OpsFileArgument,
) -> None:
    """Print the file operations found in SOURCE as JSON."""

    try:
        text = _read_source(source)
    except OSError as exc:
        typer.secho(f"Cannot read {source}: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=2) from exc

    operations = extract_operations(text)
    if not operations:
        typer.secho("No file operations found.", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo(json.dumps(operations, indent=2, ensure_ascii=False))


def run_cli(args: Sequence[str] | None = None) -> None:
    app(args=args)


app.command("apply")(apply_batch)
app.command("extract")(extract_batch)
