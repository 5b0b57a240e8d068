"""Apply chain for orchestrating batches of file operations.

This module provides the ApplyChain class that sits between callers (services,
the CLI) and the batch orchestrator. It binds structured logging context,
renders Rich progress for each operation, and forwards engine events to the
caller's sink.
"""

import uuid
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import structlog
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
)

from workspace_apply.core.constants import EVENT_FILE_OPERATION
from workspace_apply.core.events import Emitter, safe_emit
from workspace_apply.fs.fs_ops import apply_operations
from workspace_apply.routes.schemas import ApplyOptions, ApplyResult


class ApplyChain:
    """Orchestrates batch application with structured logging and Rich output.

    Engine events always drive the progress display; they are forwarded to
    the caller's emitter only when ``options.publish_events`` is set.
    """

    def __init__(
        self,
        logger: Any = None,
        ui: Console | None = None,
        emitter: Emitter | None = None,
        show_progress: bool = True,
    ) -> None:
        """Initialize apply chain.

        Args:
            logger: Optional structlog logger instance
            ui: Optional Rich console for output
            emitter: Optional sink for ``file.operation`` / summary events
            show_progress: Render the progress bar and per-operation lines
        """
        self._logger = logger or structlog.get_logger()
        self._ui = ui or Console()
        self._emitter = emitter
        self._show_progress = show_progress

    def apply(
        self,
        operations: Sequence[Any],
        root: str | Path,
        options: ApplyOptions | None = None,
    ) -> ApplyResult:
        """Apply a batch of operations to ``root``.

        Args:
            operations: Untrusted operations (models or dicts)
            root: Existing workspace root
            options: Batch options

        Returns:
            ApplyResult from the batch orchestrator
        """
        opts = options or ApplyOptions()
        ops = list(operations)

        bound_logger = self._logger.bind(
            chain_id=uuid.uuid4().hex[:12],
            root=str(root),
            dry_run=opts.dry_run,
            backup=opts.backup,
            rollback_on_error=opts.rollback_on_error,
            operation_count=len(ops),
        )

        with self._create_progress() as progress:
            label = "Apply (dry run)" if opts.dry_run else "Apply"
            task = progress.add_task(label, total=len(ops))

            result = apply_operations(
                ops,
                root=root,
                options=opts.model_copy(update={"publish_events": True}),
                emitter=self._make_sink(progress, task, opts),
                logger=bound_logger,
            )

            progress.update(task, completed=len(result.results))

        bound_logger.info(
            "apply.summary",
            total_operations=result.total_operations,
            applied_count=result.applied_count,
            skipped_count=result.skipped_count,
            failed_count=result.failed_count,
            rolled_back=result.rolled_back,
            backup_folder=result.backup_folder,
        )

        if result.rolled_back and self._show_progress:
            self._ui.print("🔄 [yellow]Rolled back applied operations[/yellow]")
            for problem in result.rollback_errors:
                self._ui.print(f"   [red]rollback:[/red] {escape(problem)}")

        return result

    def _make_sink(
        self, progress: Progress, task: TaskID, opts: ApplyOptions
    ) -> Emitter:
        def _sink(event: str, payload: dict[str, Any]) -> None:
            if event == EVENT_FILE_OPERATION:
                progress.advance(task)
                self._show_item_result(payload)
            if opts.publish_events:
                safe_emit(self._emitter, event, payload)

        return _sink

    def _create_progress(self) -> Progress:
        """Create Rich progress display."""
        return Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=self._ui,
            transient=False,
            disable=not self._show_progress,
        )

    def _show_item_result(self, payload: dict[str, Any]) -> None:
        """Show Rich output for one operation event."""
        if not self._show_progress:
            return

        action = str(payload.get("action", "")).upper()
        path = escape(str(payload.get("path", "")))
        message = payload.get("message")
        detail = f" ({escape(str(message))})" if message else ""
        status = payload.get("status")

        if status == "applied" and payload.get("dry_run"):
            self._ui.print(f"🔍 [blue]DRY-RUN[/blue] {action} {path}{detail}")
        elif status == "applied":
            self._ui.print(f"✅ [green]APPLIED[/green] {action} {path}{detail}")
        elif status == "skipped":
            self._ui.print(f"⚠️ [yellow]SKIPPED[/yellow] {action} {path}{detail}")
        else:
            self._ui.print(f"❌ [red]FAILED[/red] {action} {path}{detail}")
