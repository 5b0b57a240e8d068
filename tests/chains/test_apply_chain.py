"""Tests for apply chain orchestration."""

from io import StringIO
from pathlib import Path
from unittest.mock import Mock

from rich.console import Console

from workspace_apply.chains.apply_chain import ApplyChain
from workspace_apply.core.constants import (
    EVENT_FILE_OPERATION,
    EVENT_OPERATIONS_SUMMARY,
)
from workspace_apply.core.events import RecordingEmitter
from workspace_apply.routes.schemas import ApplyOptions


def make_console() -> tuple[Console, StringIO]:
    buffer = StringIO()
    return Console(file=buffer, width=120, force_terminal=False), buffer


class TestApplyChain:
    """Test apply chain orchestration functionality."""

    def test_happy_path_small_batch(self, workspace: Path) -> None:
        """Test a small batch applies every operation."""
        (workspace / "b.txt").write_text("old")
        ui, _ = make_console()
        chain = ApplyChain(ui=ui)

        result = chain.apply(
            [
                {"path": "a.txt", "action": "create", "content": "a"},
                {"path": "b.txt", "action": "update", "content": "new"},
                {"path": "c.txt", "action": "delete"},
            ],
            workspace,
        )

        assert result.total_operations == 3
        assert result.applied_count == 2
        assert result.skipped_count == 1
        assert result.failed_count == 0
        assert (workspace / "a.txt").read_text() == "a"
        assert (workspace / "b.txt").read_text() == "new"

    def test_structured_logging_summary(self, workspace: Path) -> None:
        """Test that the chain binds context and logs a summary event."""
        logger = Mock()
        bound = Mock()
        logger.bind.return_value = bound
        ui, _ = make_console()

        chain = ApplyChain(logger=logger, ui=ui)
        chain.apply(
            [{"path": "a.txt", "action": "create", "content": "a"}],
            workspace,
            ApplyOptions(dry_run=True),
        )

        logger.bind.assert_called_once()
        bind_kwargs = logger.bind.call_args.kwargs
        assert bind_kwargs["dry_run"] is True
        assert bind_kwargs["operation_count"] == 1
        assert "chain_id" in bind_kwargs

        summary_calls = [
            c for c in bound.info.call_args_list if c.args[0] == "apply.summary"
        ]
        assert len(summary_calls) == 1
        assert summary_calls[0].kwargs["applied_count"] == 1
        assert summary_calls[0].kwargs["failed_count"] == 0

    def test_rich_output_lines(self, workspace: Path) -> None:
        """Test per-operation lines on the console."""
        (workspace / "exists.txt").write_text("x")
        ui, buffer = make_console()

        ApplyChain(ui=ui).apply(
            [
                {"path": "a.txt", "action": "create", "content": "a"},
                {"path": "exists.txt", "action": "create", "content": "y"},
                {"path": "../escape", "action": "create", "content": "z"},
            ],
            workspace,
            ApplyOptions(rollback_on_error=False),
        )

        output = buffer.getvalue()
        assert "APPLIED" in output
        assert "SKIPPED" in output
        assert "FAILED" in output
        assert "a.txt" in output

    def test_dry_run_lines(self, workspace: Path) -> None:
        """Test that dry-run outcomes are labelled as such."""
        ui, buffer = make_console()

        ApplyChain(ui=ui).apply(
            [{"path": "a.txt", "action": "create", "content": "a"}],
            workspace,
            ApplyOptions(dry_run=True),
        )

        assert "DRY-RUN" in buffer.getvalue()
        assert not (workspace / "a.txt").exists()

    def test_rollback_notice(self, workspace: Path) -> None:
        """Test that a rolled back batch is reported."""
        ui, buffer = make_console()

        result = ApplyChain(ui=ui).apply(
            [
                {"path": "a.txt", "action": "create", "content": "a"},
                {"path": "../escape", "action": "create", "content": "z"},
            ],
            workspace,
        )

        assert result.rolled_back
        assert "Rolled back" in buffer.getvalue()
        assert not (workspace / "a.txt").exists()

    def test_quiet_mode_prints_nothing_per_item(self, workspace: Path) -> None:
        """Test that show_progress=False suppresses per-operation output."""
        ui, buffer = make_console()

        ApplyChain(ui=ui, show_progress=False).apply(
            [{"path": "a.txt", "action": "create", "content": "a"}], workspace
        )

        assert "APPLIED" not in buffer.getvalue()
        assert (workspace / "a.txt").exists()

    def test_events_forwarded(
        self, workspace: Path, recorder: RecordingEmitter
    ) -> None:
        """Test that engine events reach the caller's emitter."""
        ui, _ = make_console()

        ApplyChain(ui=ui, emitter=recorder).apply(
            [
                {"path": "a.txt", "action": "create", "content": "a"},
                {"path": "b.txt", "action": "create", "content": "b"},
            ],
            workspace,
        )

        assert len(recorder.named(EVENT_FILE_OPERATION)) == 2
        assert len(recorder.named(EVENT_OPERATIONS_SUMMARY)) == 1

    def test_events_not_forwarded_when_disabled(
        self, workspace: Path, recorder: RecordingEmitter
    ) -> None:
        """Test that publish_events=False keeps the caller's emitter silent."""
        ui, buffer = make_console()

        ApplyChain(ui=ui, emitter=recorder).apply(
            [{"path": "a.txt", "action": "create", "content": "a"}],
            workspace,
            ApplyOptions(publish_events=False),
        )

        assert recorder.events == []
        assert "APPLIED" in buffer.getvalue()

    def test_quiet_mode_hides_rollback_notice(self, workspace: Path) -> None:
        """Test that show_progress=False keeps rollback notices off the console."""
        ui, buffer = make_console()

        result = ApplyChain(ui=ui, show_progress=False).apply(
            [
                {"path": "a.txt", "action": "create", "content": "a"},
                {"path": "../escape", "action": "create", "content": "z"},
            ],
            workspace,
        )

        assert result.rolled_back
        assert buffer.getvalue() == ""
