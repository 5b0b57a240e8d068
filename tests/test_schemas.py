"""Tests for Pydantic schemas used by the file-operation engine."""

import pytest
from pydantic import ValidationError


def test_file_operation_basic() -> None:
    """Test that FileOperation parses a plain dict."""
    from workspace_apply.routes.schemas import (
        ContentEncoding,
        FileAction,
        FileOperation,
    )

    op = FileOperation.model_validate(
        {"path": "src/app.js", "action": "create", "content": "x"}
    )
    assert op.action is FileAction.CREATE
    assert op.encoding is ContentEncoding.UTF8


def test_file_operation_requires_content_for_writes() -> None:
    """Test that create and update need content but delete does not."""
    from workspace_apply.routes.schemas import FileOperation

    for action in ("create", "update"):
        with pytest.raises(ValidationError, match="content is required"):
            FileOperation.model_validate({"path": "a", "action": action})

    op = FileOperation.model_validate({"path": "a", "action": "delete"})
    assert op.content is None


def test_file_operation_path_bounds() -> None:
    """Test path length validation."""
    from workspace_apply.routes.schemas import FileOperation

    with pytest.raises(ValidationError):
        FileOperation(path="", action="delete")
    with pytest.raises(ValidationError):
        FileOperation(path="a" * 1025, action="delete")
    assert FileOperation(path="a" * 1024, action="delete").path


def test_file_operation_is_immutable() -> None:
    """Test that operations cannot be modified after validation."""
    from workspace_apply.routes.schemas import FileOperation

    op = FileOperation(path="a", action="delete")
    with pytest.raises(ValidationError):
        op.path = "b"  # type: ignore[misc]


def test_apply_options_defaults() -> None:
    """Test ApplyOptions default values."""
    from workspace_apply.core.constants import DEFAULT_MAX_FILE_BYTES
    from workspace_apply.routes.schemas import ApplyOptions

    opts = ApplyOptions()
    assert opts.dry_run is False
    assert opts.backup is True
    assert opts.rollback_on_error is True
    assert opts.publish_events is True
    assert opts.strict_update is False
    assert opts.max_file_bytes == DEFAULT_MAX_FILE_BYTES


def test_apply_options_accepts_camel_case() -> None:
    """Test that callers can send camelCase keys."""
    from workspace_apply.routes.schemas import ApplyOptions

    opts = ApplyOptions.model_validate(
        {"dryRun": True, "rollbackOnError": False, "publishEvents": False}
    )
    assert opts.dry_run is True
    assert opts.rollback_on_error is False
    assert opts.publish_events is False


def test_apply_options_max_file_bytes_from_env(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test that the per-file limit default follows the environment."""
    from workspace_apply.routes.schemas import ApplyOptions

    monkeypatch.setenv("WORKSPACE_APPLY_MAX_FILE_BYTES", "1024")
    assert ApplyOptions().max_file_bytes == 1024


def test_apply_result_counts() -> None:
    """Test computed counts and completion flags."""
    from workspace_apply.routes.schemas import (
        ApplyResult,
        OperationResult,
        OperationStatus,
    )

    results = [
        OperationResult(path="a", action="create", status=OperationStatus.APPLIED),
        OperationResult(path="b", action="create", status=OperationStatus.SKIPPED),
        OperationResult(path="c", action="oops", status=OperationStatus.FAILED),
    ]
    report = ApplyResult(results=results, total_operations=4)

    assert report.applied_count == 1
    assert report.skipped_count == 1
    assert report.failed_count == 1
    assert report.completed is False
    assert report.ok is False

    dumped = report.model_dump()
    assert dumped["failed_count"] == 1


def test_apply_result_ok() -> None:
    """Test that a complete batch without failures is ok."""
    from workspace_apply.routes.schemas import (
        ApplyResult,
        OperationResult,
        OperationStatus,
    )

    report = ApplyResult(
        results=[
            OperationResult(path="a", action="create", status=OperationStatus.SKIPPED)
        ],
        total_operations=1,
    )
    assert report.ok is True


def test_emit_files_payload_bounds() -> None:
    """Test operation count bounds on suggestion payloads."""
    from workspace_apply.routes.schemas import EmitFilesPayload

    op = {"path": "a", "action": "delete"}
    with pytest.raises(ValidationError):
        EmitFilesPayload(project_id="p", operations=[])
    with pytest.raises(ValidationError):
        EmitFilesPayload.model_validate({"projectId": "p", "operations": [op] * 201})

    payload = EmitFilesPayload.model_validate({"projectId": "p", "operations": [op]})
    assert payload.project_id == "p"


def test_suggestion_summary_omits_content() -> None:
    """Test that Suggestion.summary() lists paths but no contents."""
    from workspace_apply.routes.schemas import FileOperation, Suggestion

    suggestion = Suggestion(
        suggestion_id="s1",
        project_id="p",
        operations=[FileOperation(path="a.txt", action="create", content="secret")],
    )

    summary = suggestion.summary()
    assert summary["operations_count"] == 1
    assert summary["status"] == "pending"
    assert summary["operations"] == [{"path": "a.txt", "action": "create"}]
    assert "secret" not in str(summary)
