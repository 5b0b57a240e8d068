"""Sandboxed file operations with backup and rollback.

This module applies batches of create/update/delete operations to a
workspace root. Each operation goes through the path sandbox, is checked
against the current on-disk state, backs up the pre-image of destructive
changes, and writes atomically. A failing operation can roll back everything
the batch applied before it.
"""

import base64
import os
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from workspace_apply.core.config import resolve_backup_dir_name
from workspace_apply.core.constants import (
    EVENT_FILE_OPERATION,
    EVENT_OPERATIONS_SUMMARY,
)
from workspace_apply.core.errors import (
    ContentDecodeError,
    FileTooLarge,
    InvalidOperation,
    MissingTarget,
    NameConflict,
    WorkspaceRootMissing,
)
from workspace_apply.core.events import Emitter, safe_emit
from workspace_apply.fs.atomic import delete_file, write_atomic
from workspace_apply.fs.backup import (
    BackupStore,
    allocate_backup_folder,
    restore_backup,
)
from workspace_apply.fs.paths import (
    PathInfo,
    path_info,
    relative_to_root,
    resolve_safe,
)
from workspace_apply.routes.schemas import (
    ApplyOptions,
    ApplyResult,
    ContentEncoding,
    FileAction,
    FileOperation,
    OperationResult,
    OperationStatus,
)


@dataclass
class AppliedEntry:
    """Bookkeeping for one operation that changed (or would change) state.

    Consumed only by rollback and discarded at batch end. Dry-run entries
    carry neither ``created`` nor ``backup_path`` and therefore undo nothing.
    """

    operation: FileOperation
    target: Path
    created: bool = False
    updated: bool = False
    deleted: bool = False
    backup_path: Path | None = None


@dataclass
class BatchContext:
    """Everything an operation needs to know about its batch."""

    root: Path
    options: ApplyOptions
    backups: BackupStore | None
    reserved: str


@dataclass
class OperationAttempt:
    """What happened to one input operation."""

    result: OperationResult
    entry: AppliedEntry | None = None
    operation: FileOperation | None = None
    event_path: str = ""


Outcome = tuple[OperationResult, AppliedEntry | None]


def _raw_field(raw: Any, name: str, default: str) -> str:
    if isinstance(raw, Mapping):
        value = raw.get(name)
        if isinstance(value, str) and value:
            return value
    return default


def coerce_operation(raw: Any) -> FileOperation:
    """Validate an untrusted operation.

    Raises:
        InvalidOperation: If the shape is not a valid ``FileOperation``
    """
    if isinstance(raw, FileOperation):
        return raw
    try:
        return FileOperation.model_validate(raw)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'operation'}: {err['msg']}"
            for err in exc.errors()
        )
        raise InvalidOperation(f"Invalid operation shape: {problems}") from exc


def decode_content(op: FileOperation, max_bytes: int) -> bytes:
    """Decode operation content into the bytes to write.

    Raises:
        ContentDecodeError: If the content does not decode with its encoding
        FileTooLarge: If the decoded payload exceeds ``max_bytes``
    """
    content: str | bytes = op.content if op.content is not None else ""
    try:
        if op.encoding is ContentEncoding.BASE64:
            # Wrapped base64 (line breaks every 76 chars) is common in LLM output.
            if isinstance(content, bytes):
                compact: str | bytes = b"".join(content.split())
            else:
                compact = "".join(content.split())
            data = base64.b64decode(compact, validate=True)
        elif isinstance(content, bytes):
            data = content
        else:
            data = content.encode("utf-8")
    except ValueError as exc:
        raise ContentDecodeError(op.path, op.encoding.value, str(exc)) from exc

    if len(data) > max_bytes:
        raise FileTooLarge(op.path, len(data), max_bytes)
    return data


def _result(
    op: FileOperation,
    status: OperationStatus,
    message: str | None = None,
    backup_path: Path | None = None,
) -> OperationResult:
    return OperationResult(
        path=op.path,
        action=op.action.value,
        status=status,
        message=message,
        backup_path=str(backup_path) if backup_path is not None else None,
    )


def _write_new(
    op: FileOperation, target: Path, ctx: BatchContext, message: str | None
) -> Outcome:
    data = decode_content(op, ctx.options.max_file_bytes)
    if ctx.options.dry_run:
        dry_message = "dry-run (no write)"
        if op.action is FileAction.UPDATE:
            dry_message = "dry-run (create)"
        return (
            _result(op, OperationStatus.APPLIED, dry_message),
            AppliedEntry(operation=op, target=target),
        )

    write_atomic(target, data)
    return (
        _result(op, OperationStatus.APPLIED, message),
        AppliedEntry(operation=op, target=target, created=True),
    )


def _execute_create(
    op: FileOperation, target: Path, info: PathInfo, ctx: BatchContext
) -> Outcome:
    if info.exists:
        if not info.is_file:
            raise NameConflict(
                op.path, "Path exists and is a directory (name conflict)"
            )
        return _result(op, OperationStatus.SKIPPED, "File already exists"), None

    return _write_new(op, target, ctx, None)


def _execute_update(
    op: FileOperation, target: Path, info: PathInfo, ctx: BatchContext
) -> Outcome:
    if not info.exists:
        if ctx.options.strict_update:
            raise MissingTarget(op.path)
        return _write_new(op, target, ctx, "file created (was missing)")

    if not info.is_file:
        raise NameConflict(
            op.path, "Target path exists and is a directory (cannot update file)"
        )

    data = decode_content(op, ctx.options.max_file_bytes)
    if ctx.options.dry_run:
        # The identical-content check only applies to real writes.
        dry_message = "dry-run (no write)"
        if ctx.options.backup:
            dry_message = "dry-run (backup simulated)"
        return (
            _result(op, OperationStatus.APPLIED, dry_message),
            AppliedEntry(operation=op, target=target),
        )

    if target.read_bytes() == data:
        return _result(op, OperationStatus.SKIPPED, "content identical"), None

    backup_path = ctx.backups.backup(target) if ctx.backups is not None else None
    write_atomic(target, data)
    return (
        _result(op, OperationStatus.APPLIED, None, backup_path),
        AppliedEntry(
            operation=op, target=target, updated=True, backup_path=backup_path
        ),
    )


def _execute_delete(
    op: FileOperation, target: Path, info: PathInfo, ctx: BatchContext
) -> Outcome:
    if not info.exists:
        return _result(op, OperationStatus.SKIPPED, "file not found"), None

    if not info.is_file:
        raise NameConflict(op.path, "Target path is a directory (cannot delete)")

    if ctx.options.dry_run:
        return (
            _result(op, OperationStatus.APPLIED, "dry-run (no delete)"),
            AppliedEntry(operation=op, target=target),
        )

    backup_path = ctx.backups.backup(target) if ctx.backups is not None else None
    delete_file(target)
    return (
        _result(op, OperationStatus.APPLIED, None, backup_path),
        AppliedEntry(
            operation=op, target=target, deleted=True, backup_path=backup_path
        ),
    )


_HANDLERS: dict[
    FileAction,
    Callable[[FileOperation, Path, PathInfo, BatchContext], Outcome],
] = {
    FileAction.CREATE: _execute_create,
    FileAction.UPDATE: _execute_update,
    FileAction.DELETE: _execute_delete,
}


def execute_operation(
    op: FileOperation, target: Path, info: PathInfo, ctx: BatchContext
) -> Outcome:
    """Run the per-action state machine for one resolved operation.

    Args:
        op: Validated operation
        target: Sandboxed absolute path
        info: Current on-disk state of ``target``
        ctx: Batch context (options, backup store)

    Returns:
        The operation result and, when state changed (or would change in
        dry-run), the entry to push onto the applied stack

    Raises:
        WorkspaceApplyError: For conflicts, decode and size failures
        OSError: For read, backup or write failures
    """
    return _HANDLERS[op.action](op, target, info, ctx)


def apply_operation(raw: Any, ctx: BatchContext) -> OperationAttempt:
    """Validate, resolve and execute one untrusted operation.

    No exception escapes: every failure becomes a ``failed`` result.
    """
    try:
        op = coerce_operation(raw)
    except InvalidOperation as exc:
        raw_path = _raw_field(raw, "path", "<unknown>")
        failed = OperationResult(
            path=raw_path,
            action=_raw_field(raw, "action", "unknown"),
            status=OperationStatus.FAILED,
            message=str(exc),
        )
        return OperationAttempt(result=failed, event_path=raw_path)

    attempt = OperationAttempt(
        result=_result(op, OperationStatus.FAILED),
        operation=op,
        event_path=op.path,
    )
    try:
        if not ctx.root.is_dir():
            raise WorkspaceRootMissing(str(ctx.root))
        target = resolve_safe(ctx.root, op.path, reserved=ctx.reserved)
        attempt.event_path = relative_to_root(ctx.root, target)
        attempt.result, attempt.entry = execute_operation(
            op, target, path_info(target), ctx
        )
    except Exception as exc:  # noqa: BLE001 - converted into a failed result
        attempt.result = _result(op, OperationStatus.FAILED, str(exc) or repr(exc))
        attempt.entry = None

    return attempt


def rollback(stack: Sequence[AppliedEntry], logger: Any = None) -> list[str]:
    """Undo applied entries in reverse order, best effort.

    Created files are removed; files with a backup are restored from it.
    Problems with individual entries are logged and collected, never raised.

    Returns:
        Error descriptions for entries that could not be fully undone
    """
    log = logger or structlog.get_logger(__name__)
    errors: list[str] = []

    for entry in reversed(stack):
        problem: str | None = None
        try:
            if entry.created:
                entry.target.unlink(missing_ok=True)
            if entry.backup_path is not None:
                restore_backup(entry.backup_path, entry.target)
            elif entry.updated or entry.deleted:
                problem = "no backup was taken; cannot restore"
        except OSError as exc:
            problem = str(exc)

        if problem is not None:
            errors.append(f"{entry.operation.path}: {problem}")
            log.warning(
                "apply.rollback.entry_failed",
                path=entry.operation.path,
                action=entry.operation.action.value,
                error=problem,
            )

    return errors


def _operation_payload(attempt: OperationAttempt, dry_run: bool) -> dict[str, Any]:
    result = attempt.result
    payload: dict[str, Any] = {
        "path": attempt.event_path,
        "action": result.action,
        "status": result.status.value,
        "message": result.message,
        "backup_path": result.backup_path,
        "dry_run": dry_run,
        "ts": datetime.now(UTC).isoformat(),
    }
    op = attempt.operation
    if (
        op is not None
        and result.status is OperationStatus.APPLIED
        and op.action is not FileAction.DELETE
    ):
        if isinstance(op.content, bytes):
            payload["content"] = base64.b64encode(op.content).decode("ascii")
            payload["encoding"] = ContentEncoding.BASE64.value
        else:
            payload["content"] = op.content
            payload["encoding"] = op.encoding.value
    return payload


def apply_operations(
    operations: Sequence[Any],
    *,
    root: str | Path,
    options: ApplyOptions | None = None,
    emitter: Emitter | None = None,
    logger: Any = None,
) -> ApplyResult:
    """Apply a batch of file operations to a workspace root.

    Operations run strictly in the given order. Each produces exactly one
    result; on the first failure with ``rollback_on_error`` the batch rolls
    back what it applied and stops, so later operations are never attempted.

    Args:
        operations: Untrusted operations (``FileOperation`` or plain dicts)
        root: Existing workspace root; never created or removed here
        options: Batch options (defaults: backup + rollback + events)
        emitter: Optional event sink; its failures are discarded
        logger: Optional structlog logger

    Returns:
        ApplyResult with per-operation results and the backup folder
    """
    opts = options or ApplyOptions()
    root_path = Path(os.path.abspath(Path(root).expanduser()))
    reserved = resolve_backup_dir_name()
    ops = list(operations)

    log = (logger or structlog.get_logger(__name__)).bind(
        batch_id=uuid.uuid4().hex[:12],
        root=str(root_path),
        dry_run=opts.dry_run,
    )

    backups: BackupStore | None = None
    if opts.backup and not opts.dry_run:
        backups = BackupStore(root_path, allocate_backup_folder(root_path, reserved))

    ctx = BatchContext(
        root=root_path, options=opts, backups=backups, reserved=reserved
    )
    sink = emitter if opts.publish_events else None

    stack: list[AppliedEntry] = []
    results: list[OperationResult] = []
    rolled_back = False
    rollback_errors: list[str] = []

    for raw in ops:
        attempt = apply_operation(raw, ctx)
        result = attempt.result
        results.append(result)
        if attempt.entry is not None:
            stack.append(attempt.entry)

        log.info(
            "apply.operation",
            path=result.path,
            action=result.action,
            status=result.status.value,
            message=result.message,
            backup_path=result.backup_path,
        )
        safe_emit(sink, EVENT_FILE_OPERATION, _operation_payload(attempt, opts.dry_run))

        if result.status is OperationStatus.FAILED and opts.rollback_on_error:
            log.warning(
                "apply.rollback",
                failed_path=result.path,
                reason=result.message,
                entries=len(stack),
            )
            rollback_errors = rollback(stack, log)
            rolled_back = True
            break

    report = ApplyResult(
        results=results,
        backup_folder=str(backups.folder) if backups is not None else None,
        total_operations=len(ops),
        rolled_back=rolled_back,
        rollback_errors=rollback_errors,
    )

    safe_emit(
        sink,
        EVENT_OPERATIONS_SUMMARY,
        {
            "results": [r.model_dump(mode="json") for r in results],
            "backup_folder": report.backup_folder,
            "rolled_back": rolled_back,
            "ts": datetime.now(UTC).isoformat(),
        },
    )
    return report
