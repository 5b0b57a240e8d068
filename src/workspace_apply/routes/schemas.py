"""Pydantic schemas for the file-operation engine and its services.

These schemas define the data structures exchanged with upstream callers:
- FileOperation: one untrusted create/update/delete request
- ApplyOptions: per-batch behaviour chosen by the calling layer
- OperationResult / ApplyResult: what a batch reports back
- EmitFilesPayload / Suggestion: pending batches awaiting approval

All schemas use Pydantic v2 for validation and serialization.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    model_validator,
)
from pydantic.alias_generators import to_camel

from workspace_apply.core.config import resolve_max_file_bytes
from workspace_apply.core.constants import (
    MAX_PATH_LENGTH,
    MAX_SUGGESTION_OPERATIONS,
    MIN_SUGGESTION_OPERATIONS,
)


class FileAction(str, Enum):
    """Mutation requested for a single path."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ContentEncoding(str, Enum):
    """How ``FileOperation.content`` is encoded."""

    UTF8 = "utf8"
    BASE64 = "base64"


class OperationStatus(str, Enum):
    """Outcome of a single operation.

    Attributes:
        APPLIED: The mutation happened (or would have, in dry-run)
        SKIPPED: Nothing to do; not an error
        FAILED: The operation could not be performed
    """

    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


class FileOperation(BaseModel):
    """A single file mutation emitted by a planner.

    Every field is untrusted. ``content`` is required for create and update
    and ignored for delete.

    Attributes:
        path: Path relative to the workspace root
        action: create, update or delete
        content: New file content (text, base64 text or raw bytes)
        encoding: Encoding of ``content`` when it is text
    """

    path: str = Field(min_length=1, max_length=MAX_PATH_LENGTH)
    action: FileAction
    content: str | bytes | None = None
    encoding: ContentEncoding = ContentEncoding.UTF8

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_content(self) -> "FileOperation":
        if self.action is not FileAction.DELETE and self.content is None:
            raise ValueError(f"content is required for {self.action.value}")
        return self


class ApplyOptions(BaseModel):
    """Options for a batch of file operations.

    Accepts snake_case or camelCase keys (``dry_run`` / ``dryRun``).

    Attributes:
        dry_run: Simulate only; never touch disk. Updates of existing files
            report applied without comparing content
        backup: Copy the pre-image of updated/deleted files into the backup folder
        rollback_on_error: Undo this batch's applied operations on first failure
        publish_events: Emit per-operation and summary events
        strict_update: Fail updates against missing files instead of creating them
        max_file_bytes: Upper bound on decoded content size per file
    """

    dry_run: bool = False
    backup: bool = True
    rollback_on_error: bool = True
    publish_events: bool = True
    strict_update: bool = False
    max_file_bytes: int = Field(default_factory=resolve_max_file_bytes, gt=0)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class OperationResult(BaseModel):
    """Result of one operation; immutable once created.

    ``action`` is a plain string so that malformed inputs can be reported
    with whatever action the caller sent.
    """

    path: str
    action: str
    status: OperationStatus
    message: str | None = None
    backup_path: str | None = None

    model_config = ConfigDict(frozen=True)


class ApplyResult(BaseModel):
    """Results from applying a batch of file operations.

    Attributes:
        results: One entry per attempted operation, in input order
        backup_folder: Batch backup folder location (created lazily)
        total_operations: Number of operations the caller submitted
        rolled_back: True if a failure triggered rollback
        rollback_errors: Per-entry rollback problems that were tolerated
    """

    results: list[OperationResult]
    backup_folder: str | None = None
    total_operations: int = 0
    rolled_back: bool = False
    rollback_errors: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def applied_count(self) -> int:
        return sum(1 for r in self.results if r.status is OperationStatus.APPLIED)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def skipped_count(self) -> int:
        return sum(1 for r in self.results if r.status is OperationStatus.SKIPPED)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if r.status is OperationStatus.FAILED)

    @property
    def completed(self) -> bool:
        """True when every submitted operation produced a result."""
        return len(self.results) == self.total_operations

    @property
    def ok(self) -> bool:
        return self.completed and self.failed_count == 0


class EmitFilesPayload(BaseModel):
    """A planner's proposed batch for one project.

    Attributes:
        project_id: Project the batch targets
        operations: Proposed operations (validated again when applied)
        meta: Optional request metadata (request id, user id)
    """

    project_id: str = Field(min_length=1)
    operations: list[FileOperation] = Field(
        min_length=MIN_SUGGESTION_OPERATIONS, max_length=MAX_SUGGESTION_OPERATIONS
    )
    meta: dict[str, Any] | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SuggestionStatus(str, Enum):
    """Lifecycle of a stored suggestion."""

    PENDING = "pending"
    APPLYING = "applying"
    APPLIED = "applied"
    FAILED = "failed"
    REJECTED = "rejected"


class Suggestion(BaseModel):
    """A stored batch awaiting approval."""

    suggestion_id: str
    project_id: str
    operations: list[FileOperation]
    status: SuggestionStatus = SuggestionStatus.PENDING
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime | None = None
    approved_by: str | None = None
    meta: dict[str, Any] | None = None

    def summary(self) -> dict[str, Any]:
        """Return a compact view without file contents."""
        return {
            "suggestion_id": self.suggestion_id,
            "project_id": self.project_id,
            "status": self.status.value,
            "operations_count": len(self.operations),
            "created_at": self.created_at.isoformat(),
            "operations": [
                {"path": op.path, "action": op.action.value} for op in self.operations
            ],
        }


class FileContent(BaseModel):
    """A file read back from a workspace."""

    path: str
    content: str
    size: int
    truncated: bool = False


class FileEntry(BaseModel):
    """One node in a workspace listing."""

    path: str
    is_dir: bool
