"""Per-project workspace service.

Maps project ids onto workspace roots under a configured projects directory
and exposes the operations a controller layer needs: applying batches,
reading files back, listing a workspace, and the suggest/approve flow for
planner-proposed batches.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import structlog

from workspace_apply.chains.apply_chain import ApplyChain
from workspace_apply.core.config import (
    resolve_backup_dir_name,
    resolve_projects_root,
)
from workspace_apply.core.constants import (
    DEFAULT_LIST_DEPTH,
    DEFAULT_READ_MAX_BYTES,
)
from workspace_apply.core.errors import (
    InvalidOperation,
    PathEscapesRoot,
    SuggestionStateError,
)
from workspace_apply.core.events import Emitter
from workspace_apply.core.suggestions import SuggestionStore
from workspace_apply.fs.paths import relative_to_root, resolve_safe
from workspace_apply.routes.schemas import (
    ApplyOptions,
    ApplyResult,
    EmitFilesPayload,
    FileContent,
    FileEntry,
    Suggestion,
    SuggestionStatus,
)


class WorkspaceService:
    """Service facade over the file-operation engine for many projects.

    Attributes:
        projects_root: Directory holding one workspace root per project
        suggestions: Store of pending planner batches
    """

    def __init__(
        self,
        projects_root: str | Path | None = None,
        emitter: Emitter | None = None,
        chain: ApplyChain | None = None,
        suggestions: SuggestionStore | None = None,
        logger: Any = None,
    ) -> None:
        self.projects_root = resolve_projects_root(projects_root)
        self.suggestions = suggestions or SuggestionStore()
        self._logger = logger or structlog.get_logger(__name__)
        self._chain = chain or ApplyChain(
            logger=self._logger, emitter=emitter, show_progress=False
        )

    def project_root(self, project_id: str) -> Path:
        """Return the workspace root for ``project_id`` (not created).

        Raises:
            InvalidOperation: If the id is empty
            PathEscapesRoot: If the id is not a single directory name
        """
        if not project_id or not project_id.strip():
            raise InvalidOperation("project_id is required")
        root = resolve_safe(self.projects_root, project_id)
        rel = relative_to_root(self.projects_root, root)
        if not rel or os.path.dirname(rel):
            raise PathEscapesRoot(project_id, str(self.projects_root), str(root))
        return root

    def ensure_project(self, project_id: str) -> Path:
        """Create the project's workspace root if needed and return it."""
        root = self.project_root(project_id)
        root.mkdir(parents=True, exist_ok=True)
        return root

    def apply(
        self,
        project_id: str,
        operations: Sequence[Any],
        options: ApplyOptions | None = None,
    ) -> ApplyResult:
        """Apply a batch to an existing project workspace."""
        root = self.project_root(project_id)
        return self._chain.apply(operations, root, options)

    def read_file(
        self,
        project_id: str,
        rel_path: str,
        max_bytes: int = DEFAULT_READ_MAX_BYTES,
    ) -> FileContent:
        """Read a workspace file as text, truncated to ``max_bytes``.

        Raises:
            SandboxError: If the path leaves the workspace
            FileNotFoundError: If the path is not an existing file
        """
        root = self.project_root(project_id)
        target = resolve_safe(root, rel_path)
        if not target.is_file():
            raise FileNotFoundError(f"File not found: {rel_path}")

        data = target.read_bytes()
        return FileContent(
            path=relative_to_root(root, target),
            content=data[:max_bytes].decode("utf-8", errors="replace"),
            size=len(data),
            truncated=len(data) > max_bytes,
        )

    def list_files(
        self,
        project_id: str,
        rel_path: str = ".",
        depth: int = DEFAULT_LIST_DEPTH,
    ) -> list[FileEntry]:
        """List a workspace directory recursively, ``depth`` levels deep.

        The backup area is never listed.
        """
        root = self.project_root(project_id)
        start = resolve_safe(root, rel_path)
        if not start.is_dir():
            return []

        backup_dir = resolve_backup_dir_name()
        entries: list[FileEntry] = []

        def walk(directory: Path, level: int) -> None:
            if level < 0:
                return
            for child in sorted(directory.iterdir(), key=lambda p: p.name):
                if directory == root and child.name == backup_dir:
                    continue
                is_dir = child.is_dir() and not child.is_symlink()
                entries.append(
                    FileEntry(path=relative_to_root(root, child), is_dir=is_dir)
                )
                if is_dir:
                    walk(child, level - 1)

        walk(start, depth)
        return entries

    def create_suggestion(
        self, payload: EmitFilesPayload | dict[str, Any]
    ) -> Suggestion:
        """Store a planner batch for later approval."""
        suggestion = self.suggestions.create(payload)
        self._logger.info(
            "suggestion.created",
            suggestion_id=suggestion.suggestion_id,
            project_id=suggestion.project_id,
            operations_count=len(suggestion.operations),
        )
        return suggestion

    def apply_suggestion(
        self,
        suggestion_id: str,
        approved_by: str,
        options: ApplyOptions | None = None,
    ) -> ApplyResult:
        """Apply an approved suggestion and record its outcome.

        The suggestion is claimed (``APPLYING``) before the batch runs, so a
        concurrent approval of the same id fails instead of applying twice.
        Dry-runs only check that the suggestion is still pending. The project
        workspace is created if it does not exist yet.

        Raises:
            InvalidOperation: If ``approved_by`` is empty
            SuggestionNotFound: If the id is unknown
            SuggestionStateError: If the suggestion is no longer pending
        """
        if not approved_by or not approved_by.strip():
            raise InvalidOperation("approved_by is required")

        opts = options or ApplyOptions()
        if opts.dry_run:
            suggestion = self.suggestions.get(suggestion_id)
            if suggestion.status is not SuggestionStatus.PENDING:
                raise SuggestionStateError(
                    suggestion_id,
                    suggestion.status.value,
                    SuggestionStatus.APPLYING.value,
                )
        else:
            suggestion = self.suggestions.update_status(
                suggestion_id, SuggestionStatus.APPLYING, approved_by
            )

        try:
            root = self.ensure_project(suggestion.project_id)
            result = self._chain.apply(suggestion.operations, root, opts)
        except Exception:
            if not opts.dry_run:
                self.suggestions.update_status(
                    suggestion_id, SuggestionStatus.PENDING
                )
            raise

        if not opts.dry_run:
            status = SuggestionStatus.APPLIED if result.ok else SuggestionStatus.FAILED
            self.suggestions.update_status(suggestion_id, status, approved_by)

        self._logger.info(
            "suggestion.applied",
            suggestion_id=suggestion_id,
            approved_by=approved_by,
            dry_run=opts.dry_run,
            failed_count=result.failed_count,
        )
        return result

    def reject_suggestion(
        self, suggestion_id: str, rejected_by: str | None = None
    ) -> Suggestion:
        """Mark a pending suggestion as rejected without applying it."""
        suggestion = self.suggestions.update_status(
            suggestion_id, SuggestionStatus.REJECTED, rejected_by
        )
        self._logger.info("suggestion.rejected", suggestion_id=suggestion_id)
        return suggestion
