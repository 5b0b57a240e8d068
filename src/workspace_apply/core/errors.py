"""Custom exceptions for workspace-apply.

This module defines the typed exceptions raised by the filesystem primitives
and services. The batch orchestrator converts every per-operation exception
into a ``failed`` result, so these only escape through the service helpers
(``read_file``, suggestion lookups) and the resolver when used directly.
"""

from typing import Any


class WorkspaceApplyError(Exception):
    """Base exception for all workspace-apply errors."""

    code = "workspace_apply_error"

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {"error": self.code, "message": str(self)}


class SandboxError(WorkspaceApplyError):
    """Raised when a caller-supplied path cannot be used inside the root.

    Attributes:
        path: The path exactly as the caller supplied it
        root: Workspace root the path was resolved against
    """

    code = "sandbox_error"

    def __init__(self, path: str, root: str, message: str) -> None:
        self.path = path
        self.root = root
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["path"] = self.path
        return result


class PathEscapesRoot(SandboxError):
    """Raised when a path resolves outside the workspace root.

    Attributes:
        path: The untrusted input path
        root: Workspace root
        resolved: Where the path would have landed, if computable
    """

    code = "path_escapes_root"

    def __init__(self, path: str, root: str, resolved: str | None = None) -> None:
        self.resolved = resolved
        message = f'Path escapes project root: "{path}"'
        if resolved is not None:
            message += f' -> resolved to "{resolved}"'
        super().__init__(path, root, message)

    def __repr__(self) -> str:
        return f"PathEscapesRoot(path={self.path!r}, resolved={self.resolved!r})"


class ReservedPath(SandboxError):
    """Raised when a path points into the workspace backup area."""

    code = "reserved_path"

    def __init__(self, path: str, root: str, reserved: str) -> None:
        self.reserved = reserved
        super().__init__(
            path, root, f'Path "{path}" is inside reserved directory "{reserved}"'
        )


class InvalidOperation(WorkspaceApplyError):
    """Raised when a file operation does not have a valid shape."""

    code = "invalid_operation"


class NameConflict(WorkspaceApplyError):
    """Raised when the target exists as the wrong node type.

    Attributes:
        path: Relative path of the operation
        found: Node type found on disk ("directory")
    """

    code = "name_conflict"

    def __init__(self, path: str, message: str, found: str = "directory") -> None:
        self.path = path
        self.found = found
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["path"] = self.path
        result["found"] = self.found
        return result


class ContentDecodeError(WorkspaceApplyError):
    """Raised when operation content cannot be decoded with its encoding."""

    code = "content_decode_error"

    def __init__(self, path: str, encoding: str, reason: str) -> None:
        self.path = path
        self.encoding = encoding
        super().__init__(f"Content decode failed ({encoding}) for {path}: {reason}")


class FileTooLarge(WorkspaceApplyError):
    """Raised when decoded content exceeds the per-file byte limit."""

    code = "file_too_large"

    def __init__(self, path: str, size: int, limit: int) -> None:
        self.path = path
        self.size = size
        self.limit = limit
        super().__init__(f"File too large: {path} ({size} bytes > {limit} bytes)")


class MissingTarget(WorkspaceApplyError):
    """Raised by strict updates when the file to update does not exist."""

    code = "missing_target"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Cannot update missing file: {path}")


class SuggestionNotFound(WorkspaceApplyError):
    """Raised when a suggestion id is not present in the store."""

    code = "suggestion_not_found"

    def __init__(self, suggestion_id: str) -> None:
        self.suggestion_id = suggestion_id
        super().__init__(f"Suggestion not found: {suggestion_id}")


class SuggestionStateError(WorkspaceApplyError):
    """Raised when a suggestion cannot move to the requested status."""

    code = "suggestion_state_error"

    def __init__(self, suggestion_id: str, current: str, requested: str) -> None:
        self.suggestion_id = suggestion_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Suggestion {suggestion_id} is {current}; cannot mark as {requested}"
        )


class WorkspaceRootMissing(WorkspaceApplyError):
    """Raised when the workspace root does not exist or is not a directory.

    The engine only mutates descendants of the root; it never creates it.
    """

    code = "workspace_root_missing"

    def __init__(self, root: str) -> None:
        self.root = root
        super().__init__(f"Workspace root does not exist or is not a directory: {root}")
