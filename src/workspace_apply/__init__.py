"""workspace-apply: sandboxed, reversible file operations for AI-built workspaces.

Applies batches of create/update/delete operations to a workspace root with a
path sandbox, atomic writes, per-batch backups, rollback and dry-run.
"""

from workspace_apply.chains.apply_chain import ApplyChain
from workspace_apply.fs.fs_ops import apply_operations
from workspace_apply.routes.schemas import (
    ApplyOptions,
    ApplyResult,
    FileAction,
    FileOperation,
    OperationResult,
    OperationStatus,
)

__version__ = "0.1.0"

__all__ = [
    "ApplyChain",
    "ApplyOptions",
    "ApplyResult",
    "FileAction",
    "FileOperation",
    "OperationResult",
    "OperationStatus",
    "__version__",
    "apply_operations",
]
