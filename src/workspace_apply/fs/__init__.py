"""Sandboxed filesystem operations with backup and rollback.

This module provides the file-operation engine: a path sandbox, atomic
writes, per-batch backups, and a batch orchestrator that can roll back.
"""

from workspace_apply.fs.atomic import write_atomic
from workspace_apply.fs.backup import BackupStore, restore_backup
from workspace_apply.fs.fs_ops import (
    AppliedEntry,
    apply_operations,
    execute_operation,
    rollback,
)
from workspace_apply.fs.paths import path_info, resolve_safe

__all__ = [
    "AppliedEntry",
    "BackupStore",
    "apply_operations",
    "execute_operation",
    "path_info",
    "resolve_safe",
    "restore_backup",
    "rollback",
    "write_atomic",
]
