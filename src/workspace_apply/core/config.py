"""Helpers for resolving environment-driven configuration."""

from __future__ import annotations

import os
from pathlib import Path

from workspace_apply.core.constants import (
    DEFAULT_BACKUP_DIR_NAME,
    DEFAULT_MAX_FILE_BYTES,
    DEFAULT_PROJECTS_ROOT,
)

__all__ = [
    "resolve_backup_dir_name",
    "resolve_max_file_bytes",
    "resolve_projects_root",
]


def resolve_projects_root(projects_root: str | Path | None = None) -> Path:
    """Resolve the directory that holds per-project workspaces.

    Args:
        projects_root: Optional explicit directory. Falls back to
            ``WORKSPACE_APPLY_PROJECTS_ROOT`` and then ``./workspaces``.

    Returns:
        Absolute path. The directory itself is not created here.
    """

    chosen: str | Path | None = projects_root
    env_path = os.getenv("WORKSPACE_APPLY_PROJECTS_ROOT")
    if chosen is None and env_path:
        chosen = env_path
    if chosen is None:
        chosen = Path.cwd() / DEFAULT_PROJECTS_ROOT

    return Path(os.path.abspath(Path(chosen).expanduser()))


def resolve_max_file_bytes() -> int:
    """Return the per-file byte limit from ``WORKSPACE_APPLY_MAX_FILE_BYTES``."""

    raw = os.getenv("WORKSPACE_APPLY_MAX_FILE_BYTES")
    if not raw:
        return DEFAULT_MAX_FILE_BYTES
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(
            f"WORKSPACE_APPLY_MAX_FILE_BYTES must be an integer, got {raw!r}"
        ) from exc
    if value <= 0:
        raise ValueError("WORKSPACE_APPLY_MAX_FILE_BYTES must be positive")
    return value


def resolve_backup_dir_name() -> str:
    """Return the backup directory name from ``WORKSPACE_APPLY_BACKUP_DIR``."""

    name = os.getenv("WORKSPACE_APPLY_BACKUP_DIR", "").strip()
    if not name:
        return DEFAULT_BACKUP_DIR_NAME
    if "/" in name or "\\" in name or name in (".", ".."):
        raise ValueError(
            f"WORKSPACE_APPLY_BACKUP_DIR must be a single directory name, got {name!r}"
        )
    return name
